import re
import secrets
from datetime import date, datetime, timedelta, timezone

from flask import current_app
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from werkzeug.security import check_password_hash, generate_password_hash

from library_api.errors import (
    AccountNotActive,
    InvalidVerificationCode,
    Unauthenticated,
    UserExisted,
    UserNotExisted,
    ValidationFailed,
)
from library_api.models.account import Account
from library_api.models.revoked_token import RevokedToken
from library_api.repositories.account_repo import AccountRepo
from library_api.repositories.token_repo import TokenRepo
from library_api.services.mail_service import MailService

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PHONE_RE = re.compile(r"^[0-9]{10}$")


def _validate_registration(data: dict) -> dict:
    errors = {}
    cleaned = {}
    for k in ("email", "password", "first_name", "last_name", "dob", "phone"):
        value = data.get(k)
        cleaned[k] = value.strip() if isinstance(value, str) else ""

    if not cleaned["email"]:
        errors["email"] = "Email cannot be empty"
    elif not EMAIL_RE.match(cleaned["email"]):
        errors["email"] = "Email is invalid"

    if len(cleaned["password"]) < 5:
        errors["password"] = "Password must be at least 5 characters"

    for field, label in (("first_name", "First name"), ("last_name", "Last name")):
        if not cleaned[field]:
            errors[field] = f"{label} cannot be empty"
        elif len(cleaned[field]) > 50:
            errors[field] = f"{label} must not exceed 50 characters"

    dob = cleaned["dob"]
    if not dob:
        errors["dob"] = "Date of birth cannot be null"
    else:
        try:
            dob = date.fromisoformat(dob)
            if dob >= date.today():
                errors["dob"] = "Date of birth must be in the past"
            cleaned["dob"] = dob
        except ValueError:
            errors["dob"] = "Date of birth must be YYYY-MM-DD"

    if not cleaned["phone"]:
        errors["phone"] = "Phone cannot be empty"
    elif not PHONE_RE.match(cleaned["phone"]):
        errors["phone"] = "Phone must contain exactly 10 digits"

    if errors:
        raise ValidationFailed(errors)
    return cleaned


def _new_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class AuthService:
    @staticmethod
    def register(data: dict, role: str = "user"):
        cleaned = _validate_registration(data)
        email = cleaned["email"].lower()
        if AccountRepo.get_by_email(email):
            raise UserExisted()

        ttl = current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 15)
        account = Account(
            email=email,
            password_hash=generate_password_hash(cleaned["password"]),
            first_name=cleaned["first_name"],
            last_name=cleaned["last_name"],
            dob=cleaned["dob"],
            phone=cleaned["phone"],
            role=role,
            active=False,
            verification_code=_new_code(),
            verification_expires_at=datetime.utcnow() + timedelta(minutes=ttl),
        )
        AccountRepo.create(account)

        if not MailService.send_verification_mail(account):
            current_app.logger.warning(f"[auth] verification mail not delivered account={account.id}")
        current_app.logger.info(f"[auth] registered account={account.id}")
        return account

    @staticmethod
    def verify(email: str, code: str):
        account = AccountRepo.get_by_email((email or "").strip().lower())
        if not account:
            raise UserNotExisted()
        if account.active:
            return account

        expired = account.verification_expires_at is None or account.verification_expires_at < datetime.utcnow()
        if expired or not code or not secrets.compare_digest(account.verification_code or "", code.strip()):
            raise InvalidVerificationCode()

        account.active = True
        account.verification_code = None
        account.verification_expires_at = None
        AccountRepo.commit()
        current_app.logger.info(f"[auth] activated account={account.id}")
        return account

    @staticmethod
    def login(email: str, password: str):
        account = AccountRepo.get_by_email((email or "").strip().lower())
        if not account or not check_password_hash(account.password_hash, password or ""):
            raise Unauthenticated("Wrong email or password")
        if not account.active:
            raise AccountNotActive()

        claims = {"role": account.role, "email": account.email}
        access = create_access_token(identity=account.id, additional_claims=claims)
        refresh = create_refresh_token(identity=account.id, additional_claims=claims)
        return access, refresh, account

    @staticmethod
    def refresh(account_id: str):
        account = AccountRepo.get_by_id(account_id)
        if not account:
            raise UserNotExisted()
        if not account.active:
            raise AccountNotActive()
        return create_access_token(
            identity=account.id,
            additional_claims={"role": account.role, "email": account.email},
        )

    @staticmethod
    def logout(jwt_payload: dict):
        expires_at = datetime.fromtimestamp(jwt_payload["exp"], tz=timezone.utc).replace(tzinfo=None)
        TokenRepo.revoke(RevokedToken(
            jti=jwt_payload["jti"],
            token_type=jwt_payload.get("type", "access"),
            account_id=jwt_payload.get("sub"),
            expires_at=expires_at,
        ))
        current_app.logger.info(f"[auth] revoked token account={jwt_payload.get('sub')}")

    @staticmethod
    def introspect(token: str) -> bool:
        if not token:
            return False
        try:
            payload = decode_token(token)
        except (PyJWTError, JWTExtendedException):
            return False
        return not TokenRepo.is_revoked(payload["jti"])

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from library_api.errors import UserNotExisted
from library_api.services.auth_service import AuthService
from library_api.repositories.account_repo import AccountRepo

auth_bp = Blueprint("auth", __name__)


def _account_json(account):
    return {
        "id": account.id,
        "email": account.email,
        "first_name": account.first_name,
        "last_name": account.last_name,
        "dob": account.dob.isoformat() if account.dob else None,
        "phone": account.phone,
        "role": account.role,
        "active": bool(account.active),
    }


@auth_bp.post("/register", endpoint="auth_register")
def register():
    data = request.get_json(silent=True) or {}
    # role is never taken from the request
    account = AuthService.register(data, role="user")
    return jsonify({"success": True, "data": _account_json(account)}), 201


@auth_bp.post("/verify", endpoint="auth_verify")
def verify():
    data = request.get_json(silent=True) or {}
    account = AuthService.verify(data.get("email"), str(data.get("code") or ""))
    return jsonify({"success": True, "data": _account_json(account)})


@auth_bp.post("/login", endpoint="auth_login")
def login():
    data = request.get_json(silent=True) or {}
    access, refresh, account = AuthService.login(
        (data.get("email") or "").strip(),
        data.get("password") or "",
    )
    return jsonify({
        "success": True,
        "access_token": access,
        "refresh_token": refresh,
        "user": {"id": account.id, "email": account.email, "role": account.role},
    })


@auth_bp.post("/logout", endpoint="auth_logout")
@jwt_required(verify_type=False)
def logout():
    AuthService.logout(get_jwt())
    return jsonify({"success": True, "message": "Logged out"})


@auth_bp.post("/refresh", endpoint="auth_refresh")
@jwt_required(refresh=True)
def refresh():
    token = AuthService.refresh(get_jwt_identity())
    return jsonify({"success": True, "access_token": token})


@auth_bp.post("/introspect", endpoint="auth_introspect")
def introspect():
    data = request.get_json(silent=True) or {}
    return jsonify({"success": True, "valid": AuthService.introspect(data.get("token") or "")})


@auth_bp.get("/me", endpoint="auth_me")
@jwt_required()
def me():
    account = AccountRepo.get_by_id(get_jwt_identity())
    if not account:
        raise UserNotExisted()
    return jsonify({"success": True, "user": _account_json(account)})

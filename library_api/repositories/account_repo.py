from datetime import datetime

from library_api.models.account import Account
from library_api.extensions import db


class AccountRepo:
    @staticmethod
    def get_by_email(email: str):
        return Account.query.filter_by(email=email).first()

    @staticmethod
    def get_by_id(account_id: str):
        return db.session.get(Account, account_id)

    @staticmethod
    def create(account: Account):
        db.session.add(account)
        db.session.commit()
        return account

    @staticmethod
    def commit():
        db.session.commit()

    @staticmethod
    def clear_expired_codes(now: datetime) -> int:
        return Account.query.filter(
            Account.verification_code.is_not(None),
            Account.verification_expires_at < now,
        ).update(
            {Account.verification_code: None, Account.verification_expires_at: None},
            synchronize_session=False,
        )

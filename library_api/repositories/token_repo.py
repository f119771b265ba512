from datetime import datetime

from library_api.models.revoked_token import RevokedToken
from library_api.extensions import db


class TokenRepo:
    @staticmethod
    def is_revoked(jti: str) -> bool:
        return RevokedToken.query.filter_by(jti=jti).first() is not None

    @staticmethod
    def revoke(entry: RevokedToken):
        db.session.add(entry)
        db.session.commit()
        return entry

    @staticmethod
    def purge_expired(now: datetime) -> int:
        return RevokedToken.query.filter(RevokedToken.expires_at < now).delete(synchronize_session=False)

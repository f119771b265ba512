# library_api/tasks/housekeeping.py
from datetime import datetime

from flask import current_app

from library_api.extensions import db
from library_api.repositories.account_repo import AccountRepo
from library_api.repositories.token_repo import TokenRepo


def run_housekeeping_job(app):
    """
    Drops revoked tokens that have expired anyway (the blocklist only has
    to outlive the token) and clears stale verification codes.
    """
    with app.app_context():
        try:
            now = datetime.utcnow()
            tokens = TokenRepo.purge_expired(now)
            codes = AccountRepo.clear_expired_codes(now)
            db.session.commit()

            current_app.logger.info(f"[housekeeping] purged_tokens={tokens} cleared_codes={codes}")
            return tokens, codes
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception(f"[housekeeping] Error: {e}")
            raise

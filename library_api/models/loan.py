import uuid
from datetime import datetime
from sqlalchemy import text
from library_api.extensions import db

_ACTIVE = text("returned_at IS NULL")


class LoanRecord(db.Model):
    __tablename__ = "loans"
    __table_args__ = (
        # at most one open loan per (account, book)
        db.Index(
            "ux_loans_active_pair",
            "account_id",
            "book_id",
            unique=True,
            sqlite_where=_ACTIVE,
            postgresql_where=_ACTIVE,
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    account_id = db.Column(db.String(36), nullable=False, index=True)
    book_id = db.Column(db.String(36), nullable=False, index=True)

    borrowed_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    returned_at = db.Column(db.DateTime, nullable=True)

    @property
    def active(self) -> bool:
        return self.returned_at is None

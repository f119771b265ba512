from datetime import datetime

from sqlalchemy import func, select, update

from library_api.extensions import db
from library_api.errors import AlreadyReturned, BorrowRecordNotFound
from library_api.models.loan import LoanRecord


class LoanLedger:
    """Append-only loan history. Records are closed, never deleted."""

    @staticmethod
    def find_active(account_id: str, book_id: str):
        return LoanRecord.query.filter(
            LoanRecord.account_id == account_id,
            LoanRecord.book_id == book_id,
            LoanRecord.returned_at.is_(None),
        ).first()

    @staticmethod
    def has_closed(account_id: str, book_id: str) -> bool:
        return LoanRecord.query.filter(
            LoanRecord.account_id == account_id,
            LoanRecord.book_id == book_id,
            LoanRecord.returned_at.is_not(None),
        ).first() is not None

    @staticmethod
    def insert_active(account_id: str, book_id: str, timestamp: datetime) -> LoanRecord:
        loan = LoanRecord(account_id=account_id, book_id=book_id, borrowed_at=timestamp)
        db.session.add(loan)
        # flush now so the active-pair index rejects a duplicate here
        db.session.flush()
        return loan

    @staticmethod
    def close_active(record_id: str, timestamp: datetime) -> LoanRecord:
        result = db.session.execute(
            update(LoanRecord)
            .where(LoanRecord.id == record_id, LoanRecord.returned_at.is_(None))
            .values(returned_at=timestamp)
            .execution_options(synchronize_session=False)
        )
        loan = db.session.get(LoanRecord, record_id)
        if loan is None:
            raise BorrowRecordNotFound()
        if result.rowcount == 0:
            raise AlreadyReturned()
        db.session.refresh(loan)
        return loan

    @staticmethod
    def count_active(book_id: str) -> int:
        return db.session.execute(
            select(func.count(LoanRecord.id)).where(
                LoanRecord.book_id == book_id,
                LoanRecord.returned_at.is_(None),
            )
        ).scalar_one()

    @staticmethod
    def list_by_account(account_id: str):
        return LoanRecord.query.filter_by(account_id=account_id).order_by(LoanRecord.borrowed_at.desc()).all()

    @staticmethod
    def list_all():
        return LoanRecord.query.order_by(LoanRecord.borrowed_at.desc()).all()

from contextlib import contextmanager
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from library_api.extensions import db
from library_api.errors import (
    AlreadyBorrowed,
    AlreadyReturned,
    AppError,
    BookNotFound,
    BorrowRecordNotFound,
    InvalidAdjustment,
    NotAvailable,
)
from library_api.repositories.inventory_store import InventoryStore
from library_api.repositories.loan_ledger import LoanLedger
from library_api.services.book_service import BookService
from library_api.utils.keyed_lock import KeyedLock


class ReservationEngine:
    """
    Borrow/return against the inventory counters and the loan ledger.

    All work for one book runs inside that book's lock and ends in exactly
    one commit or one rollback, so availability always equals total copies
    minus open loans. Other books are never blocked.
    """

    def __init__(self, lock_timeout: float = 5.0):
        self.lock_timeout = lock_timeout
        self._locks = KeyedLock()

    def init_app(self, app):
        self.lock_timeout = app.config.get("BORROW_LOCK_TIMEOUT", self.lock_timeout)
        app.extensions["reservation_engine"] = self

    @contextmanager
    def locked(self, book_id: str):
        """Per-book critical section, also used by catalog edits."""
        with self._locks.hold(str(book_id), self.lock_timeout):
            yield

    def borrow(self, account_id: str, book_id: str):
        with self.locked(book_id):
            try:
                if not BookService.exists(book_id):
                    raise BookNotFound()
                if LoanLedger.find_active(account_id, book_id) is not None:
                    raise AlreadyBorrowed()
                try:
                    InventoryStore.adjust(book_id, -1)
                except InvalidAdjustment:
                    raise NotAvailable() from None
                loan = LoanLedger.insert_active(account_id, book_id, datetime.utcnow())
                db.session.commit()
            except IntegrityError:
                # another process opened the same pair first
                db.session.rollback()
                current_app.logger.warning(
                    f"[reservation] borrow rejected by active-loan index account={account_id} book={book_id}"
                )
                raise AlreadyBorrowed()
            except AppError as e:
                db.session.rollback()
                current_app.logger.info(
                    f"[reservation] borrow refused account={account_id} book={book_id} reason={e.kind}"
                )
                raise
            except Exception:
                db.session.rollback()
                raise

        current_app.logger.info(f"[reservation] borrowed loan={loan.id} account={account_id} book={book_id}")
        return loan

    def return_book(self, account_id: str, book_id: str):
        with self.locked(book_id):
            try:
                active = LoanLedger.find_active(account_id, book_id)
                if active is None:
                    if LoanLedger.has_closed(account_id, book_id):
                        raise AlreadyReturned()
                    raise BorrowRecordNotFound()

                loan = LoanLedger.close_active(active.id, datetime.utcnow())
                InventoryStore.adjust(book_id, +1, clamp=True)
                db.session.commit()
            except AppError as e:
                db.session.rollback()
                current_app.logger.info(
                    f"[reservation] return refused account={account_id} book={book_id} reason={e.kind}"
                )
                raise
            except Exception:
                db.session.rollback()
                raise

        current_app.logger.info(f"[reservation] returned loan={loan.id} account={account_id} book={book_id}")
        return loan


def get_engine() -> ReservationEngine:
    return current_app.extensions["reservation_engine"]

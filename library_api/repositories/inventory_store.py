from dataclasses import dataclass

from sqlalchemy import case, select, update

from library_api.extensions import db
from library_api.errors import BookNotFound, InvalidAdjustment
from library_api.models.book import Book


@dataclass(frozen=True)
class Availability:
    book_id: str
    total_copies: int
    available_copies: int

    @property
    def on_loan(self) -> int:
        return self.total_copies - self.available_copies


class InventoryStore:
    """
    Copy counters of the catalog. Every write is a single conditional
    UPDATE so the bounds hold even when two processes share the database.
    Nothing here commits; the caller owns the transaction.
    """

    @staticmethod
    def get_availability(book_id: str) -> Availability:
        row = db.session.execute(
            select(Book.total_copies, Book.available_copies).where(Book.id == book_id)
        ).first()
        if row is None:
            raise BookNotFound()
        return Availability(book_id, row.total_copies, row.available_copies)

    @staticmethod
    def adjust(book_id: str, delta: int, clamp: bool = False) -> Availability:
        new_value = Book.available_copies + delta

        stmt = update(Book).where(Book.id == book_id)
        if clamp:
            stmt = stmt.values(available_copies=case(
                (new_value < 0, 0),
                (new_value > Book.total_copies, Book.total_copies),
                else_=new_value,
            ))
        else:
            stmt = stmt.where(new_value >= 0, new_value <= Book.total_copies).values(
                available_copies=new_value
            )

        result = db.session.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            # missing row or bound violated; tell them apart
            current = InventoryStore.get_availability(book_id)
            raise InvalidAdjustment(
                f"Cannot apply {delta:+d} to {current.available_copies}/{current.total_copies} copies"
            )
        InventoryStore._expire(book_id)
        return InventoryStore.get_availability(book_id)

    @staticmethod
    def set_totals(book_id: str, total: int) -> Availability:
        if total < 0:
            raise InvalidAdjustment("total_copies must not be negative")

        current = InventoryStore.get_availability(book_id)
        delta = total - current.total_copies
        if delta == 0:
            return current

        new_available = Book.available_copies + delta
        result = db.session.execute(
            update(Book)
            .where(
                Book.id == book_id,
                Book.total_copies == current.total_copies,
                new_available >= 0,
            )
            .values(total_copies=total, available_copies=new_available)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidAdjustment(
                f"Cannot set total to {total}: {current.on_loan} copies are on loan"
            )
        InventoryStore._expire(book_id)
        return InventoryStore.get_availability(book_id)

    @staticmethod
    def _expire(book_id: str):
        # keep an already loaded Book in the session in sync with the row
        book = db.session.identity_map.get(db.session.identity_key(Book, book_id))
        if book is not None:
            db.session.expire(book)

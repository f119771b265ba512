import csv
import io

from flask import current_app

from library_api.extensions import db
from library_api.errors import (
    AppError,
    BookExisted,
    BookInUse,
    BookNotFound,
    CsvImportFailed,
    InvalidCsvFormat,
    ValidationFailed,
)
from library_api.models.book import Book
from library_api.repositories.book_repo import BookRepo
from library_api.repositories.inventory_store import InventoryStore
from library_api.repositories.loan_ledger import LoanLedger
from library_api.services.media_service import get_media_client

CSV_MIN_COLUMNS = 4


def _book_lock(book_id: str):
    return current_app.extensions["reservation_engine"].locked(book_id)


def _parse_copies(value, field="total_copies") -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed({field: "must be an integer"}) from None
    if n < 0:
        raise ValidationFailed({field: "must not be negative"})
    return n


class BookService:
    @staticmethod
    def exists(book_id: str) -> bool:
        return BookRepo.get(book_id) is not None

    @staticmethod
    def list_books():
        return BookRepo.list_all()

    @staticmethod
    def search_books(keyword: str):
        if not keyword or not keyword.strip():
            return BookRepo.list_all()
        return BookRepo.search(keyword)

    @staticmethod
    def get_book(book_id: str):
        book = BookRepo.get(book_id)
        if not book:
            raise BookNotFound()
        return book

    @staticmethod
    def create_book(data: dict):
        title = (data.get("title") or "").strip()
        author = (data.get("author") or "").strip()
        if not title or not author:
            raise ValidationFailed({"title/author": "required"})
        if BookRepo.get_by_title(title):
            raise BookExisted()

        total = _parse_copies(data.get("total_copies", 1))
        book = Book(
            title=title,
            author=author,
            category=(data.get("category") or "").strip() or None,
            total_copies=total,
            available_copies=total,
        )
        BookRepo.create(book)
        current_app.logger.info(f"[catalog] created book={book.id} title={title!r} copies={total}")
        return book

    @staticmethod
    def update_book(book_id: str, data: dict):
        with _book_lock(book_id):
            book = BookService.get_book(book_id)
            try:
                if "title" in data:
                    title = (data["title"] or "").strip()
                    if not title:
                        raise ValidationFailed({"title": "required"})
                    other = BookRepo.get_by_title(title)
                    if other and other.id != book.id:
                        raise BookExisted()
                    book.title = title
                if "author" in data:
                    author = (data["author"] or "").strip()
                    if not author:
                        raise ValidationFailed({"author": "required"})
                    book.author = author
                if "category" in data:
                    book.category = (data["category"] or "").strip() or None

                if "total_copies" in data:
                    db.session.flush()
                    InventoryStore.set_totals(book_id, _parse_copies(data["total_copies"]))

                BookRepo.update()
            except AppError:
                db.session.rollback()
                raise

        current_app.logger.info(f"[catalog] updated book={book_id} fields={sorted(data)}")
        return BookService.get_book(book_id)

    @staticmethod
    def delete_book(book_id: str):
        with _book_lock(book_id):
            book = BookService.get_book(book_id)
            if LoanLedger.count_active(book_id) > 0:
                raise BookInUse()
            if book.image_public_id:
                get_media_client().delete(book.image_public_id)
            BookRepo.delete(book)
        current_app.logger.info(f"[catalog] deleted book={book_id}")

    @staticmethod
    def import_books_from_csv(filename: str, stream) -> list:
        """
        Bulk insert from a CSV upload. Header row is skipped; columns are
        title, author, category, total_copies (an old fifth
        available_copies column is tolerated and ignored, new titles always
        start fully available). Titles already in the catalog are skipped.
        All rows land in one transaction or none do.
        """
        if not filename or not filename.lower().endswith(".csv"):
            raise InvalidCsvFormat("File must be a .csv")

        try:
            raw = stream.read()
            text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        except UnicodeDecodeError as e:
            raise InvalidCsvFormat(f"File is not UTF-8: {e}") from e

        rows = list(csv.reader(io.StringIO(text)))[1:]
        parsed = []
        for line_no, row in enumerate(rows, start=2):
            if not any(cell.strip() for cell in row):
                continue
            if len(row) < CSV_MIN_COLUMNS:
                raise InvalidCsvFormat(f"Line {line_no}: expected at least {CSV_MIN_COLUMNS} columns")
            title, author, category = (c.strip() for c in row[:3])
            if not title or not author:
                raise InvalidCsvFormat(f"Line {line_no}: title and author are required")
            try:
                total = int(row[3].strip())
            except ValueError:
                raise InvalidCsvFormat(f"Line {line_no}: total_copies must be an integer") from None
            if total < 0:
                raise InvalidCsvFormat(f"Line {line_no}: total_copies must not be negative")
            parsed.append((title, author, category or None, total))

        existing = BookRepo.titles_in([p[0] for p in parsed])
        created = []
        try:
            for title, author, category, total in parsed:
                if title in existing:
                    continue
                existing.add(title)
                created.append(BookRepo.add(Book(
                    title=title,
                    author=author,
                    category=category,
                    total_copies=total,
                    available_copies=total,
                )))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.exception(f"[catalog] csv import failed: {e}")
            raise CsvImportFailed() from e

        current_app.logger.info(
            f"[catalog] csv import {filename}: created={len(created)} skipped={len(parsed) - len(created)}"
        )
        return created

    @staticmethod
    def update_book_image(book_id: str, filename: str, content: bytes, content_type=None):
        book = BookService.get_book(book_id)
        client = get_media_client()

        url, public_id = client.upload(filename, content, content_type)
        if book.image_public_id:
            try:
                client.delete(book.image_public_id)
            except AppError:
                # keep the db pointing at something that exists
                client.delete(public_id)
                raise

        book.image_url = url
        book.image_public_id = public_id
        BookRepo.update()
        current_app.logger.info(f"[catalog] image set book={book_id} public_id={public_id}")
        return book

    @staticmethod
    def get_book_image_url(book_id: str):
        book = BookRepo.get(book_id)
        return book.image_url if book else None

    @staticmethod
    def delete_book_image(book_id: str):
        book = BookService.get_book(book_id)
        if book.image_public_id:
            get_media_client().delete(book.image_public_id)
        book.image_url = None
        book.image_public_id = None
        BookRepo.update()

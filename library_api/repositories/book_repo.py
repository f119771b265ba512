from sqlalchemy import or_

from library_api.models.book import Book
from library_api.extensions import db


class BookRepo:
    @staticmethod
    def list_all():
        return Book.query.order_by(Book.title.asc()).all()

    @staticmethod
    def get(book_id: str):
        return db.session.get(Book, book_id)

    @staticmethod
    def get_by_title(title: str):
        return Book.query.filter_by(title=title).first()

    @staticmethod
    def titles_in(titles):
        if not titles:
            return set()
        rows = db.session.query(Book.title).filter(Book.title.in_(titles)).all()
        return {r.title for r in rows}

    @staticmethod
    def search(keyword: str):
        pattern = f"%{keyword.strip()}%"
        return (
            Book.query
            .filter(or_(
                Book.title.ilike(pattern),
                Book.author.ilike(pattern),
                Book.category.ilike(pattern),
            ))
            .order_by(Book.title.asc())
            .all()
        )

    @staticmethod
    def add(book: Book):
        db.session.add(book)
        return book

    @staticmethod
    def create(book: Book):
        db.session.add(book)
        db.session.commit()
        return book

    @staticmethod
    def update():
        db.session.commit()

    @staticmethod
    def delete(book: Book):
        db.session.delete(book)
        db.session.commit()

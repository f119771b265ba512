import uuid
from datetime import datetime
from library_api.extensions import db


class Book(db.Model):
    __tablename__ = "books"
    __table_args__ = (
        db.CheckConstraint("total_copies >= 0", name="ck_books_total_non_negative"),
        db.CheckConstraint(
            "available_copies >= 0 AND available_copies <= total_copies",
            name="ck_books_available_in_range",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(200), nullable=False, unique=True, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)
    category = db.Column(db.String(100), nullable=True, index=True)

    total_copies = db.Column(db.Integer, nullable=False, default=1)
    available_copies = db.Column(db.Integer, nullable=False, default=1)

    image_url = db.Column(db.String(500), nullable=True)
    image_public_id = db.Column(db.String(200), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

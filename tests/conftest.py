from datetime import date

import pytest
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash

from library_api import create_app
from library_api.config import TestConfig
from library_api.extensions import db
from library_api.models.account import Account
from library_api.models.book import Book


@pytest.fixture
def app(tmp_path):
    # a file database so worker threads share one store
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'library.db'}"

    app = create_app(_Config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def engine(app):
    return app.extensions["reservation_engine"]


@pytest.fixture
def make_book(app):
    counter = {"n": 0}

    def _make(total=1, title=None, author="Author", category="General"):
        counter["n"] += 1
        with app.app_context():
            book = Book(
                title=title or f"Book {counter['n']}",
                author=author,
                category=category,
                total_copies=total,
                available_copies=total,
            )
            db.session.add(book)
            db.session.commit()
            return book.id

    return _make


@pytest.fixture
def make_account(app):
    counter = {"n": 0}

    def _make(role="user", active=True, email=None, password="secret1"):
        counter["n"] += 1
        with app.app_context():
            account = Account(
                email=email or f"reader{counter['n']}@example.com",
                password_hash=generate_password_hash(password),
                first_name="Ada",
                last_name="Reader",
                dob=date(1990, 1, 1),
                phone="0123456789",
                role=role,
                active=active,
            )
            db.session.add(account)
            db.session.commit()
            return account.id

    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(account_id, role="user"):
        with app.app_context():
            token = create_access_token(identity=account_id, additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(make_account, auth_headers):
    return auth_headers(make_account(role="admin"), role="admin")

import random
import threading

import pytest

from library_api.errors import (
    AlreadyBorrowed,
    AlreadyReturned,
    BookNotFound,
    BorrowRecordNotFound,
    Busy,
    NotAvailable,
)
from library_api.models.loan import LoanRecord
from library_api.repositories.inventory_store import InventoryStore
from library_api.repositories.loan_ledger import LoanLedger


def available(book_id):
    return InventoryStore.get_availability(book_id).available_copies


def assert_consistent(book_id):
    a = InventoryStore.get_availability(book_id)
    assert a.available_copies == a.total_copies - LoanLedger.count_active(book_id)
    assert 0 <= a.available_copies <= a.total_copies


class TestBorrow:
    def test_two_copies_scenario(self, engine, make_book, ctx):
        b1 = make_book(total=2)

        engine.borrow("A", b1)
        assert available(b1) == 1
        engine.borrow("C", b1)
        assert available(b1) == 0
        with pytest.raises(NotAvailable):
            engine.borrow("D", b1)
        assert available(b1) == 0

        engine.return_book("A", b1)
        assert available(b1) == 1
        assert_consistent(b1)

    def test_same_pair_twice(self, engine, make_book, ctx):
        b1 = make_book(total=3)
        engine.borrow("A", b1)
        with pytest.raises(AlreadyBorrowed):
            engine.borrow("A", b1)
        assert available(b1) == 2
        assert_consistent(b1)

    def test_unknown_book(self, engine, ctx):
        with pytest.raises(BookNotFound):
            engine.borrow("A", "no-such-book")

    def test_loan_record_fields(self, engine, make_book, ctx):
        b1 = make_book()
        loan = engine.borrow("A", b1)
        assert loan.account_id == "A"
        assert loan.book_id == b1
        assert loan.borrowed_at is not None
        assert loan.returned_at is None

    def test_already_borrowed_checked_before_availability(self, engine, make_book, ctx):
        b1 = make_book(total=1)
        engine.borrow("A", b1)
        with pytest.raises(AlreadyBorrowed):
            engine.borrow("A", b1)


class TestReturn:
    def test_return_twice(self, engine, make_book, ctx):
        b1 = make_book(total=1)
        engine.borrow("A", b1)

        loan = engine.return_book("A", b1)
        assert loan.returned_at is not None
        with pytest.raises(AlreadyReturned):
            engine.return_book("A", b1)

        assert available(b1) == 1
        assert_consistent(b1)

    def test_return_without_loan(self, engine, make_book, ctx):
        b1 = make_book()
        with pytest.raises(BorrowRecordNotFound):
            engine.return_book("A", b1)

    def test_borrow_again_after_return(self, engine, make_book, ctx):
        b1 = make_book(total=1)
        engine.borrow("A", b1)
        engine.return_book("A", b1)
        engine.borrow("A", b1)
        assert LoanRecord.query.filter_by(account_id="A", book_id=b1).count() == 2
        assert_consistent(b1)

    def test_history_is_kept(self, engine, make_book, ctx):
        b1 = make_book(total=1)
        engine.borrow("A", b1)
        engine.return_book("A", b1)
        loans = LoanLedger.list_by_account("A")
        assert len(loans) == 1
        assert loans[0].returned_at is not None


class TestLocking:
    def test_busy_when_book_lock_is_held(self, engine, make_book, ctx):
        b1 = make_book()
        engine.lock_timeout = 0.05
        with engine.locked(b1):
            with pytest.raises(Busy):
                engine.borrow("A", b1)
            with pytest.raises(Busy):
                engine.return_book("A", b1)
        assert available(b1) == 1

    def test_other_books_are_not_blocked(self, app, engine, make_book):
        b1 = make_book()
        b2 = make_book()
        outcome = []

        def worker():
            with app.app_context():
                engine.borrow("A", b2)
                outcome.append("ok")

        with app.app_context():
            with engine.locked(b1):
                t = threading.Thread(target=worker)
                t.start()
                t.join(timeout=5)

        assert outcome == ["ok"]


def _race(app, engine, calls):
    barrier = threading.Barrier(len(calls))
    results = []
    guard = threading.Lock()

    def worker(account_id, book_id):
        with app.app_context():
            barrier.wait()
            try:
                engine.borrow(account_id, book_id)
                outcome = "ok"
            except (NotAvailable, AlreadyBorrowed) as e:
                outcome = e.kind
            with guard:
                results.append(outcome)

    threads = [threading.Thread(target=worker, args=c) for c in calls]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results


class TestConcurrency:
    def test_last_copy_has_one_winner(self, app, engine, make_book):
        engine.lock_timeout = 20
        b1 = make_book(total=1)
        n = 8

        results = _race(app, engine, [(f"acct-{i}", b1) for i in range(n)])

        assert results.count("ok") == 1
        assert results.count("NOT_AVAILABLE") == n - 1
        with app.app_context():
            assert available(b1) == 0
            assert LoanLedger.count_active(b1) == 1

    def test_same_pair_has_one_active_loan(self, app, engine, make_book):
        engine.lock_timeout = 20
        b1 = make_book(total=5)
        n = 6

        results = _race(app, engine, [("acct-1", b1)] * n)

        assert results.count("ok") == 1
        assert results.count("ALREADY_BORROWED") == n - 1
        with app.app_context():
            assert available(b1) == 4
            assert_consistent(b1)


def test_invariants_hold_over_random_sequence(engine, make_book, ctx):
    rng = random.Random(1234)
    books = [make_book(total=rng.randint(1, 3)) for _ in range(3)]
    accounts = ["A", "B", "C", "D"]

    for _ in range(200):
        account_id = rng.choice(accounts)
        book_id = rng.choice(books)
        op = engine.borrow if rng.random() < 0.55 else engine.return_book
        try:
            op(account_id, book_id)
        except (NotAvailable, AlreadyBorrowed, BorrowRecordNotFound, AlreadyReturned):
            pass

        for b in books:
            assert_consistent(b)
        for a in accounts:
            for b in books:
                active = LoanRecord.query.filter(
                    LoanRecord.account_id == a,
                    LoanRecord.book_id == b,
                    LoanRecord.returned_at.is_(None),
                ).count()
                assert active <= 1

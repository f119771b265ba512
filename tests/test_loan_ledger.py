from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from library_api.errors import AlreadyReturned, BorrowRecordNotFound
from library_api.extensions import db
from library_api.repositories.loan_ledger import LoanLedger


def test_insert_and_find_active(make_book, ctx):
    book_id = make_book()
    loan = LoanLedger.insert_active("acct-1", book_id, datetime(2024, 1, 1))
    db.session.commit()

    found = LoanLedger.find_active("acct-1", book_id)
    assert found is not None
    assert found.id == loan.id
    assert found.active
    assert LoanLedger.find_active("acct-2", book_id) is None
    assert LoanLedger.count_active(book_id) == 1


def test_second_active_loan_for_pair_violates_index(make_book, ctx):
    book_id = make_book(total=3)
    LoanLedger.insert_active("acct-1", book_id, datetime(2024, 1, 1))
    db.session.commit()

    with pytest.raises(IntegrityError):
        LoanLedger.insert_active("acct-1", book_id, datetime(2024, 1, 2))
    db.session.rollback()


def test_closed_loan_does_not_block_a_new_one(make_book, ctx):
    book_id = make_book()
    loan = LoanLedger.insert_active("acct-1", book_id, datetime(2024, 1, 1))
    LoanLedger.close_active(loan.id, datetime(2024, 1, 5))
    LoanLedger.insert_active("acct-1", book_id, datetime(2024, 2, 1))
    db.session.commit()

    assert LoanLedger.has_closed("acct-1", book_id)
    assert LoanLedger.count_active(book_id) == 1
    assert len(LoanLedger.list_by_account("acct-1")) == 2


def test_close_twice(make_book, ctx):
    book_id = make_book()
    loan = LoanLedger.insert_active("acct-1", book_id, datetime(2024, 1, 1))
    closed = LoanLedger.close_active(loan.id, datetime(2024, 1, 5))
    assert closed.returned_at == datetime(2024, 1, 5)

    with pytest.raises(AlreadyReturned):
        LoanLedger.close_active(loan.id, datetime(2024, 1, 6))
    db.session.commit()
    assert LoanLedger.list_all()[0].returned_at == datetime(2024, 1, 5)


def test_close_unknown(ctx):
    with pytest.raises(BorrowRecordNotFound):
        LoanLedger.close_active("missing", datetime(2024, 1, 1))
    db.session.rollback()

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from library_api.errors import Unauthorized, UserNotExisted, ValidationFailed
from library_api.repositories.account_repo import AccountRepo
from library_api.repositories.loan_ledger import LoanLedger
from library_api.services.reservation_engine import get_engine
from library_api.utils.decorators import role_required

borrowing_bp = Blueprint("borrowing", __name__)


def _loan_json(x):
    return {
        "id": x.id,
        "account_id": x.account_id,
        "book_id": x.book_id,
        "borrowed_at": x.borrowed_at.isoformat(),
        "returned_at": x.returned_at.isoformat() if x.returned_at else None,
        "active": x.returned_at is None,
    }


def _pair_from_request():
    """accountId defaults to the caller; only admins may act for someone else."""
    caller = get_jwt_identity()
    account_id = (request.args.get("accountId") or caller).strip()
    book_id = (request.args.get("bookId") or "").strip()
    if not book_id:
        raise ValidationFailed({"bookId": "required"})
    if account_id != caller:
        if (get_jwt() or {}).get("role") != "admin":
            raise Unauthorized()
        if AccountRepo.get_by_id(account_id) is None:
            raise UserNotExisted()
    return account_id, book_id


@borrowing_bp.post("/borrow")
@jwt_required()
def borrow_book():
    account_id, book_id = _pair_from_request()
    loan = get_engine().borrow(account_id, book_id)
    return jsonify({"success": True, "message": "Book borrowed successfully!", "data": _loan_json(loan)}), 201


@borrowing_bp.post("/return")
@jwt_required()
def return_book():
    account_id, book_id = _pair_from_request()
    loan = get_engine().return_book(account_id, book_id)
    return jsonify({"success": True, "message": "Book returned successfully!", "data": _loan_json(loan)})


@borrowing_bp.get("/my")
@jwt_required()
def my_loans():
    loans = LoanLedger.list_by_account(get_jwt_identity())
    return jsonify({"success": True, "data": [_loan_json(x) for x in loans]})


@borrowing_bp.get("/")
@jwt_required()
@role_required("admin")
def all_loans():
    return jsonify({"success": True, "data": [_loan_json(x) for x in LoanLedger.list_all()]})

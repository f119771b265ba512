# library_api/controllers/book_controller.py

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from library_api.errors import BookNotFound, InvalidCsvFormat, ValidationFailed
from library_api.services.book_service import BookService
from library_api.utils.decorators import role_required

book_bp = Blueprint("books", __name__)


def _book_json(b):
    return {
        "id": b.id,
        "title": b.title,
        "author": b.author,
        "category": b.category,
        "total_copies": b.total_copies,
        "available_copies": b.available_copies,
        "image_url": b.image_url,
    }


@book_bp.get("/")
def list_books():
    books = BookService.list_books()
    return jsonify({"success": True, "data": [_book_json(b) for b in books]})


@book_bp.get("/search")
def search_books():
    books = BookService.search_books(request.args.get("keyword", ""))
    return jsonify({"success": True, "data": [_book_json(b) for b in books]})


@book_bp.get("/<book_id>")
def get_book(book_id: str):
    b = BookService.get_book(book_id)
    return jsonify({"success": True, "data": _book_json(b)})


@book_bp.post("/")
@jwt_required()
@role_required("admin")
def create_book():
    data = request.get_json(silent=True) or {}
    b = BookService.create_book(data)
    return jsonify({"success": True, "data": _book_json(b)}), 201


@book_bp.put("/<book_id>")
@jwt_required()
@role_required("admin")
def update_book(book_id: str):
    data = request.get_json(silent=True) or {}
    b = BookService.update_book(book_id, data)
    return jsonify({"success": True, "data": _book_json(b)})


@book_bp.delete("/<book_id>")
@jwt_required()
@role_required("admin")
def delete_book(book_id: str):
    BookService.delete_book(book_id)
    return jsonify({"success": True})


@book_bp.post("/import")
@jwt_required()
@role_required("admin")
def import_books():
    upload = request.files.get("file")
    if upload is None:
        raise InvalidCsvFormat("file is required")
    created = BookService.import_books_from_csv(upload.filename, upload.stream)
    return jsonify({"success": True, "imported": len(created), "data": [_book_json(b) for b in created]}), 201


@book_bp.post("/<book_id>/image")
@jwt_required()
@role_required("admin")
def upload_image(book_id: str):
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationFailed({"file": "required"})
    b = BookService.update_book_image(book_id, upload.filename, upload.read(), upload.mimetype)
    return jsonify({"success": True, "data": _book_json(b)})


@book_bp.get("/<book_id>/image")
def get_image(book_id: str):
    if not BookService.exists(book_id):
        raise BookNotFound()
    return jsonify({"success": True, "image_url": BookService.get_book_image_url(book_id)})


@book_bp.delete("/<book_id>/image")
@jwt_required()
@role_required("admin")
def delete_image(book_id: str):
    BookService.delete_book_image(book_id)
    return jsonify({"success": True})

"""Error kinds raised by the services and turned into JSON by the app."""
from enum import Enum

from flask import jsonify
from werkzeug.exceptions import HTTPException


class ErrorCode(Enum):
    UNCATEGORIZED_EXCEPTION = (9999, "Uncategorized error", 500)
    VALIDATION_FAILED = (1001, "Invalid request", 400)
    USER_EXISTED = (1002, "User existed", 409)
    USER_NOT_EXISTED = (1002, "User not existed", 404)
    BOOK_EXISTED = (1002, "Book existed", 409)
    UNAUTHENTICATED = (1004, "Unauthenticated", 401)
    ACCOUNT_NOT_ACTIVE = (1004, "Account is not activated", 403)
    UNAUTHORIZED = (1005, "You do not have permission", 403)
    INVALID_CSV_FORMAT = (1006, "Invalid CSV format", 400)
    CSV_IMPORT_FAILED = (1007, "CSV import failed", 400)
    INVALID_VERIFICATION_CODE = (1007, "Invalid verification code", 400)
    BOOK_NOT_FOUND = (1008, "Book not found", 404)
    BOOK_IN_USE = (1008, "Book has copies on loan", 409)
    ALREADY_BORROWED = (1009, "You have already borrowed this book!", 409)
    NOT_AVAILABLE = (1009, "No copies of the book are available!", 409)
    BORROW_RECORD_NOT_FOUND = (1009, "No borrowing record found for this user and book!", 404)
    ALREADY_RETURNED = (1009, "This book has already been returned!", 409)
    INVALID_ADJUSTMENT = (1010, "Copy count adjustment out of bounds", 422)
    BUSY = (1011, "Book is busy, please retry", 503)
    MEDIA_SERVICE_ERROR = (1012, "Media service request failed", 502)
    MAINTENANCE_MODE = (1013, "System is under maintenance", 503)

    def __init__(self, code, message, status):
        self.code = code
        self.default_message = message
        self.status = status


class AppError(Exception):
    error_code = ErrorCode.UNCATEGORIZED_EXCEPTION

    def __init__(self, message=None):
        super().__init__(message or self.error_code.default_message)
        self.message = message or self.error_code.default_message

    @property
    def kind(self) -> str:
        return self.error_code.name

    def to_response(self):
        body = {
            "success": False,
            "code": self.error_code.code,
            "error": self.kind,
            "message": self.message,
        }
        return jsonify(body), self.error_code.status


# reservation core
class BookNotFound(AppError):
    error_code = ErrorCode.BOOK_NOT_FOUND


class AlreadyBorrowed(AppError):
    error_code = ErrorCode.ALREADY_BORROWED


class NotAvailable(AppError):
    error_code = ErrorCode.NOT_AVAILABLE


class BorrowRecordNotFound(AppError):
    error_code = ErrorCode.BORROW_RECORD_NOT_FOUND


class AlreadyReturned(AppError):
    error_code = ErrorCode.ALREADY_RETURNED


class InvalidAdjustment(AppError):
    error_code = ErrorCode.INVALID_ADJUSTMENT


class Busy(AppError):
    error_code = ErrorCode.BUSY


# catalog
class BookExisted(AppError):
    error_code = ErrorCode.BOOK_EXISTED


class BookInUse(AppError):
    error_code = ErrorCode.BOOK_IN_USE


class InvalidCsvFormat(AppError):
    error_code = ErrorCode.INVALID_CSV_FORMAT


class CsvImportFailed(AppError):
    error_code = ErrorCode.CSV_IMPORT_FAILED


class MediaServiceError(AppError):
    error_code = ErrorCode.MEDIA_SERVICE_ERROR


# accounts
class ValidationFailed(AppError):
    error_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, errors: dict):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors

    def to_response(self):
        resp, status = super().to_response()
        payload = resp.get_json()
        payload["errors"] = self.errors
        return jsonify(payload), status


class UserExisted(AppError):
    error_code = ErrorCode.USER_EXISTED


class UserNotExisted(AppError):
    error_code = ErrorCode.USER_NOT_EXISTED


class InvalidVerificationCode(AppError):
    error_code = ErrorCode.INVALID_VERIFICATION_CODE


class AccountNotActive(AppError):
    error_code = ErrorCode.ACCOUNT_NOT_ACTIVE


class Unauthenticated(AppError):
    error_code = ErrorCode.UNAUTHENTICATED


class Unauthorized(AppError):
    error_code = ErrorCode.UNAUTHORIZED


class MaintenanceMode(AppError):
    error_code = ErrorCode.MAINTENANCE_MODE


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def _handle_app_error(e: AppError):
        resp, status = e.to_response()
        if isinstance(e, Busy):
            resp.headers["Retry-After"] = "1"
        return resp, status

    @app.errorhandler(404)
    def _handle_not_found(_e):
        return jsonify({"success": False, "message": "Not found"}), 404

    @app.errorhandler(Exception)
    def _handle_unexpected(e):
        if isinstance(e, HTTPException):
            return jsonify({"success": False, "message": e.description}), e.code
        app.logger.exception(f"[app] Unexpected error: {e}")
        return AppError().to_response()

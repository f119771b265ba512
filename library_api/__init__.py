from flask import Flask, jsonify
from library_api.config import Config
from library_api.extensions import db, migrate, jwt, mail
from library_api.errors import Unauthenticated, register_error_handlers
from library_api.services.media_service import MediaClient
from library_api.services.reservation_engine import ReservationEngine
from library_api.utils.maintenance import register_maintenance_guard


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    # models must be imported before create_all / migrations see the metadata
    from library_api.models import account, book, loan, revoked_token, system_config  # noqa: F401

    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    ReservationEngine().init_app(app)
    MediaClient().init_app(app)

    @jwt.token_in_blocklist_loader
    def _token_revoked(_jwt_header, jwt_payload):
        from library_api.repositories.token_repo import TokenRepo
        return TokenRepo.is_revoked(jwt_payload["jti"])

    @jwt.unauthorized_loader
    def _missing_token(reason):
        return Unauthenticated(reason).to_response()

    @jwt.invalid_token_loader
    def _invalid_token(reason):
        return Unauthenticated(reason).to_response()

    @jwt.expired_token_loader
    def _expired_token(_jwt_header, _jwt_payload):
        return Unauthenticated("Token has expired").to_response()

    @jwt.revoked_token_loader
    def _revoked_token(_jwt_header, _jwt_payload):
        return Unauthenticated("Token has been revoked").to_response()

    register_error_handlers(app)
    register_maintenance_guard(app)

    from library_api.controllers.auth_controller import auth_bp
    from library_api.controllers.book_controller import book_bp
    from library_api.controllers.borrowing_controller import borrowing_bp
    from library_api.controllers.system_config_controller import system_config_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(book_bp, url_prefix="/books")
    app.register_blueprint(borrowing_bp, url_prefix="/borrowing")
    admin_prefix = app.config.get("ADMIN_URL_PREFIX", "/admin").rstrip("/")
    app.register_blueprint(system_config_bp, url_prefix=f"{admin_prefix}/system-config")

    @app.get("/health")
    def health():
        return jsonify({"ok": True})

    from library_api.tasks.scheduler import start_scheduler
    start_scheduler(app)

    return app

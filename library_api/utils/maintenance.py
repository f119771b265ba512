from flask import current_app, request

from library_api.errors import MaintenanceMode
from library_api.services.system_config_service import SystemConfigService


def _exempt(path: str) -> bool:
    prefix = current_app.config.get("ADMIN_URL_PREFIX", "/admin").rstrip("/")
    # admins must still be able to log in and switch it off
    return (
        path == "/health"
        or path in ("/auth/login", "/auth/refresh")
        or path.startswith(f"{prefix}/system-config")
    )


def register_maintenance_guard(app):
    @app.before_request
    def _maintenance_guard():
        if _exempt(request.path):
            return None
        if SystemConfigService.is_maintenance():
            raise MaintenanceMode()
        return None

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from library_api.errors import ValidationFailed
from library_api.services.system_config_service import SystemConfigService
from library_api.utils.decorators import role_required

system_config_bp = Blueprint("system_config", __name__)


def _config_json(cfg):
    return {
        "maintenance_mode": bool(cfg.maintenance_mode),
        "updated_at": cfg.updated_at.isoformat() if cfg.updated_at else None,
    }


@system_config_bp.get("/")
@jwt_required()
@role_required("admin")
def get_config():
    return jsonify({"success": True, "data": _config_json(SystemConfigService.get_config())})


@system_config_bp.post("/maintenance")
@jwt_required()
@role_required("admin")
def update_maintenance_mode():
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("maintenance_mode"), bool):
        raise ValidationFailed({"maintenance_mode": "must be true or false"})
    cfg = SystemConfigService.set_maintenance_mode(data["maintenance_mode"])
    return jsonify({"success": True, "data": _config_json(cfg)})

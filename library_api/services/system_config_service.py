from flask import current_app

from library_api.repositories.system_config_repo import SystemConfigRepo


class SystemConfigService:
    @staticmethod
    def get_config():
        return SystemConfigRepo.get_or_create()

    @staticmethod
    def is_maintenance() -> bool:
        return bool(SystemConfigRepo.get_or_create().maintenance_mode)

    @staticmethod
    def set_maintenance_mode(enabled: bool):
        cfg = SystemConfigRepo.get_or_create()
        cfg.maintenance_mode = bool(enabled)
        SystemConfigRepo.commit()
        current_app.logger.info(f"[system-config] maintenance_mode={cfg.maintenance_mode}")
        return cfg

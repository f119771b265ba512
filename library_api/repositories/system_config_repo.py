from sqlalchemy.exc import IntegrityError

from library_api.models.system_config import SystemConfig
from library_api.extensions import db


class SystemConfigRepo:
    @staticmethod
    def get_or_create() -> SystemConfig:
        cfg = db.session.get(SystemConfig, 1)
        if cfg is not None:
            return cfg

        db.session.add(SystemConfig(id=1, maintenance_mode=False))
        try:
            db.session.commit()
        except IntegrityError:
            # another request created the row first
            db.session.rollback()
        return db.session.get(SystemConfig, 1)

    @staticmethod
    def commit():
        db.session.commit()

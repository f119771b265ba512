from datetime import datetime
from library_api.extensions import db


class SystemConfig(db.Model):
    __tablename__ = "system_config"

    # singleton row
    id = db.Column(db.Integer, primary_key=True, default=1)
    maintenance_mode = db.Column(db.Boolean, nullable=False, default=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

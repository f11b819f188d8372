from datetime import datetime
from ..extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True)
    user_email = db.Column(db.String(255), default="")
    table_name = db.Column("table", db.String(64), nullable=False, index=True)
    record_id = db.Column(db.String(64), nullable=False, index=True)
    field_name = db.Column(db.String(64), nullable=False)
    old_value = db.Column(db.Text, default="")
    new_value = db.Column(db.Text, default="")
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_email": self.user_email or "",
            "table": self.table_name,
            "record_id": self.record_id,
            "field_name": self.field_name,
            "old_value": self.old_value or "",
            "new_value": self.new_value or "",
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

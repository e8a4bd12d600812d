# codeloader/models/audit_log.py
from codeloader.extensions import db
from .base import BaseModel
from .site_mixin import SiteMixin
from sqlalchemy import event



class AuditLog(BaseModel, SiteMixin):
    __tablename__ = "audit_logs"

    __table_args__ = (
        db.Index("ix_audit_site_created", "site_id", "created_at", "id"),
        db.Index("ix_audit_site_action", "site_id", "action"),
    )

    # Empty for CLI / scheduled sync runs
    actor = db.Column(db.String(255), nullable=True, index=True)
    action = db.Column(db.String(50), nullable=False, index=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.String(64), nullable=False, index=True)

    payload = db.Column(db.JSON, nullable=False, default=dict)

    def to_dict(self):
        return {
            "id": self.id,
            "site_id": self.site_id,
            "actor": self.actor,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "payload": self.payload,
            "created_at": self.created_at.isoformat()
        }

@event.listens_for(AuditLog, 'before_update')
@event.listens_for(AuditLog, 'before_delete')
def prevent_audit_mutation(mapper, connection, target):
    raise RuntimeError("Audit logs are immutable")

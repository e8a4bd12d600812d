from flask import g, has_request_context
from codeloader.extensions import db
from codeloader.models.audit_log import AuditLog
from typing import Optional

def log_action(
    *,
    site_id: int,
    action: str,
    entity_type: str,
    entity_id,
    payload: dict | None = None,
    actor: Optional[str] = None,
):
    if actor is None and has_request_context():
        actor = getattr(g, "current_actor", None)

    log = AuditLog()

    log.site_id = site_id
    log.actor = actor
    log.action = action
    log.entity_type = entity_type
    log.entity_id = str(entity_id)
    log.payload = payload or {}

    db.session.add(log)

from flask import request, jsonify, g
from flask_jwt_extended import jwt_required
from codeloader.utils.decorators import site_required
from codeloader.utils.pagination import paginate_cursor, parse_limit
from codeloader.models.audit_log import AuditLog
from . import editor_bp

@editor_bp.route("/audit", methods=["GET"])
@jwt_required()
@site_required
def list_audit_logs():
    site = g.current_site

    limit = parse_limit(request.args.get("limit"))
    cursor = request.args.get("cursor")

    query = AuditLog.query.filter(
        AuditLog.site_id == site.id
    )

    # Optional filters
    if action := request.args.get("action"):
        query = query.filter(AuditLog.action == action)

    if entity_type := request.args.get("entity_type"):
        query = query.filter(AuditLog.entity_type == entity_type)

    if entity_id := request.args.get("entity_id"):
        query = query.filter(AuditLog.entity_id == entity_id)

    logs, meta = paginate_cursor(query, model=AuditLog, cursor=cursor, limit=limit)

    return jsonify({
        "data": [log.to_dict() for log in logs],
        "meta": meta,
    }), 200

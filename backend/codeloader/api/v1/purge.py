import hmac

from flask import current_app, jsonify, request
from codeloader.domain.invariants.exceptions import InvariantViolation
from codeloader.application.delivery.purge_bundle import purge_bundle
from . import v1_bp


def _reply(success, message, status_code):
    response = jsonify({"success": success, "message": message})
    response.status_code = status_code
    return response


def _secret_matches(provided: str) -> bool:
    expected = current_app.config.get("PURGE_SECRET") or ""
    # No configured secret means nobody may purge
    if not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


@v1_bp.route("/cache/purge", methods=["PURGE", "POST"])
def purge_cache():
    """
    Invalidate one cached bundle.

    Params come from the query string, overridden by a JSON body:
    target_id (or pageId), location, type (default "page").
    """
    if not _secret_matches(request.headers.get("X-Purge-Secret", "")):
        current_app.logger.warning(f"Rejected purge request from {request.remote_addr}")
        return _reply(False, "Unauthorized", 401)

    params = request.args.to_dict()
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        params.update(body)

    target_id = params.get("target_id", params.get("pageId"))
    location = params.get("location")
    target_kind = params.get("type") or "page"

    if target_id in (None, "") or not location:
        return _reply(False, "Missing required parameters: target_id and location", 400)

    try:
        purged = purge_bundle(target_kind, target_id, location)
    except InvariantViolation as exc:
        return _reply(False, str(exc), 400)

    if purged:
        return _reply(True, "Cache purged", 200)
    return _reply(False, "Cache entry not found", 404)

from flask import Response, current_app, jsonify, request
from codeloader.domain.errors import NotFoundError, StorageError
from codeloader.domain.invariants.exceptions import InvariantViolation
from codeloader.application.delivery.build_bundle import get_bundle
from . import v1_bp

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _with_cors(response):
    response.headers.update(CORS_HEADERS)
    return response


def _error(message, status_code):
    response = jsonify({"error": message})
    response.status_code = status_code
    return _with_cors(response)


def _delivery_params():
    if request.method == "POST":
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvariantViolation("Request body must be a JSON object")
    else:
        data = request.args

    return data.get("id"), data.get("location"), data.get("type") or "page"


@v1_bp.route("/code-loader", methods=["GET", "POST", "OPTIONS"])
def code_loader():
    """
    Serve the {html, css, js} bundle for one page/site location.

    Public and CORS-open: loader scripts call this from any Webflow
    domain. Every failure is answered here with a JSON error body.
    """
    if request.method == "OPTIONS":
        return _with_cors(Response(status=204))

    target_id = location = target_kind = None
    try:
        target_id, location, target_kind = _delivery_params()
        if target_id in (None, "") or not location:
            return _error("Missing required parameters: id and location", 400)

        body, hit = get_bundle(target_kind, target_id, location)
    except InvariantViolation as exc:
        return _error(str(exc), 400)
    except NotFoundError as exc:
        return _error(str(exc), 404)
    except StorageError as exc:
        current_app.logger.error(
            f"Bundle build failed for {target_kind} {target_id} ({location}), phase={exc.phase}: {exc}"
        )
        return _error("Error fetching files", 500)
    except Exception:
        current_app.logger.exception(f"Unexpected error serving {target_kind} {target_id} ({location})")
        return _error("Internal server error", 500)

    response = Response(body, status=200, mimetype="application/json")
    response.headers["Cache-Control"] = f"public, max-age={current_app.config['CACHE_TTL']}"
    response.headers["X-Cache"] = "HIT" if hit else "MISS"
    return _with_cors(response)

from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import get_jwt, get_jwt_identity

def site_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        site = getattr(g, "current_site", None)
        if not site:
            return jsonify({"error": "Site context missing"}), 400

        claims = get_jwt()
        if claims.get("site_id") != site.id:
            return jsonify({"error": "Site mismatch"}), 403

        g.current_actor = get_jwt_identity()
        return fn(*args, **kwargs)
    return wrapper

from flask import g, jsonify, request
from flask_jwt_extended import jwt_required
from codeloader.normalizers.site import normalize_site
from codeloader.application.editor.update_site_files import update_site_files
from codeloader.utils.decorators import site_required
from . import editor_bp


@editor_bp.route("/site", methods=["GET"])
@jwt_required()
@site_required
def get_site():
    return jsonify(normalize_site(g.current_site)), 200


@editor_bp.route("/site", methods=["PUT"])
@jwt_required()
@site_required
def update_site():
    data = request.get_json(silent=True) or {}

    result = update_site_files(site=g.current_site, data=data)

    return jsonify({
        "site": normalize_site(result["site"]),
        "changed": result["changed"],
        "purged": result["purged"],
        "codeLoader": result["code_loader"],
    }), 200

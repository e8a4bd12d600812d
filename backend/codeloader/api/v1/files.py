# codeloader/api/v1/files.py
from functools import partial

from flask import g, jsonify, request
from flask_jwt_extended import jwt_required
from codeloader.models.code_file import CodeFile
from codeloader.domain.errors import NotFoundError
from codeloader.normalizers.code_file import normalize_code_file
from codeloader.normalizers.pagination import normalize_pagination
from codeloader.application.editor.manage_files import create_file, delete_file, update_file
from codeloader.utils.decorators import site_required
from . import editor_bp


@editor_bp.route("/files", methods=["POST"])
@jwt_required()
@site_required
def create_code_file():
    data = request.get_json(silent=True) or {}
    code_file = create_file(site=g.current_site, data=data)
    return jsonify(normalize_code_file(code_file)), 201


@editor_bp.route("/files", methods=["GET"])
@jwt_required()
@site_required
def list_code_files():
    site = g.current_site
    page = request.args.get("page", 1, type=int)
    per_page = min(request.args.get("per_page", 50, type=int), 100)

    query = CodeFile.query.filter_by(site_id=site.id)
    if language := request.args.get("language"):
        query = query.filter(CodeFile.language == language)

    pagination = query.order_by(CodeFile.id.asc()).paginate(
        page=page, per_page=per_page, error_out=False
    )

    # Listing omits code bodies
    return jsonify(
        normalize_pagination(pagination, partial(normalize_code_file, include_code=False))
    ), 200


@editor_bp.route("/files/<int:file_id>", methods=["GET"])
@jwt_required()
@site_required
def get_code_file(file_id):
    code_file = CodeFile.query.filter_by(id=file_id, site_id=g.current_site.id).first()
    if not code_file:
        raise NotFoundError("File not found")
    return jsonify(normalize_code_file(code_file)), 200


@editor_bp.route("/files/<int:file_id>", methods=["PUT"])
@jwt_required()
@site_required
def update_code_file(file_id):
    data = request.get_json(silent=True) or {}
    result = update_file(site=g.current_site, file_id=file_id, data=data)

    return jsonify({
        "file": normalize_code_file(result["file"]),
        "changed": result["changed"],
        "purged": result["purged"],
    }), 200


@editor_bp.route("/files/<int:file_id>", methods=["DELETE"])
@jwt_required()
@site_required
def delete_code_file(file_id):
    result = delete_file(site=g.current_site, file_id=file_id)
    return jsonify(result), 200

# codeloader/api/v1/pages.py
from flask import g, jsonify, request
from flask_jwt_extended import jwt_required
from codeloader.models.page import Page
from codeloader.domain.errors import NotFoundError
from codeloader.normalizers.page import normalize_page
from codeloader.normalizers.pagination import normalize_pagination
from codeloader.application.editor.update_page_files import update_page_files
from codeloader.application.sync.sync_pages import sync_site_pages
from codeloader.utils.decorators import site_required
from . import editor_bp


@editor_bp.route("/sites/<site_id>/pages/sync", methods=["POST"])
@jwt_required()
@site_required
def sync_pages(site_id):
    site = g.current_site
    if site_id != site.external_site_id:
        return jsonify({"error": "Site mismatch"}), 403

    result = sync_site_pages(site)
    if result["success"]:
        return jsonify(result), 200

    # Webflow unreachable/rejected vs. our own datastore failing
    status = 502 if result["phase"] == "fetch" else 500
    return jsonify(result), status


@editor_bp.route("/pages", methods=["GET"])
@jwt_required()
@site_required
def list_pages():
    site = g.current_site
    page = request.args.get("page", 1, type=int)
    per_page = min(request.args.get("per_page", 50, type=int), 100)

    pagination = (
        Page.query.filter_by(site_id=site.id)
        .order_by(Page.name.asc(), Page.id.asc())
        .paginate(page=page, per_page=per_page, error_out=False)
    )

    return jsonify(normalize_pagination(pagination, normalize_page)), 200


@editor_bp.route("/pages/<int:page_id>", methods=["GET"])
@jwt_required()
@site_required
def get_page(page_id):
    page = Page.query.filter_by(id=page_id, site_id=g.current_site.id).first()
    if not page:
        raise NotFoundError("Page not found")

    return jsonify(normalize_page(page)), 200


@editor_bp.route("/pages/<int:page_id>", methods=["PUT"])
@jwt_required()
@site_required
def update_page(page_id):
    data = request.get_json(silent=True) or {}

    result = update_page_files(
        site=g.current_site,
        page_id=page_id,
        data=data,
    )

    return jsonify({
        "page": normalize_page(result["page"]),
        "changed": result["changed"],
        "purged": result["purged"],
        "codeLoader": result["code_loader"],
    }), 200

from flask import request, g, jsonify
from codeloader.models.site import Site

# Only editor routes are site-scoped; delivery, purge and health are public
SITE_SCOPED_BLUEPRINT = "v1.editor"


def site_middleware(app):
    @app.before_request
    def load_site():
        if SITE_SCOPED_BLUEPRINT not in request.blueprints:
            return None

        # Let CORS preflights through without a site
        if request.method == "OPTIONS":
            return None

        site_id = request.headers.get('X-Site-ID')
        if not site_id:
            return jsonify({"error": "X-Site-ID header is missing"}), 400

        site = None
        if site_id.isdigit():
            site = Site.query.filter_by(id=int(site_id)).first()
        if not site:
            site = Site.query.filter_by(external_site_id=site_id).first()
        if not site:
            return jsonify({"error": "Invalid site"}), 404

        # Attach site to global context
        g.current_site = site

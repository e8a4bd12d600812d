from datetime import timedelta
import os

import click
from flask import Flask, send_file, current_app
from flask_jwt_extended import create_access_token
from flask_swagger_ui import get_swaggerui_blueprint
from .config import config_by_name
from .extensions import db, migrate, jwt, edge_cache
from .api.v1 import v1_bp
from .middleware.site_middleware import site_middleware
from .errors import register_error_handlers


def create_app(config_name: str = "development") -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # -------------------------------------------------
    # Extensions
    # -------------------------------------------------
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    edge_cache.init_app(app)

    # Register models with SQLAlchemy metadata
    from .models import site, page, code_file, audit_log  # noqa: F401

    # -------------------------------------------------
    # Middleware
    # -------------------------------------------------
    site_middleware(app)

    # -------------------------------------------------
    # API Blueprints
    # -------------------------------------------------
    app.register_blueprint(v1_bp, url_prefix="/api/v1")
    register_error_handlers(app)

    # -------------------------------------------------
    # CLI
    # -------------------------------------------------
    register_cli(app)

    # -------------------------------------------------
    # Serve OpenAPI YAML (PUBLIC, NO SITE)
    # -------------------------------------------------
    @app.route("/openapi/codeloader.yaml", methods=["GET"], endpoint="openapi_codeloader")
    def serve_openapi():
        openapi_path = os.path.join(
            current_app.root_path,
            "api",
            "v1",
            "codeloader_openapi.yaml",
        )

        if not os.path.exists(openapi_path):
            raise FileNotFoundError("codeloader_openapi.yaml not found")

        return send_file(
            openapi_path,
            mimetype="application/yaml",
            as_attachment=False,
        )

    # -------------------------------------------------
    # Swagger UI
    # -------------------------------------------------
    SWAGGER_URL = "/swagger"
    API_URL = "/openapi/codeloader.yaml"

    swaggerui_blueprint = get_swaggerui_blueprint(
        SWAGGER_URL,
        API_URL,
        config={
            "app_name": "Code Loader API",
            "deepLinking": True,
            "persistAuthorization": True,
        },
    )

    app.register_blueprint(swaggerui_blueprint, url_prefix=SWAGGER_URL)

    return app


def register_cli(app: Flask) -> None:
    from .models.site import Site
    from .application.sync.sync_pages import sync_all_sites
    from .utils.transaction import transactional

    @app.cli.command("add-site")
    @click.argument("external_site_id")
    @click.option("--access-token", default=None, help="Site-scoped Webflow API token.")
    @click.option("--owner", default="system")
    def add_site(external_site_id, access_token, owner):
        """Create or update a site record."""
        site = Site.query.filter_by(external_site_id=external_site_id).first()
        created = site is None
        if created:
            site = Site()
            site.external_site_id = external_site_id
            site.head_files = []
            site.body_files = []
        site.owner = owner
        if access_token:
            site.access_token = access_token

        with transactional(target=external_site_id, phase="add_site"):
            db.session.add(site)

        click.echo(f"{'Created' if created else 'Updated'} site {external_site_id} (id={site.id})")

    @app.cli.command("issue-token")
    @click.argument("external_site_id")
    @click.option("--actor", default="editor", help="Name recorded in the audit log.")
    @click.option("--expires-hours", default=24, type=int)
    def issue_token(external_site_id, actor, expires_hours):
        """Print an editor JWT scoped to one site."""
        site = Site.query.filter_by(external_site_id=external_site_id).first()
        if not site:
            raise click.ClickException(f"Unknown site {external_site_id}")

        token = create_access_token(
            identity=actor,
            additional_claims={"site_id": site.id},
            expires_delta=timedelta(hours=expires_hours),
        )
        click.echo(token)

    @app.cli.command("sync-pages")
    def sync_pages():
        """Reconcile pages for every site that has a Webflow token."""
        results = sync_all_sites()
        for result in results:
            if result["success"]:
                click.echo(
                    f"{result['site_id']}: {result['added']} added, "
                    f"{result['updated']} updated, {result['deleted']} deleted"
                )
            else:
                click.echo(f"{result['site_id']}: failed during {result['phase']}: {result['error']}", err=True)

        if any(not result["success"] for result in results):
            raise SystemExit(1)

from flask import Blueprint

# Create the versioned blueprint
v1_bp = Blueprint("v1", __name__)

# Editor routes: JWT + X-Site-ID scoped (see middleware.site_middleware)
editor_bp = Blueprint("editor", __name__)

# Import route modules so they register with their blueprints
from . import health
from . import delivery
from . import purge
from . import pages
from . import site
from . import files
from . import audit

v1_bp.register_blueprint(editor_bp)

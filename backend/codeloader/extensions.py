from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from codeloader.utils.edge_cache import EdgeCacheExtension

db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
edge_cache = EdgeCacheExtension()

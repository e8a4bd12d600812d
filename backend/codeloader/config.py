import os
from dotenv import load_dotenv

load_dotenv()

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Webflow
    WEBFLOW_API_BASE = os.getenv("WEBFLOW_API_BASE", "https://api.webflow.com/v2")
    WEBFLOW_TIMEOUT = float(os.getenv("WEBFLOW_TIMEOUT", "10"))

    # Loader scripts call back into this public base URL
    DELIVERY_ENDPOINT_BASE = os.getenv("DELIVERY_ENDPOINT_BASE", "http://localhost:5000")
    PAGE_SCRIPT_MAX_ATTEMPTS = int(os.getenv("PAGE_SCRIPT_MAX_ATTEMPTS", "5"))
    SITE_SCRIPT_MAX_ATTEMPTS = int(os.getenv("SITE_SCRIPT_MAX_ATTEMPTS", "50"))

    # Edge cache
    CACHE_BACKEND = os.getenv("CACHE_BACKEND", "memory")  # memory | redis
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))
    PURGE_SECRET = os.getenv("PURGE_SECRET", "")

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///codeloader-dev.db")

class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")
    CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis")

class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    CACHE_BACKEND = "memory"
    CACHE_TTL = 60
    PURGE_SECRET = "test-purge-secret"
    DELIVERY_ENDPOINT_BASE = "https://loader.example.com"

config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}

import os
from decimal import Decimal


class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    ENV = os.getenv("FLASK_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Tokens are issued by the identity provider; we only verify them.
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "dev-secret-change-me")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_DECODE_AUDIENCE = os.environ.get("JWT_DECODE_AUDIENCE") or None
    JWT_TOKEN_LOCATION = ["headers"]

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Pricing
    CURRENCY = os.environ.get("CURRENCY", "USD")
    TAX_RATE = Decimal(os.environ.get("TAX_RATE", "0.06"))
    SHIPPING_FLAT_RATE = Decimal(os.environ.get("SHIPPING_FLAT_RATE", "15.00"))
    FREE_SHIPPING_THRESHOLD = Decimal(os.environ.get("FREE_SHIPPING_THRESHOLD", "200.00"))

    @staticmethod
    def init_app(app):
        if not os.getenv("DATABASE_URL"):
            os.makedirs(app.instance_path, exist_ok=True)
            app.config.setdefault(
                "SQLALCHEMY_DATABASE_URI",
                f"sqlite:///{os.path.join(app.instance_path, 'shopdesk.db')}",
            )
        else:
            app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL")


class TestConfig(Config):
    TESTING = True
    LOG_LEVEL = "WARNING"
    JWT_SECRET_KEY = "test-secret-key-for-shopdesk-suite"
    SQLALCHEMY_DATABASE_URI = "sqlite://"

    @staticmethod
    def init_app(app):
        pass

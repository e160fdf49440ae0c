import logging
import os

from flask import Flask
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from . import models  # noqa: E402,F401  registers tables on db.metadata


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def create_app():
    app = Flask(__name__, template_folder="templates")
    app.secret_key = os.getenv("SECRET_KEY", "dev")
    app.config["PREFERRED_URL_SCHEME"] = "https"

    DB_USER = os.getenv("DB_USER", "seminars")
    DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
    DB_HOST = os.getenv("DB_HOST", "db")
    DB_NAME = os.getenv("DB_NAME", "seminars")
    DATABASE_URL = os.getenv(
        "DATABASE_URL",
        f"postgresql+psycopg2://{DB_USER}:{DB_PASSWORD}@{DB_HOST}/{DB_NAME}",
    )

    app.config["SQLALCHEMY_DATABASE_URI"] = DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    site_root = os.getenv("SITE_ROOT", "/srv")
    app.config["SITE_ROOT"] = site_root
    app.config["APP_BASE_URL"] = os.getenv("APP_BASE_URL", "http://localhost:8000")

    redis_url = os.getenv("REDIS_URL", "redis://redis:6379/0")
    app.config["REDIS_URL"] = redis_url
    app.config["CELERY"] = {
        "broker_url": os.getenv("CELERY_BROKER_URL", redis_url),
        "result_backend": os.getenv("CELERY_RESULT_BACKEND", redis_url),
        "task_ignore_result": True,
        "task_acks_late": True,
        "task_reject_on_worker_lost": True,
        "worker_prefetch_multiplier": 1,
        "task_time_limit": 300,
        "task_always_eager": _env_flag("CELERY_ALWAYS_EAGER"),
        "task_routes": {"certificates.*": {"queue": "certificates"}},
    }

    app.config["CERTIFICATE_STORAGE"] = os.getenv("CERTIFICATE_STORAGE", "local")
    app.config["S3_BUCKET"] = os.getenv("S3_BUCKET")
    app.config["S3_REGION"] = os.getenv("S3_REGION", "us-east-1")
    app.config["S3_ENDPOINT_URL"] = os.getenv("S3_ENDPOINT_URL")
    app.config["CERTIFICATE_ASSETS_DIR"] = os.getenv(
        "CERTIFICATE_ASSETS_DIR",
        os.path.join(app.root_path, "assets", "certificate"),
    )
    app.config["CERTIFICATE_ISSUER"] = os.getenv(
        "CERTIFICATE_ISSUER", "The School of Informatics and Computing"
    )

    db.init_app(app)

    from .celery_app import celery_init_app
    from .shared.certificates import init_certificates

    celery_init_app(app)
    init_certificates(app)

    @app.get("/health")
    def health():  # pragma: no cover - simple healthcheck
        return "OK", 200

    from .routes.certificates import bp as certificates_bp

    app.register_blueprint(certificates_bp)

    logging.getLogger("seminars").setLevel(logging.INFO)
    return app

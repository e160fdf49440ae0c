"""Worker entrypoint: ``celery -A seminars.worker worker -Q certificates``."""

from .app import create_app

flask_app = create_app()
celery_app = flask_app.extensions["celery"]

"""Celery wiring for the Flask application.

Tasks are declared with ``shared_task`` and run inside an application
context so they can use ``db.session`` and ``current_app`` like request
handlers do.
"""

from celery import Celery, Task
from flask import Flask


def celery_init_app(app: Flask) -> Celery:
    class FlaskTask(Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app = Celery(app.name, task_cls=FlaskTask)
    celery_app.config_from_object(app.config["CELERY"])
    celery_app.set_default()
    app.extensions["celery"] = celery_app

    # Register task modules with this app instance.
    from . import tasks  # noqa: F401

    return celery_app

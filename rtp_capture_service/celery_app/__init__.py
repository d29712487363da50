"""Celery application factory for the capture service."""
from __future__ import annotations

from celery import Celery

from ..utils import coerce_int, to_bool

celery = Celery("rtp_capture")


def init_celery(app) -> Celery:
    """Bind Celery to the Flask app and configure queues."""

    eager = to_bool(app.config.get("CAPTURE_TASKS_EAGER"))
    celery.conf.update(
        broker_url=app.config["CELERY_BROKER_URL"],
        result_backend=app.config["CELERY_RESULT_BACKEND"],
        task_default_queue=app.config["CELERY_TASK_DEFAULT_QUEUE"],
        task_acks_late=True,
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        worker_hijack_root_logger=False,
        worker_pool=app.config.get("CELERY_WORKER_POOL") or "threads",
        worker_concurrency=max(1, coerce_int(app.config.get("CELERY_WORKER_CONCURRENCY"), 4)),
        worker_prefetch_multiplier=1,
        task_always_eager=eager,
        task_eager_propagates=eager,
    )
    # Tasks run inside whichever Flask app was bound most recently.
    celery.flask_app = app

    TaskBase = celery.Task
    if not getattr(TaskBase, "binds_flask_context", False):

        class ContextTask(TaskBase):
            abstract = True
            binds_flask_context = True

            def __call__(self, *args, **kwargs):
                with celery.flask_app.app_context():
                    return TaskBase.__call__(self, *args, **kwargs)

        celery.Task = ContextTask

    app.extensions["celery"] = celery
    return celery


__all__ = ["celery", "init_celery"]

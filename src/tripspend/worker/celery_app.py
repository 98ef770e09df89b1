from __future__ import annotations

from celery import Celery

from tripspend.core.config import settings

celery_app = Celery(
    "tripspend.worker",
    broker=settings.celery_broker_url or settings.redis_url,
    backend=settings.celery_result_backend or settings.redis_url,
    include=["tripspend.worker.tasks"],
)
celery_app.conf.update(
    # local development runs the FX sync inline instead of needing a broker
    task_always_eager=settings.environment == "dev",
    task_eager_propagates=True,
    task_track_started=True,
    task_acks_late=True,
    timezone=settings.default_timezone,
)

from __future__ import annotations

# Ensure all models are registered before any task runs
# isort: off
import tripspend.models  # noqa: F401
# isort: on

import time
import uuid

from tripspend.core.db import SessionLocal
from tripspend.core.logging import (
    get_logger,
    log_event,
    log_exception,
    monotonic_ms,
    reset_task_context,
    set_task_context,
)
from tripspend.worker.celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(name="sync_fx_rates", bind=True)
def sync_fx_rates_task(self, tenant_id: str | None = None) -> list[str]:
    from tripspend.modules.fx.service import sync_rates

    task_id = getattr(self.request, "id", None)
    token = set_task_context(task_id)
    start = time.monotonic()
    log_event(
        logger,
        "celery.task.start",
        task_name="sync_fx_rates",
        celery_task_id=task_id,
        tenant_id=tenant_id,
    )
    try:
        with SessionLocal() as session:
            rates = sync_rates(
                session, tenant_id=uuid.UUID(tenant_id) if tenant_id else None
            )
            synced = [r.currency for r in rates]
        log_event(
            logger,
            "celery.task.finish",
            task_name="sync_fx_rates",
            celery_task_id=task_id,
            synced=synced,
            duration_ms=monotonic_ms(start),
        )
        return synced
    except Exception:
        log_exception(
            logger,
            "celery.task.error",
            task_name="sync_fx_rates",
            celery_task_id=task_id,
            duration_ms=monotonic_ms(start),
        )
        raise
    finally:
        reset_task_context(token)

"""Celery task for the scheduled recurring transaction sweep."""

import asyncio
import time

from app.core.database import AsyncSessionLocal, engine
from app.core.logging_config import get_logger, log_celery_task
from app.services.recurring_generation_service import (
    GenerationResult,
    RecurringGenerationError,
    TemplateStoreUnavailableError,
    generate_recurring_transactions,
)
from app.workers.celery_app import celery_app

logger = get_logger(__name__)


# Only an unreadable store is retried. A rerun after a partial failure would
# catch healthy templates up by another period.
@celery_app.task(
    name="generate_recurring_transactions",
    bind=True,
    autoretry_for=(TemplateStoreUnavailableError,),
)
def generate_recurring_transactions_task(self):
    """
    Generate due recurring transactions for every user.

    Runs daily (see beat schedule). Retried with backoff when the templates
    cannot be read. Fails without a retry when any template failed; those
    templates are picked up again by the next scheduled sweep.
    """
    started = time.perf_counter()
    task_id = self.request.id or "local"
    log_celery_task(logger, "generate_recurring_transactions", task_id, "started")

    try:
        result = asyncio.run(_generate_recurring_async())
    except Exception:
        log_celery_task(
            logger,
            "generate_recurring_transactions",
            task_id,
            "failed",
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        raise

    log_celery_task(
        logger,
        "generate_recurring_transactions",
        task_id,
        "completed",
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
        execution_id=result.execution_id,
        generated=result.generated,
    )
    return {
        "execution_id": result.execution_id,
        "generated": result.generated,
        "skipped": result.skipped,
        "failed": result.failed,
    }


async def _generate_recurring_async() -> GenerationResult:
    """Async implementation of the scheduled sweep."""
    try:
        async with AsyncSessionLocal() as db:
            try:
                result = await generate_recurring_transactions(db)
            except Exception as exc:
                logger.exception("recurring_sweep_aborted")
                await db.rollback()
                raise TemplateStoreUnavailableError(f"Recurring sweep aborted: {exc}") from exc
    finally:
        # asyncio.run gives every invocation a fresh loop; pooled connections must not outlive it
        await engine.dispose()

    if not result.succeeded:
        raise RecurringGenerationError(
            f"{result.failed} recurring template(s) failed in sweep {result.execution_id}",
            result=result,
        )
    return result

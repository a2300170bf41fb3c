"""Celery application configuration."""

from celery import Celery, signals
from celery.schedules import crontab

from app.config import settings

# Create Celery app
celery_app = Celery(
    "pocketbook",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=270,  # 4.5 minutes soft limit
    # Re-queue tasks if a worker crashes mid-execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_retry_delay=60,
)


class RetryableTask(celery_app.Task):
    """
    Base task class with automatic exponential-backoff retry on failure.

    Tasks may narrow ``autoretry_for`` when a rerun is only safe for some errors.
    """

    abstract = True
    autoretry_for = (Exception,)
    max_retries = 3
    retry_backoff = True  # Exponential: 60s -> 120s -> 240s
    retry_backoff_max = 600  # Cap at 10 minutes
    retry_jitter = True


celery_app.Task = RetryableTask


@signals.setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application's structured logging instead of Celery's default handlers."""
    from app.core.logging_config import setup_logging

    setup_logging()


# Import tasks here as they're created
from app.workers.tasks import auth_tasks  # noqa: F401,E402
from app.workers.tasks import recurring_tasks  # noqa: F401,E402

# Beat schedule (periodic tasks)
celery_app.conf.beat_schedule = {
    "generate-recurring-transactions": {
        "task": "generate_recurring_transactions",
        "schedule": crontab(
            hour=settings.RECURRING_SWEEP_HOUR,
            minute=settings.RECURRING_SWEEP_MINUTE,
        ),
    },
    "cleanup-expired-sessions": {
        "task": "cleanup_expired_sessions",
        "schedule": crontab(hour=3, minute=0),  # 3am daily
    },
}

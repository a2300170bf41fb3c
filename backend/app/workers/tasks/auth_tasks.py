"""Celery tasks for authentication maintenance."""

import asyncio
import logging

from app.core.database import AsyncSessionLocal, engine
from app.crud.user import session_crud
from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="cleanup_expired_sessions")
def cleanup_expired_sessions_task():
    """
    Delete expired sessions.
    Runs daily at 3am to keep the sessions table lean.
    """
    return asyncio.run(_cleanup_expired_sessions_async())


async def _cleanup_expired_sessions_async() -> int:
    """Async implementation of session cleanup."""
    try:
        async with AsyncSessionLocal() as db:
            try:
                deleted_count = await session_crud.purge_expired(db)
                logger.info("Session cleanup complete. Deleted %s expired sessions.", deleted_count)
                return deleted_count
            except Exception as e:
                logger.error("Error cleaning up sessions: %s", e, exc_info=True)
                await db.rollback()
                raise
    finally:
        await engine.dispose()

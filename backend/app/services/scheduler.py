"""APScheduler setup for background jobs."""
from __future__ import annotations
import logging
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


async def purge_stale_accounts(db: AsyncSession, stale_days: int) -> tuple[int, int]:
    """Drop never-verified local users past ``stale_days`` and every expired refresh token."""
    from app.models.refresh_token import RefreshToken
    from app.models.user import User

    now = utcnow()
    users = await db.execute(
        delete(User).where(
            User.verified.is_(False),
            User.provider == "local",
            User.created_at < now - timedelta(days=stale_days),
        )
    )
    tokens = await db.execute(delete(RefreshToken).where(RefreshToken.expires_at < now))
    await db.commit()
    return users.rowcount or 0, tokens.rowcount or 0


async def cleanup():
    from app.database import AsyncSessionLocal

    logger.info("Starting scheduled cleanup")
    async with AsyncSessionLocal() as db:
        try:
            users, tokens = await purge_stale_accounts(db, settings.stale_user_days)
        except Exception as e:
            await db.rollback()
            logger.error(f"Cleanup failed: {e}")
            return
    logger.info(f"Cleanup removed {users} unverified users and {tokens} expired refresh tokens")


def start_scheduler():
    scheduler = get_scheduler()
    scheduler.add_job(
        cleanup,
        trigger=IntervalTrigger(hours=settings.cleanup_interval_hours),
        id="cleanup",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler():
    scheduler = get_scheduler()
    if scheduler.running:
        scheduler.shutdown(wait=False)

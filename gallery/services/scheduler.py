"""
Background Scheduler Service
Evicts idle cursor sessions using APScheduler
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import logging

from gallery.config import settings
from gallery.services.gallery_service import get_gallery_service

logger = logging.getLogger(__name__)

# Initialize scheduler
scheduler = AsyncIOScheduler()


async def sweep_expired_sessions() -> int:
    """
    Background Job: drop sessions idle for longer than SESSION_TTL

    Runs every SESSION_SWEEP_INTERVAL seconds on the event loop, the same
    thread that creates and advances sessions.
    """
    return get_gallery_service().sessions.sweep()


def start_scheduler():
    """
    Register jobs and start the scheduler
    """
    logger.info("═" * 60)
    logger.info("⏰ [SCHEDULER] Registering background jobs...")

    scheduler.add_job(
        sweep_expired_sessions,
        trigger=IntervalTrigger(seconds=settings.SESSION_SWEEP_INTERVAL),
        id='session_sweep',
        name=f'Session Sweep (every {settings.SESSION_SWEEP_INTERVAL}s)',
        replace_existing=True,
        max_instances=1
    )
    logger.info("✅ Job Registered: 🧹 Session Sweep")
    logger.info("   ⏱️  Interval: %ds, TTL: %ds", settings.SESSION_SWEEP_INTERVAL, settings.SESSION_TTL)

    scheduler.start()
    logger.info("✅ [SCHEDULER] Background scheduler started")
    logger.info("═" * 60)


def shutdown_scheduler():
    """
    Gracefully shutdown the scheduler
    """
    if not scheduler.running:
        return
    logger.info("⏹️  [SCHEDULER] Shutting down background scheduler...")
    scheduler.shutdown(wait=True)
    logger.info("✅ [SCHEDULER] Background scheduler shut down")

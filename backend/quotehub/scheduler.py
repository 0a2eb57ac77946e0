"""
Cache Sweep Scheduler

Periodically removes expired rows from the durable history cache and stale
entries from the in-memory tier.
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

scheduler = None


def sweep_expired_cache(service):
    """Delete expired durable rows and drop stale memory entries. Each tier is swept independently."""
    removed = 0
    evicted = 0
    try:
        removed = service.cache.delete_expired()
    except Exception as e:
        logger.error(f"[Scheduler] Durable cache sweep failed: {e}")
    try:
        evicted = service.cache.cleanup_expired()
    except Exception as e:
        logger.error(f"[Scheduler] Memory cache sweep failed: {e}")

    logger.info(f"[Scheduler] Cache sweep removed {removed} durable rows, {evicted} memory entries")
    return removed


def init_scheduler(app):
    """Initialize the scheduler with Flask app context"""
    global scheduler

    if scheduler is not None:
        return  # Already initialized

    try:
        scheduler = BackgroundScheduler(daemon=True)
        interval_minutes = app.config.get('CACHE_SWEEP_INTERVAL_MINUTES', 15)

        scheduler.add_job(
            func=lambda: run_with_app_context(app, lambda: sweep_expired_cache(app.extensions['market_data'])),
            trigger='interval',
            minutes=interval_minutes,
            id='stock_data_cache_sweep',
            name='Stock Data Cache Sweep',
            replace_existing=True
        )

        scheduler.start()
        logger.info(f"Scheduler initialized successfully - cache sweep every {interval_minutes} minutes")

    except Exception as e:
        logger.error(f"Failed to initialize scheduler: {e}")


def run_with_app_context(app, func):
    """Run function within Flask app context"""
    with app.app_context():
        func()


def shutdown_scheduler():
    """Shutdown the scheduler"""
    global scheduler
    if scheduler:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler shut down")

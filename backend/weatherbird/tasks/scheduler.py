"""APScheduler setup for periodic alert feed refresh."""

import asyncio
import logging

from apscheduler.schedulers.background import BackgroundScheduler

from weatherbird.config import settings

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler | None = None


def _run_alert_refresh():
    from weatherbird.services.alert_fusion import refresh_cache
    loop = asyncio.new_event_loop()
    try:
        loop.run_until_complete(refresh_cache(settings.default_region))
    except Exception as e:
        logger.error("Alert refresh job failed: %s", e)
    finally:
        loop.close()


def start_scheduler():
    global _scheduler
    _scheduler = BackgroundScheduler()

    _scheduler.add_job(
        _run_alert_refresh,
        "interval",
        minutes=settings.alert_refresh_interval,
        id="alert_refresh",
        name="Fused alert feed refresh",
        max_instances=1,
    )

    _scheduler.start()
    logger.info("Scheduler started: alerts for %s every %d min", settings.default_region, settings.alert_refresh_interval)


def stop_scheduler():
    global _scheduler
    if _scheduler:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
        _scheduler = None

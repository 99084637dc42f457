"""
APScheduler Background Jobs

Retries undelivered shortlist events (conversation creation) and prunes
delivered ones. Jobs run via BackgroundScheduler in the FastAPI process.
"""

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from matcher.config import settings

logger = structlog.get_logger(__name__)


def run_outbox_drain():
    """
    Wrapper function for the scheduled outbox drain.

    Called by APScheduler every `outbox_drain_interval_minutes`. Never raises:
    a crashed run is logged and the next interval tries again.

    Returns:
        dict with drain counts, or None if skipped or crashed
    """
    try:
        from matcher.services.shortlist_events import get_event_relay

        relay = get_event_relay()
        if relay is None:
            logger.warning("outbox_drain_skipped", reason="database_not_configured")
            return None

        result = relay.drain_pending()
        logger.info("outbox_drain_completed", **result)
        return result

    except Exception as e:
        logger.error("outbox_drain_crashed", error=str(e), exc_info=True)
        return None


def start_scheduler(environment: str = "production") -> BackgroundScheduler:
    """
    Start background scheduler with the outbox drain job.

    Args:
        environment: Current environment (skip scheduler in testing)

    Returns:
        BackgroundScheduler instance (not started in testing)
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    if environment == "testing":
        logger.info("scheduler_skipped", reason="testing_environment")
        return scheduler

    scheduler.add_job(
        run_outbox_drain,
        trigger=IntervalTrigger(minutes=settings.outbox_drain_interval_minutes),
        id="outbox_drain",
        name="Shortlist Event Outbox Drain",
        replace_existing=True
    )
    logger.info("job_registered", job="outbox_drain",
                interval_minutes=settings.outbox_drain_interval_minutes)

    scheduler.start()
    logger.info("scheduler_started")
    return scheduler

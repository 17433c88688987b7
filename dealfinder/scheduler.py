"""
Scheduler - run récurrent du pipeline dans la boucle asyncio du serveur.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from dealfinder.core.config import Settings
from dealfinder.core.exceptions import ConfigurationError
from dealfinder.core.logging import get_logger
from dealfinder.jobs import run_deal_search

logger = get_logger(__name__)

JOB_ID = "deal_search"


def build_trigger(cron: str) -> CronTrigger:
    try:
        return CronTrigger.from_crontab(cron, timezone="UTC")
    except ValueError as e:
        raise ConfigurationError(f"SCHEDULE_CRON is not a valid crontab: {cron!r} ({e})", variable="SCHEDULE_CRON")


def setup_scheduled_jobs(settings: Settings) -> AsyncIOScheduler:
    """Crée le scheduler (non démarré) avec le job de recherche de deals."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_deal_search,
        trigger=build_trigger(settings.schedule_cron),
        args=[settings],
        kwargs={"reason": "scheduled"},
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        misfire_grace_time=300,
    )
    logger.info(f"Scheduled: deal search with cron '{settings.schedule_cron}' (UTC)", source=settings.source.value)
    return scheduler

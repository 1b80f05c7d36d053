"""APScheduler setup and job registration."""

from __future__ import annotations

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.jobs.election_auto_close import election_auto_close

scheduler = AsyncIOScheduler(timezone=settings.timezone)


def register_jobs() -> None:
    """Register all periodic jobs if not already present."""
    if scheduler.get_job("election_auto_close") is None:
        scheduler.add_job(
            election_auto_close,
            IntervalTrigger(
                minutes=max(1, settings.election_close_check_minutes),
                timezone=settings.timezone,
            ),
            id="election_auto_close",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

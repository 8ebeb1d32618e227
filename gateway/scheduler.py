"""Scheduler — periodic housekeeping jobs using APScheduler."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from gateway.cache import TTLCache

logger = logging.getLogger(__name__)


def setup_scheduler(cache: TTLCache, interval_seconds: float) -> AsyncIOScheduler:
    """Build a scheduler that sweeps expired entries out of ``cache``."""
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        cache.purge_expired,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id="metadata_cache_sweep",
        replace_existing=True,
    )
    logger.info(f"Scheduled metadata cache sweep every {interval_seconds:g}s")

    return scheduler

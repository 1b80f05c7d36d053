"""Periodic closing of elections whose close date has passed."""

from __future__ import annotations

import logging

from app.services.election_service import ElectionService
from app.utils.supabase_client import get_service_client

logger = logging.getLogger(__name__)


async def election_auto_close() -> None:
    """Move overdue open elections to Cloturee."""
    closed = ElectionService(get_service_client()).close_overdue()
    for election in closed:
        logger.info("Election %s closed automatically", election["id"])
    logger.info("election_auto_close completed for %s elections", len(closed))

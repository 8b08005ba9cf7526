"""Periodic offer-expiry sweep, run as an asyncio task inside the app lifespan.

Each tick opens its own session; a failing tick is logged and the loop keeps
going. Cancelling the task (on shutdown) ends the loop.
"""

import asyncio
import logging

from config.settings import settings
from src.sm_common.database import async_session_factory
from src.sm_offer.application.service import OfferApplicationService

logger = logging.getLogger(__name__)


async def run_sweep_once(service: OfferApplicationService | None = None) -> int:
    service = service or OfferApplicationService()
    async with async_session_factory() as db:
        return await service.sweep_expired(db)


async def sweep_forever(
    interval_seconds: float | None = None,
    service: OfferApplicationService | None = None,
) -> None:
    interval = interval_seconds or settings.OFFER_SWEEP_INTERVAL_SECONDS
    service = service or OfferApplicationService()
    logger.info("Offer expiry sweeper started (interval=%ss)", interval)
    while True:
        try:
            await run_sweep_once(service)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Offer expiry sweep failed; retrying next tick")
        await asyncio.sleep(interval)


def start_sweeper() -> asyncio.Task[None] | None:
    if not settings.OFFER_SWEEP_ENABLED:
        logger.info("Offer expiry sweeper disabled")
        return None
    return asyncio.create_task(sweep_forever(), name="offer-expiry-sweeper")


async def stop_sweeper(task: asyncio.Task[None] | None) -> None:
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass

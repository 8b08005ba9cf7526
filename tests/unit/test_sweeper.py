"""Unit tests for the background offer-expiry sweeper."""
import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config.settings import settings
from src.sm_offer.application.sweeper import (
    run_sweep_once,
    start_sweeper,
    stop_sweeper,
    sweep_forever,
)


@pytest.mark.asyncio
async def test_run_sweep_once_uses_fresh_session() -> None:
    session = AsyncMock()
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = session
    service = MagicMock()
    service.sweep_expired = AsyncMock(return_value=4)

    with patch("src.sm_offer.application.sweeper.async_session_factory", factory):
        assert await run_sweep_once(service) == 4

    service.sweep_expired.assert_awaited_once_with(session)


@pytest.mark.asyncio
async def test_failed_tick_does_not_stop_the_loop(caplog) -> None:
    ticks = AsyncMock(side_effect=[RuntimeError("db down"), 3, asyncio.CancelledError()])
    with (
        patch("src.sm_offer.application.sweeper.run_sweep_once", ticks),
        caplog.at_level(logging.ERROR, logger="src.sm_offer.application.sweeper"),
    ):
        with pytest.raises(asyncio.CancelledError):
            await sweep_forever(interval_seconds=0.001, service=MagicMock())

    assert ticks.await_count == 3
    assert "Offer expiry sweep failed" in caplog.text


@pytest.mark.asyncio
async def test_start_sweeper_disabled() -> None:
    with patch.object(settings, "OFFER_SWEEP_ENABLED", False):
        assert start_sweeper() is None
    await stop_sweeper(None)


@pytest.mark.asyncio
async def test_start_and_stop() -> None:
    async def idle() -> None:
        await asyncio.Event().wait()

    with (
        patch.object(settings, "OFFER_SWEEP_ENABLED", True),
        patch("src.sm_offer.application.sweeper.sweep_forever", idle),
    ):
        task = start_sweeper()

    assert task is not None
    assert task.get_name() == "offer-expiry-sweeper"
    await stop_sweeper(task)
    assert task.cancelled()

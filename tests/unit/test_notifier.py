"""Unit tests for RedisNotifier: channel naming and fire-and-forget failures."""
import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.sm_common.enums import EventName
from src.sm_common.notifier import DomainEvent, RedisNotifier


def _event(name: EventName = EventName.OFFER_CREATED) -> DomainEvent:
    return DomainEvent(event=name, entity_id="ofr_1", recipients=["seeker-1"], data={"price": 1000})


def test_channel_for_uses_prefix() -> None:
    assert RedisNotifier("sm").channel_for(_event()) == "sm:offer:created"
    assert RedisNotifier("test").channel_for(_event(EventName.PAYMENT_REFUND_REJECTED)) == (
        "test:payment:refundRejected"
    )


@pytest.mark.asyncio
async def test_publish_sends_json_payload() -> None:
    redis = AsyncMock()
    with patch("src.sm_common.notifier.get_redis", AsyncMock(return_value=redis)):
        await RedisNotifier("sm").publish(_event())

    channel, payload = redis.publish.await_args.args
    assert channel == "sm:offer:created"
    body = json.loads(payload)
    assert body["event"] == "offer:created"
    assert body["entity_id"] == "ofr_1"
    assert body["data"] == {"price": 1000}


@pytest.mark.asyncio
async def test_publish_failure_is_logged_not_raised(caplog) -> None:
    redis = AsyncMock()
    redis.publish.side_effect = RedisConnectionError("connection refused")
    with (
        patch("src.sm_common.notifier.get_redis", AsyncMock(return_value=redis)),
        caplog.at_level(logging.ERROR, logger="src.sm_common.notifier"),
    ):
        await RedisNotifier("sm").publish(_event())

    assert "Notifier publish failed" in caplog.text


@pytest.mark.asyncio
async def test_publish_all_keeps_going_after_failure() -> None:
    redis = AsyncMock()
    redis.publish.side_effect = [RedisConnectionError("blip"), 1]
    with patch("src.sm_common.notifier.get_redis", AsyncMock(return_value=redis)):
        await RedisNotifier("sm").publish_all(
            [_event(EventName.OFFER_ACCEPTED), _event(EventName.PAYMENT_CREATED)]
        )
    assert redis.publish.await_count == 2


@pytest.mark.asyncio
async def test_startup_ping_tolerates_dead_redis(caplog) -> None:
    from src.sm_common.redis_client import ping_redis

    redis = AsyncMock()
    redis.ping.side_effect = RedisConnectionError("connection refused")
    with (
        patch("src.sm_common.redis_client.get_redis", AsyncMock(return_value=redis)),
        caplog.at_level(logging.WARNING, logger="src.sm_common.redis_client"),
    ):
        assert await ping_redis() is False
    assert "Redis unreachable" in caplog.text

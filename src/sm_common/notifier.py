"""Lifecycle notifier: Redis Pub/Sub publisher.

Every committed state transition is announced as a DomainEvent on channel
``{NOTIFY_CHANNEL_PREFIX}:{event}`` (e.g. ``sm:offer:accepted``) so email,
UI and admin subscribers can ``PSUBSCRIBE sm:*``.

Delivery contract:
  - Events are published AFTER the store commit; a publish failure is logged
    and never rolls back or re-raises into the committed operation.
  - At-least-once: subscribers must be idempotent on (event, entity_id).
"""

import logging
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from config.settings import settings
from src.sm_common.datetime_utils import utc_now
from src.sm_common.enums import EventName
from src.sm_common.redis_client import get_redis

logger = logging.getLogger(__name__)


class DomainEvent(BaseModel):
    event: EventName
    entity_id: str
    occurred_at: datetime = Field(default_factory=utc_now)
    recipients: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)


class NotifierProtocol(Protocol):
    async def publish(self, event: DomainEvent) -> None: ...

    async def publish_all(self, events: list[DomainEvent]) -> None: ...


class RedisNotifier:
    """Concrete NotifierProtocol on Redis PUBLISH."""

    def __init__(self, channel_prefix: str | None = None) -> None:
        self._prefix = channel_prefix or settings.NOTIFY_CHANNEL_PREFIX

    def channel_for(self, event: DomainEvent) -> str:
        return f"{self._prefix}:{event.event.value}"

    async def publish(self, event: DomainEvent) -> None:
        try:
            redis = await get_redis()
            await redis.publish(self.channel_for(event), event.model_dump_json())
        except (RedisError, OSError):
            logger.exception(
                "Notifier publish failed: event=%s entity=%s", event.event.value, event.entity_id
            )
            return
        logger.debug("Published %s for %s", event.event.value, event.entity_id)

    async def publish_all(self, events: list[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)

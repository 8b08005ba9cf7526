"""Offer lifecycle events published through the notifier."""

from typing import Any

from src.sm_common.enums import EventName
from src.sm_common.notifier import DomainEvent
from src.sm_offer.domain.models import Offer


def offer_event(
    name: EventName, offer: Offer, recipients: list[str], **data: Any
) -> DomainEvent:
    payload: dict[str, Any] = {
        "request_id": offer.request_id,
        "provider_id": offer.provider_id,
        "status": offer.status,
        "price": offer.price,
    }
    payload.update(data)
    return DomainEvent(event=name, entity_id=offer.id, recipients=recipients, data=payload)

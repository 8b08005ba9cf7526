"""Payment lifecycle events published through the notifier."""

from typing import Any

from src.sm_common.enums import EventName
from src.sm_common.notifier import DomainEvent
from src.sm_payment.domain.models import Payment


def payment_event(name: EventName, payment: Payment, **data: Any) -> DomainEvent:
    payload: dict[str, Any] = {
        "request_id": payment.request_id,
        "offer_id": payment.offer_id,
        "status": payment.status,
        "amount": payment.amount,
    }
    payload.update(data)
    return DomainEvent(
        event=name, entity_id=payment.id, recipients=payment.participants, data=payload
    )

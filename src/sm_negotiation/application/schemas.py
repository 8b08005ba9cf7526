"""Pydantic schemas for sm_negotiation."""
from datetime import datetime

from pydantic import BaseModel, Field

from src.sm_common.money import cents_to_display
from src.sm_negotiation.domain.models import NegotiationEntry


class AppendNegotiationRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    counter_price_cents: int | None = Field(None, description="Proposed new total price")


class NegotiationEntryResponse(BaseModel):
    offer_id: str
    sequence: int
    actor_id: str
    message: str
    counter_price_cents: int | None
    counter_price_display: str | None
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, e: NegotiationEntry) -> "NegotiationEntryResponse":
        return cls(
            offer_id=e.offer_id,
            sequence=e.sequence,
            actor_id=e.actor_id,
            message=e.message,
            counter_price_cents=e.counter_price,
            counter_price_display=(
                cents_to_display(e.counter_price) if e.counter_price is not None else None
            ),
            created_at=e.created_at,
        )


class NegotiationHistoryResponse(BaseModel):
    offer_id: str
    effective_price_cents: int
    entries: list[NegotiationEntryResponse]

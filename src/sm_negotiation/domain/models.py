"""Negotiation ledger entries: append-only, ordered by sequence per offer."""
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class NegotiationEntry:
    offer_id: str
    sequence: int  # 1-based, dense per offer
    actor_id: str
    message: str
    counter_price: int | None = None  # cents
    created_at: datetime | None = None

    @property
    def is_counter_offer(self) -> bool:
        return self.counter_price is not None

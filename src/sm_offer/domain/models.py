"""Offer domain model: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass, field
from datetime import datetime

from src.sm_common.datetime_utils import as_utc
from src.sm_common.enums import OfferStatus


@dataclass
class PaymentSchedule:
    """Split of the offer price into deposit / milestone / final (cents)."""

    deposit: int = 0
    milestone: int = 0
    final: int = 0

    @property
    def total(self) -> int:
        return self.deposit + self.milestone + self.final


@dataclass
class Timeline:
    start_date: datetime
    duration: str  # free text: "2 hours", "3 days"


@dataclass
class Offer:
    id: str
    request_id: str
    provider_id: str
    price: int  # cents, stated total
    timeline: Timeline
    scope_of_work: str
    payment_schedule: PaymentSchedule
    materials_included: list[str] = field(default_factory=list)
    warranty: str = "No warranty"
    status: str = OfferStatus.PENDING.value
    expires_at: datetime | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status in (OfferStatus.PENDING.value, OfferStatus.NEGOTIATING.value)

    @property
    def is_terminal(self) -> bool:
        return not self.is_open

    def is_due_to_expire(self, now: datetime) -> bool:
        return (
            self.is_open
            and self.expires_at is not None
            and as_utc(self.expires_at) <= as_utc(now)
        )

    def status_at(self, now: datetime) -> str:
        """Status as of ``now``. An open offer past expires_at reads as expired
        before the sweep has written it."""
        return OfferStatus.EXPIRED.value if self.is_due_to_expire(now) else self.status


def normalize_materials(materials: list[str] | None) -> list[str]:
    """Materials are a set: strip blanks and duplicates, keep first-seen order."""
    seen: dict[str, None] = {}
    for item in materials or []:
        cleaned = item.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)

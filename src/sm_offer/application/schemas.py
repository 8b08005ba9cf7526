"""Pydantic schemas for sm_offer API requests/responses.

All monetary fields are integer cents (``*_cents``); ``*_display`` fields are
formatted strings for clients that do not want to do the division.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.sm_common.enums import OfferStatus, PaymentMethod
from src.sm_common.money import cents_to_display
from src.sm_offer.domain.models import Offer, PaymentSchedule, Timeline

# ---------------------------------------------------------------------------
# Nested value objects
# ---------------------------------------------------------------------------


class PaymentScheduleIn(BaseModel):
    # Sign is checked by the schedule validator so the error carries the component
    deposit_cents: int = 0
    milestone_cents: int = 0
    final_cents: int = 0

    def to_domain(self) -> PaymentSchedule:
        return PaymentSchedule(
            deposit=self.deposit_cents,
            milestone=self.milestone_cents,
            final=self.final_cents,
        )


class TimelineIn(BaseModel):
    start_date: datetime
    duration: str = Field(..., min_length=1, max_length=100)

    def to_domain(self) -> Timeline:
        return Timeline(start_date=self.start_date, duration=self.duration)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateOfferRequest(BaseModel):
    request_id: str = Field(..., min_length=1, max_length=32)
    price_cents: int = Field(..., description="Stated total price in cents")
    timeline: TimelineIn
    scope_of_work: str = Field(..., min_length=10, max_length=2000)
    materials_included: list[str] = Field(default_factory=list)
    warranty: str = Field("No warranty", max_length=500)
    payment_schedule: PaymentScheduleIn | None = Field(
        None, description="Defaults to the whole price due on completion"
    )


class UpdateOfferRequest(BaseModel):
    """Partial update: omitted fields keep their stored value."""

    price_cents: int | None = None
    timeline: TimelineIn | None = None
    scope_of_work: str | None = Field(None, min_length=10, max_length=2000)
    materials_included: list[str] | None = None
    warranty: str | None = Field(None, max_length=500)
    payment_schedule: PaymentScheduleIn | None = None


class AcceptOfferRequest(BaseModel):
    payment_method: PaymentMethod = PaymentMethod.CASH


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class PaymentScheduleOut(BaseModel):
    deposit_cents: int
    milestone_cents: int
    final_cents: int
    total_cents: int


class TimelineOut(BaseModel):
    start_date: datetime
    duration: str


class OfferResponse(BaseModel):
    id: str
    request_id: str
    provider_id: str
    price_cents: int
    price_display: str
    effective_price_cents: int
    timeline: TimelineOut
    scope_of_work: str
    materials_included: list[str]
    warranty: str
    payment_schedule: PaymentScheduleOut
    status: OfferStatus
    expires_at: datetime | None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, o: Offer, effective_price: int | None = None) -> "OfferResponse":
        s = o.payment_schedule
        return cls(
            id=o.id,
            request_id=o.request_id,
            provider_id=o.provider_id,
            price_cents=o.price,
            price_display=cents_to_display(o.price),
            effective_price_cents=o.price if effective_price is None else effective_price,
            timeline=TimelineOut(start_date=o.timeline.start_date, duration=o.timeline.duration),
            scope_of_work=o.scope_of_work,
            materials_included=list(o.materials_included),
            warranty=o.warranty,
            payment_schedule=PaymentScheduleOut(
                deposit_cents=s.deposit,
                milestone_cents=s.milestone,
                final_cents=s.final,
                total_cents=s.total,
            ),
            status=OfferStatus(o.status),
            expires_at=o.expires_at,
            version=o.version,
            created_at=o.created_at,
            updated_at=o.updated_at,
        )


class OfferListResponse(BaseModel):
    items: list[OfferResponse]
    next_cursor: str | None
    has_more: bool


class AcceptOfferResponse(BaseModel):
    offer: OfferResponse
    payment_id: str
    amount_cents: int
    platform_fee_cents: int
    rejected_offer_ids: list[str]


class SweepResponse(BaseModel):
    expired: int

"""Pydantic schemas for sm_payment.

Status updates are a closed set of tagged commands, one per state-machine
event, discriminated on ``status``:

    {"status": "agreed", "transaction_id": "pi_123"}
    {"status": "completed"}
    {"status": "disputed", "reason": "work not delivered"}
    {"status": "refunded"}
"""
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.sm_common.enums import PaymentMethod, PaymentStatus
from src.sm_common.money import cents_to_display
from src.sm_payment.domain.models import Payment

# ---------------------------------------------------------------------------
# Status commands
# ---------------------------------------------------------------------------


class AgreeTerms(BaseModel):
    status: Literal["agreed"]
    transaction_id: str | None = Field(None, max_length=128)


class ConfirmFunds(BaseModel):
    status: Literal["completed"]
    transaction_id: str | None = Field(None, max_length=128)


class OpenDispute(BaseModel):
    status: Literal["disputed"]
    reason: str | None = Field(None, max_length=1000)


class MarkRefunded(BaseModel):
    status: Literal["refunded"]


PaymentStatusCommand = Annotated[
    AgreeTerms | ConfirmFunds | OpenDispute | MarkRefunded,
    Field(discriminator="status"),
]


class RefundRequestBody(BaseModel):
    reason: str = Field(..., min_length=3, max_length=1000)
    amount_cents: int | None = Field(None, description="Defaults to the full payment amount")


class ResolveRefundBody(BaseModel):
    approve: bool


class OverrideStatusBody(BaseModel):
    status: Literal["disputed", "refunded"]
    reason: str = Field(..., min_length=3, max_length=1000)


# ---------------------------------------------------------------------------
# Gateway webhook (Stripe-shaped)
# ---------------------------------------------------------------------------


class GatewayObject(BaseModel):
    id: str
    metadata: dict[str, str] = Field(default_factory=dict)
    last_payment_error: dict[str, Any] | None = None


class GatewayEventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    object_: GatewayObject = Field(alias="object")


class GatewayEvent(BaseModel):
    type: str
    data: GatewayEventData


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class RefundRequestOut(BaseModel):
    reason: str
    amount_cents: int
    amount_display: str
    requested_by: str
    requested_at: datetime
    status: str


class PaymentResponse(BaseModel):
    id: str
    request_id: str
    offer_id: str
    seeker_id: str
    provider_id: str
    amount_cents: int
    amount_display: str
    platform_fee_cents: int
    provider_amount_cents: int
    payment_method: PaymentMethod
    payment_gateway: str
    transaction_id: str | None
    status: PaymentStatus
    refund_request: RefundRequestOut | None
    paid_at: datetime | None = None
    verified_at: datetime | None = None
    verified_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, p: Payment) -> "PaymentResponse":
        refund = None
        if p.refund_request is not None:
            r = p.refund_request
            refund = RefundRequestOut(
                reason=r.reason,
                amount_cents=r.amount,
                amount_display=cents_to_display(r.amount),
                requested_by=r.requested_by,
                requested_at=r.requested_at,
                status=r.status,
            )
        return cls(
            id=p.id,
            request_id=p.request_id,
            offer_id=p.offer_id,
            seeker_id=p.seeker_id,
            provider_id=p.provider_id,
            amount_cents=p.amount,
            amount_display=cents_to_display(p.amount),
            platform_fee_cents=p.platform_fee,
            provider_amount_cents=p.provider_amount,
            payment_method=PaymentMethod(p.payment_method),
            payment_gateway=p.payment_gateway,
            transaction_id=p.transaction_id,
            status=PaymentStatus(p.status),
            refund_request=refund,
            paid_at=p.paid_at,
            verified_at=p.verified_at,
            verified_by=p.verified_by,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    next_cursor: str | None
    has_more: bool

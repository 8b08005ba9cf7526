"""Payment domain model: pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime

from src.sm_common.enums import PaymentGateway, PaymentMethod, PaymentStatus, RefundStatus


@dataclass
class RefundRequest:
    reason: str
    amount: int  # cents, <= payment.amount
    requested_by: str
    requested_at: datetime
    status: str = RefundStatus.PENDING.value

    @property
    def is_outstanding(self) -> bool:
        return self.status == RefundStatus.PENDING.value


@dataclass
class Payment:
    id: str
    request_id: str
    offer_id: str
    seeker_id: str
    provider_id: str
    amount: int  # cents, effective price of the accepted offer
    platform_fee: int
    payment_method: str
    payment_gateway: str = PaymentGateway.MANUAL.value
    transaction_id: str | None = None
    status: str = PaymentStatus.PENDING.value
    refund_request: RefundRequest | None = None
    paid_at: datetime | None = None
    verified_at: datetime | None = None
    verified_by: str | None = None
    version: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def provider_amount(self) -> int:
        return self.amount - self.platform_fee

    @property
    def participants(self) -> list[str]:
        return [self.seeker_id, self.provider_id]

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.seeker_id, self.provider_id)

    @property
    def has_outstanding_refund(self) -> bool:
        return self.refund_request is not None and self.refund_request.is_outstanding


def gateway_for(method: str) -> str:
    """Card payments settle through Stripe; everything else is verified manually."""
    if method == PaymentMethod.STRIPE.value:
        return PaymentGateway.STRIPE.value
    return PaymentGateway.MANUAL.value

"""PaymentApplicationService: the Payment Manager.

Sole writer of payments. Every mutation is read → validate → update-if-
unchanged (version) → commit; a stale version raises ConflictError and the
whole transaction rolls back. Notifier events go out only after commit.

materialize() is the exception: it is called by the offer service inside
the acceptance transaction and never commits on its own.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sm_common.datetime_utils import utc_now
from src.sm_common.enums import EventName, PaymentStatus, RefundStatus, ServiceRequestStatus
from src.sm_common.errors import (
    ConflictError,
    DuplicateRefundRequestError,
    ExceedsAmountError,
    ForbiddenError,
    InvalidAmountError,
    InvalidStateError,
    InvalidTransitionError,
    PaymentAlreadyExistsError,
    PaymentNotFoundError,
)
from src.sm_common.id_generator import generate_id
from src.sm_common.money import calculate_fee
from src.sm_common.notifier import DomainEvent, NotifierProtocol, RedisNotifier
from src.sm_gateway.auth.actor import SYSTEM_ACTOR, Actor
from src.sm_offer.domain.models import Offer
from src.sm_payment.application.schemas import (
    AgreeTerms,
    ConfirmFunds,
    GatewayEvent,
    OpenDispute,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatusCommand,
)
from src.sm_payment.domain.events import payment_event
from src.sm_payment.domain.models import Payment, RefundRequest, gateway_for
from src.sm_payment.domain.repository import PaymentRepositoryProtocol
from src.sm_payment.domain.state_machine import can_override, can_transition, is_privileged
from src.sm_payment.infrastructure.persistence import PaymentRepository
from src.sm_request.domain.repository import ServiceRequestRepositoryProtocol
from src.sm_request.infrastructure.persistence import ServiceRequestRepository

logger = logging.getLogger(__name__)

_EVENT_FOR_STATUS = {
    PaymentStatus.AGREED.value: EventName.PAYMENT_AGREED,
    PaymentStatus.COMPLETED.value: EventName.PAYMENT_COMPLETED,
    PaymentStatus.DISPUTED.value: EventName.PAYMENT_DISPUTED,
    PaymentStatus.REFUNDED.value: EventName.PAYMENT_REFUNDED,
}

# Request status the engagement moves to when the payment reaches a status.
_REQUEST_ADVANCE = {
    PaymentStatus.AGREED.value: (
        (ServiceRequestStatus.ASSIGNED.value,),
        ServiceRequestStatus.IN_PROGRESS.value,
    ),
    PaymentStatus.COMPLETED.value: (
        (ServiceRequestStatus.ASSIGNED.value, ServiceRequestStatus.IN_PROGRESS.value),
        ServiceRequestStatus.COMPLETED.value,
    ),
}


class PaymentApplicationService:
    def __init__(
        self,
        repo: PaymentRepositoryProtocol | None = None,
        request_repo: ServiceRequestRepositoryProtocol | None = None,
        notifier: NotifierProtocol | None = None,
        fee_bps: int | None = None,
    ) -> None:
        self._repo: PaymentRepositoryProtocol = repo or PaymentRepository()
        self._request_repo: ServiceRequestRepositoryProtocol = (
            request_repo or ServiceRequestRepository()
        )
        self._notifier: NotifierProtocol = notifier or RedisNotifier()
        self._fee_bps = settings.PLATFORM_FEE_BPS if fee_bps is None else fee_bps

    # ------------------------------------------------------------------
    # Materialization (inside the caller's acceptance transaction)
    # ------------------------------------------------------------------

    async def materialize(
        self,
        db: AsyncSession,
        offer: Offer,
        amount: int,
        seeker_id: str,
        payment_method: str,
    ) -> Payment:
        """Create the single payment for an accepted offer. Does not commit."""
        if await self._repo.get_by_offer_id(offer.id, db) is not None:
            raise PaymentAlreadyExistsError(offer.id)
        if amount <= 0:
            raise InvalidAmountError(f"payment amount must be positive, got {amount}")

        platform_fee = calculate_fee(amount, self._fee_bps)
        if platform_fee > amount:
            raise InvalidAmountError(f"platform fee {platform_fee} exceeds amount {amount}")

        now = utc_now()
        payment = Payment(
            id=generate_id("pay"),
            request_id=offer.request_id,
            offer_id=offer.id,
            seeker_id=seeker_id,
            provider_id=offer.provider_id,
            amount=amount,
            platform_fee=platform_fee,
            payment_method=payment_method,
            payment_gateway=gateway_for(payment_method),
            created_at=now,
            updated_at=now,
        )
        try:
            await self._repo.save(payment, db)
        except IntegrityError:
            raise PaymentAlreadyExistsError(offer.id) from None
        logger.info(
            "Payment %s materialized for offer %s: amount=%d fee=%d",
            payment.id, offer.id, amount, platform_fee,
        )
        return payment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, db: AsyncSession, payment_id: str, actor: Actor) -> PaymentResponse:
        payment = await self._load(db, payment_id)
        if not (actor.is_admin or payment.is_participant(actor.user_id)):
            raise ForbiddenError("Not a participant of this payment")
        return PaymentResponse.from_domain(payment)

    async def list_mine(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None = None,
        payment_method: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> PaymentListResponse:
        """Payments where the caller is the seeker or the provider."""
        return await self._list(db, actor.user_id, status, payment_method, cursor, limit)

    async def list_all(
        self,
        db: AsyncSession,
        actor: Actor,
        status: str | None = None,
        payment_method: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
        participant_id: str | None = None,
    ) -> PaymentListResponse:
        if not actor.is_admin:
            raise ForbiddenError("Administrator role required")
        return await self._list(db, participant_id, status, payment_method, cursor, limit)

    async def _list(
        self,
        db: AsyncSession,
        participant_id: str | None,
        status: str | None,
        payment_method: str | None,
        cursor: str | None,
        limit: int,
    ) -> PaymentListResponse:
        # Fetch limit+1 to detect has_more without COUNT(*)
        payments = await self._repo.list_payments(
            participant_id, status, payment_method, limit + 1, cursor, db
        )
        has_more = len(payments) > limit
        page = payments[:limit]
        return PaymentListResponse(
            items=[PaymentResponse.from_domain(p) for p in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    async def update_status(
        self,
        db: AsyncSession,
        payment_id: str,
        command: PaymentStatusCommand,
        actor: Actor,
    ) -> PaymentResponse:
        target = command.status
        transaction_id = (
            command.transaction_id if isinstance(command, AgreeTerms | ConfirmFunds) else None
        )
        try:
            payment = await self._load(db, payment_id)
            self._check_edge(payment, target)
            if is_privileged(payment.status, target):
                if not actor.is_admin:
                    raise ForbiddenError("Administrator role required for dispute/refund", 4006)
            elif not (actor.is_admin or payment.is_participant(actor.user_id)):
                raise ForbiddenError("Not a participant of this payment")

            events = self._apply(payment, target, actor, transaction_id)
            if isinstance(command, OpenDispute) and command.reason:
                payment.refund_request = RefundRequest(
                    reason=command.reason,
                    amount=payment.amount,
                    requested_by=actor.user_id,
                    requested_at=utc_now(),
                )
            stored = await self._persist(db, payment)
            await self._advance_request(db, stored)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Payment %s -> %s by %s", payment_id, target, actor.user_id)
        await self._notifier.publish_all(self._stamp(events, stored))
        return PaymentResponse.from_domain(stored)

    async def request_refund(
        self,
        db: AsyncSession,
        payment_id: str,
        actor: Actor,
        reason: str,
        amount: int | None = None,
    ) -> PaymentResponse:
        try:
            payment = await self._load(db, payment_id)
            if not payment.is_participant(actor.user_id):
                raise ForbiddenError("Only the seeker or provider can request a refund")
            if payment.has_outstanding_refund:
                raise DuplicateRefundRequestError(payment_id)
            if payment.status != PaymentStatus.COMPLETED.value:
                raise InvalidStateError(
                    f"Refunds can only be requested for completed payments "
                    f"(payment {payment_id} is {payment.status})",
                    4007,
                )
            refund_amount = payment.amount if amount is None else amount
            if refund_amount <= 0:
                raise InvalidAmountError(f"refund amount must be positive, got {refund_amount}")
            if refund_amount > payment.amount:
                raise ExceedsAmountError(refund_amount, payment.amount)

            payment.refund_request = RefundRequest(
                reason=reason,
                amount=refund_amount,
                requested_by=actor.user_id,
                requested_at=utc_now(),
            )
            payment.status = PaymentStatus.DISPUTED.value
            stored = await self._persist(db, payment)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Refund of %d requested on payment %s by %s", refund_amount, payment_id, actor.user_id
        )
        await self._notifier.publish(
            payment_event(
                EventName.PAYMENT_DISPUTED, stored, refund_amount=refund_amount, reason=reason
            )
        )
        return PaymentResponse.from_domain(stored)

    async def resolve_refund(
        self, db: AsyncSession, payment_id: str, approve: bool, actor: Actor
    ) -> PaymentResponse:
        if not actor.is_admin:
            raise ForbiddenError("Administrator role required to resolve refunds", 4006)
        target = PaymentStatus.REFUNDED.value if approve else PaymentStatus.COMPLETED.value
        try:
            payment = await self._load(db, payment_id)
            self._check_edge(payment, target)
            events = self._apply(payment, target, actor, None)
            stored = await self._persist(db, payment)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info(
            "Refund on payment %s %s by %s",
            payment_id, "approved" if approve else "rejected", actor.user_id,
        )
        await self._notifier.publish_all(self._stamp(events, stored))
        return PaymentResponse.from_domain(stored)

    async def override_status(
        self, db: AsyncSession, payment_id: str, target: str, actor: Actor, reason: str
    ) -> PaymentResponse:
        """Privileged escape hatch: pending/agreed straight to disputed/refunded."""
        if not actor.is_admin:
            raise ForbiddenError("Administrator role required for status override", 4006)
        try:
            payment = await self._load(db, payment_id)
            if not can_override(payment.status, target):
                raise InvalidTransitionError(payment.status, target, 4005)
            previous = payment.status
            payment.status = target
            if target == PaymentStatus.REFUNDED.value and payment.has_outstanding_refund:
                payment.refund_request.status = RefundStatus.APPROVED.value  # type: ignore[union-attr]
            stored = await self._persist(db, payment)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.warning(
            "ADMIN OVERRIDE payment %s: %s -> %s by %s (%s)",
            payment_id, previous, target, actor.user_id, reason,
        )
        await self._notifier.publish(
            payment_event(_EVENT_FOR_STATUS[target], stored, override=True, reason=reason)
        )
        return PaymentResponse.from_domain(stored)

    # ------------------------------------------------------------------
    # Gateway webhook
    # ------------------------------------------------------------------

    async def handle_gateway_event(self, db: AsyncSession, event: GatewayEvent) -> dict[str, object]:
        intent = event.data.object_
        if event.type == "payment_intent.succeeded":
            return await self._gateway_succeeded(db, intent.id, intent.metadata.get("payment_id"))
        if event.type == "payment_intent.payment_failed":
            payment = await self._find_for_intent(db, intent.id, intent.metadata.get("payment_id"))
            if payment is None:
                logger.warning("Gateway failure for unknown intent %s", intent.id)
                return {"handled": False}
            error = (intent.last_payment_error or {}).get("message")
            await self._notifier.publish(
                payment_event(EventName.PAYMENT_FAILED, payment, transaction_id=intent.id, error=error)
            )
            return {"handled": True, "payment_id": payment.id}
        logger.debug("Ignoring gateway event type %s", event.type)
        return {"handled": False}

    async def _gateway_succeeded(
        self, db: AsyncSession, intent_id: str, payment_id: str | None
    ) -> dict[str, object]:
        try:
            payment = await self._find_for_intent(db, intent_id, payment_id)
            if payment is None:
                logger.warning("Gateway success for unknown intent %s", intent_id)
                await db.rollback()
                return {"handled": False}
            if payment.status in (
                PaymentStatus.COMPLETED.value,
                PaymentStatus.DISPUTED.value,
                PaymentStatus.REFUNDED.value,
            ):
                # Duplicate delivery
                await db.rollback()
                return {"handled": True, "payment_id": payment.id, "duplicate": True}
            if payment.status != PaymentStatus.AGREED.value:
                logger.warning(
                    "Gateway success for payment %s in status %s ignored",
                    payment.id, payment.status,
                )
                await db.rollback()
                return {"handled": False}

            events = self._apply(payment, PaymentStatus.COMPLETED.value, SYSTEM_ACTOR, intent_id)
            stored = await self._persist(db, payment)
            await self._advance_request(db, stored)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Payment %s completed via gateway intent %s", stored.id, intent_id)
        await self._notifier.publish_all(self._stamp(events, stored))
        return {"handled": True, "payment_id": stored.id}

    async def _find_for_intent(
        self, db: AsyncSession, intent_id: str, payment_id: str | None
    ) -> Payment | None:
        """Match on the bound transaction id.

        The ``metadata.payment_id`` hint only finds an agreed payment that has
        no intent bound yet; it never rebinds or reaches a pending payment.
        """
        payment = await self._repo.get_by_transaction_id(intent_id, db)
        if payment is not None or not payment_id:
            return payment
        candidate = await self._repo.get_by_id(payment_id, db)
        if (
            candidate is not None
            and candidate.transaction_id is None
            and candidate.status == PaymentStatus.AGREED.value
        ):
            return candidate
        return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(self, db: AsyncSession, payment_id: str) -> Payment:
        payment = await self._repo.get_by_id(payment_id, db)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    async def _persist(self, db: AsyncSession, payment: Payment) -> Payment:
        try:
            stored = await self._repo.update(payment, db)
        except IntegrityError:
            # uq_payments_transaction_id: the intent belongs to another payment
            raise InvalidStateError(
                f"Transaction id {payment.transaction_id} is already bound to another payment",
                4008,
            ) from None
        if stored is None:
            raise ConflictError("Payment", payment.id)
        return stored

    def _apply(
        self, payment: Payment, target: str, actor: Actor, transaction_id: str | None
    ) -> list[DomainEvent]:
        """Mutate payment in place for one table edge; return its events (unstamped)."""
        previous = payment.status
        now = utc_now()
        payment.status = target
        if transaction_id:
            payment.transaction_id = transaction_id

        if target == PaymentStatus.COMPLETED.value and previous == PaymentStatus.AGREED.value:
            payment.paid_at = now
            payment.verified_at = now
            payment.verified_by = actor.user_id
        elif target == PaymentStatus.COMPLETED.value and previous == PaymentStatus.DISPUTED.value:
            if payment.refund_request is not None:
                payment.refund_request.status = RefundStatus.REJECTED.value
            return [
                DomainEvent(event=EventName.PAYMENT_REFUND_REJECTED, entity_id=payment.id),
            ]
        elif target == PaymentStatus.REFUNDED.value and payment.refund_request is not None:
            payment.refund_request.status = RefundStatus.APPROVED.value

        return [DomainEvent(event=_EVENT_FOR_STATUS[target], entity_id=payment.id)]

    @staticmethod
    def _check_edge(payment: Payment, target: str) -> None:
        if not can_transition(payment.status, target):
            raise InvalidTransitionError(payment.status, target, 4005)
        # Only a dispute on settled funds may fall back to completed
        if (
            payment.status == PaymentStatus.DISPUTED.value
            and target == PaymentStatus.COMPLETED.value
            and payment.paid_at is None
        ):
            raise InvalidTransitionError(payment.status, target, 4005)

    @staticmethod
    def _stamp(events: list[DomainEvent], stored: Payment) -> list[DomainEvent]:
        """Rebuild events from the committed row so payloads reflect stored state."""
        return [payment_event(e.event, stored) for e in events]

    async def _advance_request(self, db: AsyncSession, payment: Payment) -> None:
        rule = _REQUEST_ADVANCE.get(payment.status)
        if rule is None:
            return
        from_statuses, to_status = rule
        request = await self._request_repo.get_by_id(payment.request_id, db)
        if request is None or request.status not in from_statuses:
            return
        request.status = to_status
        if await self._request_repo.update_status(request, db) is None:
            raise ConflictError("ServiceRequest", request.id)

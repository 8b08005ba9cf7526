"""OfferApplicationService: the Offer Manager.

Owns the offer state table and the acceptance transaction:

    accept = offer -> accepted
           + open siblings -> rejected
           + request -> assigned (provider recorded)
           + payment materialized
           ... all in one commit, or none of it.

Lifecycle events are published only after the commit succeeds.
"""

import logging
from datetime import datetime
from typing import NoReturn

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.sm_common.database import violated_constraint
from src.sm_common.datetime_utils import expiry_from, utc_now
from src.sm_common.enums import EventName, OfferStatus, ServiceRequestStatus
from src.sm_common.errors import (
    ConflictError,
    DuplicateOfferError,
    ForbiddenError,
    InvalidStateError,
    OfferNotEditableError,
    OfferNotFoundError,
    ServiceRequestNotFoundError,
)
from src.sm_common.id_generator import generate_id
from src.sm_common.notifier import DomainEvent, NotifierProtocol, RedisNotifier
from src.sm_gateway.auth.actor import Actor
from src.sm_negotiation.domain.repository import NegotiationLedgerProtocol
from src.sm_negotiation.infrastructure.persistence import NegotiationLedger
from src.sm_offer.application.schemas import (
    AcceptOfferResponse,
    CreateOfferRequest,
    OfferListResponse,
    OfferResponse,
    UpdateOfferRequest,
)
from src.sm_offer.domain.events import offer_event
from src.sm_offer.domain.models import Offer, PaymentSchedule, normalize_materials
from src.sm_offer.domain.pricing import effective_price, validate_price, validate_schedule
from src.sm_offer.domain.repository import OfferRepositoryProtocol
from src.sm_offer.domain.state_machine import transition
from src.sm_offer.infrastructure.persistence import OfferRepository
from src.sm_payment.application.service import PaymentApplicationService
from src.sm_payment.domain.events import payment_event
from src.sm_request.domain.models import ServiceRequest
from src.sm_request.domain.repository import ServiceRequestRepositoryProtocol
from src.sm_request.infrastructure.persistence import ServiceRequestRepository

logger = logging.getLogger(__name__)

SWEEP_BATCH_SIZE = 500
_OPEN_STATUSES = (OfferStatus.PENDING.value, OfferStatus.NEGOTIATING.value)


class OfferApplicationService:
    def __init__(
        self,
        repo: OfferRepositoryProtocol | None = None,
        request_repo: ServiceRequestRepositoryProtocol | None = None,
        ledger: NegotiationLedgerProtocol | None = None,
        payments: PaymentApplicationService | None = None,
        notifier: NotifierProtocol | None = None,
        expiry_hours: int | None = None,
    ) -> None:
        self._repo: OfferRepositoryProtocol = repo or OfferRepository()
        self._request_repo: ServiceRequestRepositoryProtocol = (
            request_repo or ServiceRequestRepository()
        )
        self._ledger: NegotiationLedgerProtocol = ledger or NegotiationLedger()
        self._notifier: NotifierProtocol = notifier or RedisNotifier()
        self._payments = payments or PaymentApplicationService(
            request_repo=self._request_repo, notifier=self._notifier
        )
        self._expiry_hours = (
            settings.OFFER_EXPIRY_HOURS if expiry_hours is None else expiry_hours
        )

    # ------------------------------------------------------------------
    # Create / update / delete (provider side)
    # ------------------------------------------------------------------

    async def create(
        self, db: AsyncSession, actor: Actor, req: CreateOfferRequest
    ) -> OfferResponse:
        if not actor.is_provider:
            raise ForbiddenError("Only providers can submit offers")
        validate_price(req.price_cents)
        schedule = (
            req.payment_schedule.to_domain()
            if req.payment_schedule is not None
            else PaymentSchedule(final=req.price_cents)
        )
        validate_schedule(req.price_cents, schedule)

        try:
            request = await self._load_request(db, req.request_id)
            if not request.accepts_offers:
                raise InvalidStateError(
                    f"Service request {request.id} is {request.status} and not accepting offers",
                    2008,
                )
            if request.seeker_id == actor.user_id:
                raise ForbiddenError("Providers cannot bid on their own service request")
            if await self._repo.get_active_by_provider(request.id, actor.user_id, db):
                raise DuplicateOfferError(request.id, actor.user_id)

            now = utc_now()
            offer = Offer(
                id=generate_id("ofr"),
                request_id=request.id,
                provider_id=actor.user_id,
                price=req.price_cents,
                timeline=req.timeline.to_domain(),
                scope_of_work=req.scope_of_work,
                payment_schedule=schedule,
                materials_included=normalize_materials(req.materials_included),
                warranty=req.warranty,
                expires_at=expiry_from(now, self._expiry_hours),
                created_at=now,
                updated_at=now,
            )
            try:
                await self._repo.save(offer, db)
            except IntegrityError as e:
                if violated_constraint(e) == "uq_offers_active_provider":
                    raise DuplicateOfferError(request.id, actor.user_id) from None
                raise

            if request.status == ServiceRequestStatus.OPEN.value:
                request.status = ServiceRequestStatus.NEGOTIATING.value
                await self._store_request(db, request)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Offer %s created on request %s by provider %s (price=%d)",
            offer.id, request.id, actor.user_id, offer.price,
        )
        await self._notifier.publish(
            offer_event(EventName.OFFER_CREATED, offer, [request.seeker_id, offer.provider_id])
        )
        return OfferResponse.from_domain(offer)

    async def update(
        self, db: AsyncSession, offer_id: str, actor: Actor, req: UpdateOfferRequest
    ) -> OfferResponse:
        try:
            offer = await self._load(db, offer_id)
            if offer.provider_id != actor.user_id:
                raise ForbiddenError("Only the offering provider can edit this offer")
            current = offer.status_at(utc_now())
            if current not in _OPEN_STATUSES:
                raise OfferNotEditableError(offer.id, current)

            if req.price_cents is not None:
                validate_price(req.price_cents)
                offer.price = req.price_cents
            if req.timeline is not None:
                offer.timeline = req.timeline.to_domain()
            if req.scope_of_work is not None:
                offer.scope_of_work = req.scope_of_work
            if req.materials_included is not None:
                offer.materials_included = normalize_materials(req.materials_included)
            if req.warranty is not None:
                offer.warranty = req.warranty
            if req.payment_schedule is not None:
                offer.payment_schedule = req.payment_schedule.to_domain()
            validate_schedule(offer.price, offer.payment_schedule)

            stored = await self._store(db, offer)
            request = await self._load_request(db, stored.request_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Offer %s updated by provider %s", offer_id, actor.user_id)
        await self._notifier.publish(
            offer_event(EventName.OFFER_UPDATED, stored, [request.seeker_id, stored.provider_id])
        )
        return OfferResponse.from_domain(stored, await self._effective_price(db, stored))

    async def delete(self, db: AsyncSession, offer_id: str, actor: Actor) -> None:
        """Withdraw an offer nobody has responded to yet."""
        try:
            offer = await self._load(db, offer_id)
            if offer.provider_id != actor.user_id:
                raise ForbiddenError("Only the offering provider can delete this offer")
            if offer.status != OfferStatus.PENDING.value:
                raise InvalidStateError(
                    f"Offer {offer.id} is {offer.status}; only pending offers can be deleted",
                    2009,
                )
            if await self._ledger.latest(offer.id, db) is not None:
                raise InvalidStateError(
                    f"Offer {offer.id} already has negotiation history", 2009
                )
            if not await self._repo.delete(offer, db):
                raise ConflictError("Offer", offer.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Offer %s deleted by provider %s", offer_id, actor.user_id)

    # ------------------------------------------------------------------
    # Accept / reject (seeker side)
    # ------------------------------------------------------------------

    async def accept(
        self, db: AsyncSession, offer_id: str, actor: Actor, payment_method: str
    ) -> AcceptOfferResponse:
        try:
            offer = await self._load(db, offer_id)
            request = await self._load_request(db, offer.request_id)
            self._check_seeker(request, actor)
            current = offer.status_at(utc_now())
            if current not in _OPEN_STATUSES:
                raise InvalidStateError(f"Offer {offer.id} is already {current}", 2007)
            if await self._repo.get_accepted_for_request(request.id, db) is not None:
                raise InvalidStateError(
                    f"Service request {request.id} already has an accepted offer", 2010
                )
            if not request.accepts_offers:
                raise InvalidStateError(
                    f"Service request {request.id} is {request.status} and not accepting offers",
                    2008,
                )

            validate_schedule(offer.price, offer.payment_schedule)
            amount = effective_price(offer, await self._ledger.history(offer.id, db))

            transition(offer, OfferStatus.ACCEPTED)
            # Request row first: concurrent acceptances on one request queue here
            request.status = ServiceRequestStatus.ASSIGNED.value
            request.assigned_provider_id = offer.provider_id
            await self._store_request(db, request)

            try:
                accepted = await self._repo.update(offer, db)
            except IntegrityError as e:
                if violated_constraint(e) == "uq_offers_one_accepted":
                    raise ConflictError("ServiceRequest", request.id) from None
                raise
            if accepted is None:
                await self._raise_lost_race(db, offer.id)
            stored = accepted
            siblings = await self._repo.reject_open_siblings(request.id, stored.id, db)

            payment = await self._payments.materialize(
                db, stored, amount, request.seeker_id, payment_method
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Offer %s accepted on request %s; %d sibling(s) rejected; payment %s amount=%d",
            stored.id, request.id, len(siblings), payment.id, amount,
        )
        events: list[DomainEvent] = [
            offer_event(
                EventName.OFFER_ACCEPTED,
                stored,
                [request.seeker_id, stored.provider_id],
                payment_id=payment.id,
                amount=amount,
            )
        ]
        events += [
            offer_event(
                EventName.OFFER_REJECTED,
                s,
                [s.provider_id, request.seeker_id],
                reason="another offer was accepted",
            )
            for s in siblings
        ]
        events.append(payment_event(EventName.PAYMENT_CREATED, payment))
        await self._notifier.publish_all(events)

        return AcceptOfferResponse(
            offer=OfferResponse.from_domain(stored, amount),
            payment_id=payment.id,
            amount_cents=payment.amount,
            platform_fee_cents=payment.platform_fee,
            rejected_offer_ids=[s.id for s in siblings],
        )

    async def reject(self, db: AsyncSession, offer_id: str, actor: Actor) -> OfferResponse:
        try:
            offer = await self._load(db, offer_id)
            request = await self._load_request(db, offer.request_id)
            self._check_seeker(request, actor)
            transition(offer, OfferStatus.REJECTED)
            stored = await self._store(db, offer)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Offer %s rejected by seeker %s", offer_id, actor.user_id)
        await self._notifier.publish(
            offer_event(EventName.OFFER_REJECTED, stored, [stored.provider_id, request.seeker_id])
        )
        return OfferResponse.from_domain(stored)

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    async def sweep_expired(self, db: AsyncSession, now: datetime | None = None) -> int:
        """Expire every open offer whose expires_at has passed.

        Each candidate is moved under its own version guard; an offer that
        was accepted, rejected or expired by someone else in the meantime is
        skipped. Returns the number of offers this call transitioned.
        """
        now = now or utc_now()
        expired: list[Offer] = []
        try:
            candidates = await self._repo.list_expiry_candidates(now, SWEEP_BATCH_SIZE, db)
            for offer in candidates:
                if not offer.is_due_to_expire(now):
                    continue
                transition(offer, OfferStatus.EXPIRED)
                stored = await self._repo.update(offer, db)
                if stored is None:
                    logger.debug("Sweep skipped offer %s (modified concurrently)", offer.id)
                    continue
                expired.append(stored)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if expired:
            logger.info("Offer sweep expired %d offer(s)", len(expired))
        for offer in expired:
            request = await self._request_repo.get_by_id(offer.request_id, db)
            recipients = [offer.provider_id]
            if request is not None:
                recipients.append(request.seeker_id)
            await self._notifier.publish(offer_event(EventName.OFFER_EXPIRED, offer, recipients))
        return len(expired)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, db: AsyncSession, offer_id: str, actor: Actor) -> OfferResponse:
        offer = await self._load(db, offer_id)
        if not actor.is_admin and actor.user_id != offer.provider_id:
            request = await self._load_request(db, offer.request_id)
            if actor.user_id != request.seeker_id:
                raise ForbiddenError("Not a participant of this offer")
        return OfferResponse.from_domain(offer, await self._effective_price(db, offer))

    async def list_offers(
        self,
        db: AsyncSession,
        actor: Actor,
        request_id: str | None = None,
        status: str | None = None,
        cursor: str | None = None,
        limit: int = 20,
    ) -> OfferListResponse:
        provider_id = actor.user_id if actor.is_provider else None
        seeker_id = actor.user_id if actor.is_seeker else None
        # Fetch limit+1 to detect has_more without COUNT(*)
        offers = await self._repo.list_offers(
            provider_id, seeker_id, request_id, status, limit + 1, cursor, db
        )
        has_more = len(offers) > limit
        page = offers[:limit]
        items = [OfferResponse.from_domain(o, await self._effective_price(db, o)) for o in page]
        return OfferListResponse(
            items=items,
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load(self, db: AsyncSession, offer_id: str) -> Offer:
        offer = await self._repo.get_by_id(offer_id, db)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return offer

    async def _load_request(self, db: AsyncSession, request_id: str) -> ServiceRequest:
        request = await self._request_repo.get_by_id(request_id, db)
        if request is None:
            raise ServiceRequestNotFoundError(request_id)
        return request

    async def _store(self, db: AsyncSession, offer: Offer) -> Offer:
        stored = await self._repo.update(offer, db)
        if stored is None:
            raise ConflictError("Offer", offer.id)
        return stored

    async def _raise_lost_race(self, db: AsyncSession, offer_id: str) -> NoReturn:
        """The offer moved since it was read: a terminal move (e.g. swept) is
        reported as InvalidState, anything else as a retryable Conflict."""
        current = await self._repo.get_by_id(offer_id, db)
        if current is not None and current.is_terminal:
            raise InvalidStateError(f"Offer {offer_id} is already {current.status}", 2007)
        raise ConflictError("Offer", offer_id)

    async def _store_request(self, db: AsyncSession, request: ServiceRequest) -> ServiceRequest:
        stored = await self._request_repo.update_status(request, db)
        if stored is None:
            raise ConflictError("ServiceRequest", request.id)
        return stored

    async def _effective_price(self, db: AsyncSession, offer: Offer) -> int:
        latest = await self._ledger.latest(offer.id, db)
        return effective_price(offer, [latest] if latest else [])

    @staticmethod
    def _check_seeker(request: ServiceRequest, actor: Actor) -> None:
        if request.seeker_id != actor.user_id:
            raise ForbiddenError("Only the seeker who posted the request can decide on offers")

"""NegotiationApplicationService: append to / read an offer's ledger.

An append always rewrites the offer row (version + 1, and pending ->
negotiating when a counter price is proposed), so a concurrent accept that
read the older version loses with ConflictError instead of accepting a price
it never saw.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.sm_common.datetime_utils import utc_now
from src.sm_common.enums import EventName, OfferStatus
from src.sm_common.errors import (
    ConflictError,
    ForbiddenError,
    InvalidAmountError,
    NegotiationClosedError,
    OfferNotFoundError,
    ServiceRequestNotFoundError,
)
from src.sm_common.notifier import NotifierProtocol, RedisNotifier
from src.sm_gateway.auth.actor import Actor
from src.sm_negotiation.application.schemas import (
    AppendNegotiationRequest,
    NegotiationEntryResponse,
    NegotiationHistoryResponse,
)
from src.sm_negotiation.domain.repository import NegotiationLedgerProtocol
from src.sm_negotiation.infrastructure.persistence import NegotiationLedger
from src.sm_offer.domain.events import offer_event
from src.sm_offer.domain.models import Offer
from src.sm_offer.domain.pricing import effective_price
from src.sm_offer.domain.repository import OfferRepositoryProtocol
from src.sm_offer.domain.state_machine import transition
from src.sm_offer.infrastructure.persistence import OfferRepository
from src.sm_request.domain.repository import ServiceRequestRepositoryProtocol
from src.sm_request.infrastructure.persistence import ServiceRequestRepository

logger = logging.getLogger(__name__)


class NegotiationApplicationService:
    def __init__(
        self,
        ledger: NegotiationLedgerProtocol | None = None,
        offer_repo: OfferRepositoryProtocol | None = None,
        request_repo: ServiceRequestRepositoryProtocol | None = None,
        notifier: NotifierProtocol | None = None,
    ) -> None:
        self._ledger: NegotiationLedgerProtocol = ledger or NegotiationLedger()
        self._offers: OfferRepositoryProtocol = offer_repo or OfferRepository()
        self._requests: ServiceRequestRepositoryProtocol = (
            request_repo or ServiceRequestRepository()
        )
        self._notifier: NotifierProtocol = notifier or RedisNotifier()

    async def append(
        self,
        db: AsyncSession,
        offer_id: str,
        actor: Actor,
        req: AppendNegotiationRequest,
    ) -> NegotiationEntryResponse:
        counter_price = req.counter_price_cents
        try:
            offer, seeker_id = await self._load_for_participant(
                db, offer_id, actor, allow_admin=False
            )
            current = offer.status_at(utc_now())
            if current not in (OfferStatus.PENDING.value, OfferStatus.NEGOTIATING.value):
                raise NegotiationClosedError(offer.id, current)
            if counter_price is not None and counter_price <= 0:
                raise InvalidAmountError(f"counter price must be positive, got {counter_price}")

            try:
                entry = await self._ledger.append(
                    offer.id, actor.user_id, req.message, counter_price, db
                )
            except IntegrityError:
                # Lost the race for the next sequence number
                raise ConflictError("Offer", offer.id) from None

            if counter_price is not None and offer.status == OfferStatus.PENDING.value:
                transition(offer, OfferStatus.NEGOTIATING)
            stored = await self._offers.update(offer, db)
            if stored is None:
                raise ConflictError("Offer", offer.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Negotiation entry #%d on offer %s by %s (counter=%s)",
            entry.sequence, offer_id, actor.user_id, counter_price,
        )
        recipients = [seeker_id, stored.provider_id]
        events = [
            offer_event(
                EventName.NEGOTIATION_NEW_MESSAGE,
                stored,
                recipients,
                sequence=entry.sequence,
                sender_id=actor.user_id,
                message=entry.message,
            )
        ]
        if entry.is_counter_offer:
            events.append(
                offer_event(
                    EventName.NEGOTIATION_COUNTER_OFFER,
                    stored,
                    recipients,
                    sequence=entry.sequence,
                    sender_id=actor.user_id,
                    counter_price=entry.counter_price,
                )
            )
        await self._notifier.publish_all(events)
        return NegotiationEntryResponse.from_domain(entry)

    async def history(
        self, db: AsyncSession, offer_id: str, actor: Actor
    ) -> NegotiationHistoryResponse:
        offer, _ = await self._load_for_participant(db, offer_id, actor, allow_admin=True)
        entries = await self._ledger.history(offer.id, db)
        return NegotiationHistoryResponse(
            offer_id=offer.id,
            effective_price_cents=effective_price(offer, entries),
            entries=[NegotiationEntryResponse.from_domain(e) for e in entries],
        )

    async def _load_for_participant(
        self, db: AsyncSession, offer_id: str, actor: Actor, allow_admin: bool
    ) -> tuple[Offer, str]:
        """Return (offer, seeker_id) if actor is the provider or the seeker."""
        offer = await self._offers.get_by_id(offer_id, db)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        request = await self._requests.get_by_id(offer.request_id, db)
        if request is None:
            raise ServiceRequestNotFoundError(offer.request_id)
        if actor.user_id not in (offer.provider_id, request.seeker_id) and not (
            allow_admin and actor.is_admin
        ):
            raise ForbiddenError("Only the provider and the seeker can negotiate this offer")
        return offer, request.seeker_id

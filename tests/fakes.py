"""In-memory stand-ins for the repositories, session and notifier.

The fakes keep the two store properties the lifecycle depends on:

  - update-if-unchanged: an update with a stale ``version`` returns None
  - transactions: FakeSession.rollback() restores the state as of the last
    commit, so a failed operation leaves nothing behind

Unique indexes are emulated by raising sqlalchemy IntegrityError carrying the
same constraint names as the migrations.
"""

import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError

from src.sm_common.enums import Role
from src.sm_common.notifier import DomainEvent
from src.sm_gateway.auth.actor import Actor
from src.sm_negotiation.application.service import NegotiationApplicationService
from src.sm_negotiation.domain.models import NegotiationEntry
from src.sm_offer.application.service import OfferApplicationService
from src.sm_offer.domain.models import Offer, PaymentSchedule, Timeline
from src.sm_payment.application.service import PaymentApplicationService
from src.sm_payment.domain.models import Payment
from src.sm_request.domain.models import ServiceRequest

_OPEN = ("pending", "negotiating")


class _ConstraintViolation(Exception):
    def __init__(self, constraint_name: str) -> None:
        super().__init__(f'duplicate key value violates unique constraint "{constraint_name}"')
        self.constraint_name = constraint_name


def integrity_error(constraint_name: str) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, _ConstraintViolation(constraint_name))


@dataclass
class InMemoryStore:
    requests: dict[str, ServiceRequest] = field(default_factory=dict)
    offers: dict[str, Offer] = field(default_factory=dict)
    entries: dict[str, list[NegotiationEntry]] = field(default_factory=dict)
    payments: dict[str, Payment] = field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(
            {
                "requests": self.requests,
                "offers": self.offers,
                "entries": self.entries,
                "payments": self.payments,
            }
        )

    def restore(self, snap: dict[str, Any]) -> None:
        state = copy.deepcopy(snap)
        self.requests = state["requests"]
        self.offers = state["offers"]
        self.entries = state["entries"]
        self.payments = state["payments"]


class FakeSession:
    """Stands in for AsyncSession: only commit/rollback are used by services."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.commits = 0
        self.rollbacks = 0
        self._snapshot = store.snapshot()

    async def commit(self) -> None:
        self.commits += 1
        self._snapshot = self.store.snapshot()

    async def rollback(self) -> None:
        self.rollbacks += 1
        self.store.restore(self._snapshot)

    def commit_elsewhere(self, mutate: Callable[[InMemoryStore], None]) -> None:
        """Apply a write committed by another transaction.

        Only valid before this session has written anything itself, e.g.
        from FakeOfferRepository.after_read.
        """
        mutate(self.store)
        self._snapshot = self.store.snapshot()


class RecordingNotifier:
    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    async def publish_all(self, events: list[DomainEvent]) -> None:
        self.events.extend(events)

    @property
    def names(self) -> list[str]:
        return [e.event.value for e in self.events]

    def of(self, name: str) -> list[DomainEvent]:
        return [e for e in self.events if e.event.value == name]


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class FakeServiceRequestRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        # Called with the request id before the next update_status; lets a
        # test commit a competing write after the operation has read.
        self.before_update: Callable[[str], None] | None = None

    async def save(self, request: ServiceRequest, db: Any) -> None:
        self.store.requests[request.id] = copy.deepcopy(request)

    async def get_by_id(self, request_id: str, db: Any) -> ServiceRequest | None:
        found = self.store.requests.get(request_id)
        return copy.deepcopy(found) if found else None

    async def update_status(self, request: ServiceRequest, db: Any) -> ServiceRequest | None:
        if self.before_update is not None:
            hook, self.before_update = self.before_update, None
            hook(request.id)
        current = self.store.requests.get(request.id)
        if current is None or current.version != request.version:
            return None
        current.status = request.status
        current.assigned_provider_id = request.assigned_provider_id
        current.version += 1
        return copy.deepcopy(current)


class FakeOfferRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        # Called with the offer id after each get_by_id; lets a test slip a
        # concurrent write in between an operation's read and its update.
        self.after_read: Callable[[str], None] | None = None

    def _copy(self, offer: Offer | None) -> Offer | None:
        return copy.deepcopy(offer) if offer else None

    async def save(self, offer: Offer, db: Any) -> None:
        for other in self.store.offers.values():
            if (
                other.request_id == offer.request_id
                and other.provider_id == offer.provider_id
                and other.status in _OPEN
            ):
                raise integrity_error("uq_offers_active_provider")
        stored = copy.deepcopy(offer)
        stored.version = 0
        self.store.offers[offer.id] = stored

    async def get_by_id(self, offer_id: str, db: Any) -> Offer | None:
        found = self._copy(self.store.offers.get(offer_id))
        if self.after_read is not None:
            hook, self.after_read = self.after_read, None
            hook(offer_id)
        return found

    async def get_active_by_provider(
        self, request_id: str, provider_id: str, db: Any
    ) -> Offer | None:
        for o in self.store.offers.values():
            if o.request_id == request_id and o.provider_id == provider_id and o.status in _OPEN:
                return self._copy(o)
        return None

    async def get_accepted_for_request(self, request_id: str, db: Any) -> Offer | None:
        for o in self.store.offers.values():
            if o.request_id == request_id and o.status == "accepted":
                return self._copy(o)
        return None

    async def update(self, offer: Offer, db: Any) -> Offer | None:
        current = self.store.offers.get(offer.id)
        if current is None or current.version != offer.version:
            return None
        if offer.status == "accepted" and any(
            o.request_id == offer.request_id and o.status == "accepted" and o.id != offer.id
            for o in self.store.offers.values()
        ):
            raise integrity_error("uq_offers_one_accepted")
        stored = copy.deepcopy(offer)
        stored.version = current.version + 1
        self.store.offers[offer.id] = stored
        return self._copy(stored)

    async def reject_open_siblings(
        self, request_id: str, accepted_offer_id: str, db: Any
    ) -> list[Offer]:
        rejected = []
        for o in self.store.offers.values():
            if o.request_id == request_id and o.id != accepted_offer_id and o.status in _OPEN:
                o.status = "rejected"
                o.version += 1
                rejected.append(copy.deepcopy(o))
        return rejected

    async def delete(self, offer: Offer, db: Any) -> bool:
        current = self.store.offers.get(offer.id)
        if current is None or current.version != offer.version or current.status != "pending":
            return False
        del self.store.offers[offer.id]
        return True

    async def list_expiry_candidates(self, now: datetime, limit: int, db: Any) -> list[Offer]:
        due = [
            o for o in self.store.offers.values()
            if o.status in _OPEN and o.expires_at is not None and o.expires_at <= now
        ]
        due.sort(key=lambda o: o.expires_at)  # type: ignore[arg-type, return-value]
        return [copy.deepcopy(o) for o in due[:limit]]

    async def list_offers(
        self,
        provider_id: str | None,
        seeker_id: str | None,
        request_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
        db: Any,
    ) -> list[Offer]:
        result = []
        for o in sorted(self.store.offers.values(), key=lambda o: o.id, reverse=True):
            request = self.store.requests.get(o.request_id)
            if provider_id is not None and o.provider_id != provider_id:
                continue
            if seeker_id is not None and (request is None or request.seeker_id != seeker_id):
                continue
            if request_id is not None and o.request_id != request_id:
                continue
            if status is not None and o.status != status:
                continue
            if cursor_id is not None and not o.id < cursor_id:
                continue
            result.append(copy.deepcopy(o))
        return result[:limit]


class FakeNegotiationLedger:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.fail_next_append = False

    async def append(
        self,
        offer_id: str,
        actor_id: str,
        message: str,
        counter_price: int | None,
        db: Any,
    ) -> NegotiationEntry:
        if self.fail_next_append:
            self.fail_next_append = False
            raise integrity_error("uq_negotiation_entries_offer_seq")
        entries = self.store.entries.setdefault(offer_id, [])
        entry = NegotiationEntry(
            offer_id=offer_id,
            sequence=len(entries) + 1,
            actor_id=actor_id,
            message=message,
            counter_price=counter_price,
        )
        entries.append(entry)
        return entry

    async def history(self, offer_id: str, db: Any) -> list[NegotiationEntry]:
        return list(self.store.entries.get(offer_id, []))

    async def latest(self, offer_id: str, db: Any) -> NegotiationEntry | None:
        entries = self.store.entries.get(offer_id, [])
        return entries[-1] if entries else None


class FakePaymentRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def save(self, payment: Payment, db: Any) -> None:
        if any(p.offer_id == payment.offer_id for p in self.store.payments.values()):
            raise integrity_error("uq_payments_offer_id")
        stored = copy.deepcopy(payment)
        stored.version = 0
        self.store.payments[payment.id] = stored

    async def get_by_id(self, payment_id: str, db: Any) -> Payment | None:
        found = self.store.payments.get(payment_id)
        return copy.deepcopy(found) if found else None

    async def get_by_offer_id(self, offer_id: str, db: Any) -> Payment | None:
        for p in self.store.payments.values():
            if p.offer_id == offer_id:
                return copy.deepcopy(p)
        return None

    async def get_by_transaction_id(self, transaction_id: str, db: Any) -> Payment | None:
        for p in self.store.payments.values():
            if p.transaction_id == transaction_id:
                return copy.deepcopy(p)
        return None

    async def update(self, payment: Payment, db: Any) -> Payment | None:
        current = self.store.payments.get(payment.id)
        if current is None or current.version != payment.version:
            return None
        if payment.transaction_id and any(
            p.transaction_id == payment.transaction_id and p.id != payment.id
            for p in self.store.payments.values()
        ):
            raise integrity_error("uq_payments_transaction_id")
        stored = copy.deepcopy(payment)
        stored.version = current.version + 1
        self.store.payments[payment.id] = stored
        return copy.deepcopy(stored)

    async def list_payments(
        self,
        participant_id: str | None,
        status: str | None,
        payment_method: str | None,
        limit: int,
        cursor_id: str | None,
        db: Any,
    ) -> list[Payment]:
        result = []
        for p in sorted(self.store.payments.values(), key=lambda p: p.id, reverse=True):
            if participant_id is not None and not p.is_participant(participant_id):
                continue
            if status is not None and p.status != status:
                continue
            if payment_method is not None and p.payment_method != payment_method:
                continue
            if cursor_id is not None and not p.id < cursor_id:
                continue
            result.append(copy.deepcopy(p))
        return result[:limit]


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

SEEKER = Actor("seeker-1", Role.SEEKER)
PROVIDER = Actor("provider-1", Role.PROVIDER)
OTHER_PROVIDER = Actor("provider-2", Role.PROVIDER)
ADMIN = Actor("admin-1", Role.ADMIN)
STRANGER = Actor("seeker-9", Role.SEEKER)


class Marketplace:
    """All services wired onto one in-memory store, plus seeding helpers."""

    def __init__(self) -> None:
        self.store = InMemoryStore()
        self.notifier = RecordingNotifier()
        self.requests = FakeServiceRequestRepository(self.store)
        self.offers = FakeOfferRepository(self.store)
        self.ledger = FakeNegotiationLedger(self.store)
        self.payments = FakePaymentRepository(self.store)
        self.payment_service = PaymentApplicationService(
            repo=self.payments, request_repo=self.requests, notifier=self.notifier, fee_bps=500
        )
        self.offer_service = OfferApplicationService(
            repo=self.offers,
            request_repo=self.requests,
            ledger=self.ledger,
            payments=self.payment_service,
            notifier=self.notifier,
            expiry_hours=48,
        )
        self.negotiation_service = NegotiationApplicationService(
            ledger=self.ledger,
            offer_repo=self.offers,
            request_repo=self.requests,
            notifier=self.notifier,
        )
        self._sessions: list[FakeSession] = []

    def session(self) -> FakeSession:
        session = FakeSession(self.store)
        self._sessions.append(session)
        return session

    def _seeded(self) -> None:
        # Seeded rows count as committed for every open session
        for session in self._sessions:
            session.commit_elsewhere(lambda store: None)

    def add_request(
        self, request_id: str = "req_1", seeker_id: str = SEEKER.user_id, status: str = "open"
    ) -> ServiceRequest:
        request = ServiceRequest(
            id=request_id, seeker_id=seeker_id, title="Fix the sink", description=None,
            status=status,
        )
        self.store.requests[request_id] = request
        self._seeded()
        return request

    def add_offer(
        self,
        offer_id: str = "ofr_1",
        request_id: str = "req_1",
        provider_id: str = PROVIDER.user_id,
        price: int = 1000,
        schedule: PaymentSchedule | None = None,
        status: str = "pending",
        expires_at: datetime | None = None,
    ) -> Offer:
        now = datetime.now(UTC)
        offer = Offer(
            id=offer_id,
            request_id=request_id,
            provider_id=provider_id,
            price=price,
            timeline=Timeline(start_date=now, duration="2 days"),
            scope_of_work="Replace the kitchen sink trap",
            payment_schedule=schedule or PaymentSchedule(300, 400, 300),
            status=status,
            expires_at=expires_at or now + timedelta(hours=48),
        )
        self.store.offers[offer_id] = offer
        self._seeded()
        return offer

    def add_payment(
        self,
        payment_id: str = "pay_1",
        offer_id: str = "ofr_1",
        amount: int = 1000,
        status: str = "completed",
        **kwargs: object,
    ) -> Payment:
        if status in ("completed", "disputed", "refunded"):
            # Seeded settled payments cleared funds an hour ago
            kwargs.setdefault("paid_at", datetime.now(UTC) - timedelta(hours=1))
        payment = Payment(
            id=payment_id,
            request_id="req_1",
            offer_id=offer_id,
            seeker_id=SEEKER.user_id,
            provider_id=PROVIDER.user_id,
            amount=amount,
            platform_fee=50,
            payment_method="cash",
            status=status,
            **kwargs,  # type: ignore[arg-type]
        )
        self.store.payments[payment_id] = payment
        self._seeded()
        return payment

"""Offer status transitions.

    pending ──counter appended──▶ negotiating
    pending | negotiating ──accept──▶ accepted   (terminal)
    pending | negotiating ──reject──▶ rejected   (terminal)
    pending | negotiating ──sweep───▶ expired    (terminal)

A terminal status is never left.
"""

from src.sm_common.enums import OfferStatus
from src.sm_common.errors import InvalidStateError
from src.sm_offer.domain.models import Offer

_P = OfferStatus.PENDING.value
_N = OfferStatus.NEGOTIATING.value
_A = OfferStatus.ACCEPTED.value
_R = OfferStatus.REJECTED.value
_E = OfferStatus.EXPIRED.value

TRANSITIONS: dict[str, frozenset[str]] = {
    _P: frozenset({_N, _A, _R, _E}),
    _N: frozenset({_A, _R, _E}),
    _A: frozenset(),
    _R: frozenset(),
    _E: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def transition(offer: Offer, target: OfferStatus) -> None:
    """Move offer to target in place, or raise InvalidStateError."""
    if not can_transition(offer.status, target.value):
        raise InvalidStateError(
            f"Offer {offer.id} cannot move from {offer.status} to {target.value}", 2007
        )
    offer.status = target.value

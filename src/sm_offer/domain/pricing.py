"""Money/schedule validation: pure, side-effect free.

Invariant: deposit + milestone + final <= price, every component >= 0.
Checked on offer create, on every offer edit and again at acceptance.
"""

from collections.abc import Sequence

from src.sm_common.errors import (
    InvalidAmountError,
    NegativeComponentError,
    OvercommittedScheduleError,
)
from src.sm_negotiation.domain.models import NegotiationEntry
from src.sm_offer.domain.models import Offer, PaymentSchedule


def validate_price(price: int) -> None:
    if price <= 0:
        raise InvalidAmountError(f"offer price must be positive, got {price}")


def validate_schedule(price: int, schedule: PaymentSchedule) -> None:
    """Raise a ScheduleError if the schedule is malformed for this price."""
    for component in ("deposit", "milestone", "final"):
        value = getattr(schedule, component)
        if value < 0:
            raise NegativeComponentError(component, value)
    if schedule.total > price:
        raise OvercommittedScheduleError(schedule.total, price)


def effective_price(offer: Offer, entries: Sequence[NegotiationEntry]) -> int:
    """Latest entry's counter price if it carries one, else the stated price."""
    if entries and entries[-1].counter_price is not None:
        return entries[-1].counter_price
    return offer.price

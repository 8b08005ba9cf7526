"""Tests for the offer money/schedule validator."""

from datetime import UTC, datetime

import pytest

from src.sm_common.errors import (
    InvalidAmountError,
    NegativeComponentError,
    OvercommittedScheduleError,
)
from src.sm_negotiation.domain.models import NegotiationEntry
from src.sm_offer.domain.models import Offer, PaymentSchedule, Timeline
from src.sm_offer.domain.pricing import effective_price, validate_price, validate_schedule


def _offer(price: int = 1000) -> Offer:
    return Offer(
        id="ofr_1",
        request_id="req_1",
        provider_id="p-1",
        price=price,
        timeline=Timeline(start_date=datetime.now(UTC), duration="1 day"),
        scope_of_work="Paint the hallway",
        payment_schedule=PaymentSchedule(0, 0, price),
    )


def _entry(seq: int, counter: int | None) -> NegotiationEntry:
    return NegotiationEntry(
        offer_id="ofr_1", sequence=seq, actor_id="s-1", message="hi", counter_price=counter
    )


class TestValidateSchedule:
    def test_split_within_price(self) -> None:
        validate_schedule(1000, PaymentSchedule(300, 400, 300))

    def test_schedule_may_be_under_price(self) -> None:
        validate_schedule(1000, PaymentSchedule(100, 0, 0))

    def test_overcommitted(self) -> None:
        with pytest.raises(OvercommittedScheduleError) as exc_info:
            validate_schedule(1000, PaymentSchedule(500, 400, 300))
        assert exc_info.value.total == 1200
        assert exc_info.value.price == 1000

    @pytest.mark.parametrize("component", ["deposit", "milestone", "final"])
    def test_negative_component(self, component: str) -> None:
        schedule = PaymentSchedule(**{component: -1})
        with pytest.raises(NegativeComponentError) as exc_info:
            validate_schedule(1000, schedule)
        assert exc_info.value.component == component

    def test_negative_checked_before_sum(self) -> None:
        # -100 + 1200 = 1100 > 1000, but the negative component is the reported fault
        with pytest.raises(NegativeComponentError):
            validate_schedule(1000, PaymentSchedule(-100, 1200, 0))


class TestValidatePrice:
    def test_positive(self) -> None:
        validate_price(1)

    @pytest.mark.parametrize("price", [0, -5])
    def test_non_positive(self, price: int) -> None:
        with pytest.raises(InvalidAmountError):
            validate_price(price)


class TestEffectivePrice:
    def test_empty_ledger_uses_stated_price(self) -> None:
        assert effective_price(_offer(1000), []) == 1000

    def test_latest_counter_wins(self) -> None:
        entries = [_entry(1, 900), _entry(2, 950)]
        assert effective_price(_offer(1000), entries) == 950

    def test_latest_without_counter_falls_back_to_price(self) -> None:
        entries = [_entry(1, 900), _entry(2, None)]
        assert effective_price(_offer(1000), entries) == 1000

"""Tests for sm_common.money — integer cents utilities."""

from src.sm_common.money import calculate_fee, cents_to_display


class TestCentsToDisplay:
    def test_basic(self) -> None:
        assert cents_to_display(6500) == "$65.00"

    def test_zero(self) -> None:
        assert cents_to_display(0) == "$0.00"

    def test_one_cent(self) -> None:
        assert cents_to_display(1) == "$0.01"

    def test_large(self) -> None:
        assert cents_to_display(150000) == "$1,500.00"

    def test_negative(self) -> None:
        assert cents_to_display(-1200) == "-$12.00"


class TestCalculateFee:
    def test_five_percent(self) -> None:
        assert calculate_fee(1000, 500) == 50

    def test_rounds_up(self) -> None:
        # 333 * 5% = 16.65 -> 17
        assert calculate_fee(333, 500) == 17

    def test_smallest_amount_pays_one_cent(self) -> None:
        assert calculate_fee(1, 500) == 1

    def test_zero_rate(self) -> None:
        assert calculate_fee(1000, 0) == 0

    def test_zero_amount(self) -> None:
        assert calculate_fee(0, 500) == 0

    def test_never_exceeds_amount_at_full_rate(self) -> None:
        assert calculate_fee(999, 10000) == 999

"""
Unit tests for money helpers in market_kernel.db.types.

Verifies:
- Cent rounding is ROUND_HALF_UP and deterministic
- Float constructor prohibition
- Zero-safe ratios and percentages
"""

from decimal import Decimal, InvalidOperation

import pytest

from market_kernel.db.types import (
    MONEY_DECIMAL_PLACES,
    ZERO,
    percentage,
    round_money,
    safe_ratio,
    to_money,
)


class TestToMoney:
    """Tests for to_money coercion."""

    def test_string(self):
        assert to_money("8.5") == Decimal("8.50")

    def test_int(self):
        assert to_money(12) == Decimal("12.00")

    def test_decimal_is_rounded(self):
        assert to_money(Decimal("3.005")) == Decimal("3.01")

    def test_float_rejected(self):
        """A float price has already lost precision."""
        with pytest.raises(TypeError):
            to_money(0.1)

    def test_garbage_string_raises(self):
        with pytest.raises(InvalidOperation):
            to_money("eight dollars")


class TestRoundMoney:
    """Tests for round_money."""

    def test_default_places(self):
        assert MONEY_DECIMAL_PLACES == 2
        assert round_money(Decimal("1.234")) == Decimal("1.23")

    def test_half_up(self):
        assert round_money(Decimal("2.675")) == Decimal("2.68")
        assert round_money(Decimal("-2.675")) == Decimal("-2.68")

    def test_zero_places(self):
        assert round_money(Decimal("9.5"), decimal_places=0) == Decimal("10")

    def test_deterministic(self):
        values = {round_money(Decimal("10") / Decimal("3")) for _ in range(100)}
        assert values == {Decimal("3.33")}


class TestRatios:
    """Zero-safe ratio helpers used by metrics."""

    def test_safe_ratio(self):
        assert safe_ratio(Decimal("42.00"), 3) == Decimal("14.00")

    def test_safe_ratio_zero_denominator(self):
        assert safe_ratio(Decimal("42.00"), 0) == ZERO

    def test_percentage(self):
        assert percentage(Decimal("1"), Decimal("3")) == Decimal("33.33")

    def test_percentage_zero_whole(self):
        assert percentage(Decimal("5"), Decimal("0")) == ZERO

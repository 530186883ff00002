"""Unit tests for Money and Percentage value types"""

import pytest
from decimal import Decimal
from src.domain.errors import ValidationError
from src.domain.money import Money, Percentage, round_fiscal


class TestMoney:
    """Test exact decimal arithmetic"""

    def test_of_accepts_str_int_and_decimal(self):
        assert Money.of("10.50").amount == Decimal("10.50")
        assert Money.of(3).amount == Decimal("3")
        assert Money.of(Decimal("0.125")).amount == Decimal("0.125")

    @pytest.mark.parametrize("value", [1.5, True, "abc", "NaN", "Infinity"])
    def test_of_rejects_floats_booleans_and_non_finite(self, value):
        with pytest.raises(ValidationError):
            Money.of(value)

    def test_arithmetic_keeps_full_precision(self):
        # Arrange
        price = Money.of("10.005")

        # Act
        total = price.multiply(3)

        # Assert
        assert total.amount == Decimal("30.015")
        assert total.rounded().amount == Decimal("30.02")

    def test_rounding_is_half_up(self):
        assert round_fiscal(Decimal("0.125")) == Decimal("0.13")
        assert round_fiscal(Decimal("0.124")) == Decimal("0.12")
        assert round_fiscal(Decimal("2.675")) == Decimal("2.68")

    def test_percentage_share_is_unrounded(self):
        share = Money.of("30.02").percentage(Percentage.of(21))
        assert share.amount == Decimal("6.3042")

    def test_operators_and_comparisons(self):
        a = Money.of("5.00")
        b = Money.of("2.50")
        assert (a + b).amount == Decimal("7.50")
        assert (a - b).amount == Decimal("2.50")
        assert b < a
        assert a >= b
        assert (b - a).is_negative()
        assert Money.zero().is_zero()

    def test_format_has_two_decimals(self):
        assert Money.of("121").format() == "121.00"
        assert Money.of("0.125").format() == "0.13"
        assert str(Money.of("7.5")) == "7.50"


class TestPercentage:
    """Test rate bounds"""

    def test_bounds_are_inclusive(self):
        assert Percentage.of(0).is_zero()
        assert Percentage.of(100).value == Decimal("100")

    @pytest.mark.parametrize("value", ["-0.01", "100.01", 250])
    def test_out_of_range_is_rejected(self, value):
        with pytest.raises(ValidationError) as exc_info:
            Percentage.of(value)
        assert exc_info.value.code == "VALIDATION_ERROR"

    def test_str(self):
        assert str(Percentage.of("21")) == "21%"
        assert str(Percentage.of("10.50")) == "10.5%"

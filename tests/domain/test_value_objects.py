"""Unit tests for domain value objects."""

import pytest

from barter.domain.exceptions import ValidationError
from barter.domain.model.value_objects import Money, Quantity


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_creation(self):
        m = Money(1050)
        assert m.cents == 1050
        assert m.currency == "USD"

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(-1)

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="integer cents"):
            Money(10.5)

    def test_bool_amount_rejected(self):
        with pytest.raises(ValidationError, match="integer cents"):
            Money(True)

    def test_invalid_currency_rejected(self):
        with pytest.raises(ValidationError, match="Invalid currency"):
            Money(100, "US")

    def test_str_formatting(self):
        assert str(Money(3000)) == "USD 30.00"
        assert str(Money(905, "EUR")) == "EUR 9.05"

    def test_less_than(self):
        assert Money(500) < Money(1000)
        assert not Money(1000) < Money(1000)

    def test_equality(self):
        assert Money(1000) == Money(1000)
        assert Money(1000) != Money(1000, "EUR")

    def test_comparing_currencies_rejected(self):
        with pytest.raises(ValidationError, match="Cannot compare"):
            Money(500, "USD") < Money(500, "EUR")

    def test_immutable(self):
        m = Money(100)
        with pytest.raises(AttributeError):
            m.cents = 200


# ── Quantity ─────────────────────────────────────────────────────────────────


class TestQuantity:

    def test_valid_quantity(self):
        assert Quantity(5).value == 5

    def test_zero_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(0)

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(-3)

    def test_non_integer_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(1.5)

"""
Decimal coercion and UF helpers.
"""

from datetime import date
from decimal import Decimal

import pytest

from fiscal_kernel.domain.dtos import DraftItemSpec
from fiscal_kernel.domain.values import digits_only, round_money, to_decimal
from fiscal_kernel.exceptions import FiscalValidationError, InvalidAmountError


class TestToDecimal:

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (Decimal("1.50"), Decimal("1.50")),
            (3, Decimal("3")),
            (" 12.345 ", Decimal("12.345")),
        ],
    )
    def test_accepted_inputs(self, raw, expected):
        assert to_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [1.5, True])
    def test_floats_and_booleans_refused(self, raw):
        with pytest.raises(TypeError):
            to_decimal(raw, "quantity")

    def test_non_numeric_string(self):
        with pytest.raises(InvalidAmountError) as exc_info:
            to_decimal("dez", "quantity")

        assert exc_info.value.field_name == "quantity"
        assert exc_info.value.code == "INVALID_AMOUNT"

    @pytest.mark.parametrize(
        "raw",
        ["NaN", "Infinity", "-Infinity", "sNaN", Decimal("NaN"), Decimal("-Infinity")],
    )
    def test_non_finite_refused(self, raw):
        with pytest.raises(InvalidAmountError):
            to_decimal(raw, "unit_price")


class TestItemSpecAmounts:

    @pytest.mark.parametrize("bad", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_quantity_is_a_validation_error(self, bad):
        with pytest.raises(FiscalValidationError) as exc_info:
            DraftItemSpec(description="Soja", quantity=bad, unit_price=Decimal("5.00"))

        assert exc_info.value.field_name == "quantity"

    @pytest.mark.parametrize("field", ["unit_price", "line_total", "funrural_value"])
    def test_non_finite_money_field(self, field):
        values = {"description": "Soja", "quantity": Decimal("1"), "unit_price": Decimal("5.00")}
        values[field] = Decimal("Infinity")

        with pytest.raises(InvalidAmountError) as exc_info:
            DraftItemSpec(**values)

        assert exc_info.value.field_name == field


class TestHelpers:

    def test_round_money_half_up(self):
        assert round_money(Decimal("150.255")) == Decimal("150.26")

    def test_digits_only(self):
        assert digits_only("12.345.678/0001-95") == "12345678000195"
        assert digits_only(None) == ""

    def test_dates_are_not_amounts(self):
        with pytest.raises(TypeError):
            to_decimal(date(2025, 1, 20))

from decimal import Decimal

import pytest
from checkout.order.order import to_minor_units


class TestToMinorUnits:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (32.50, 3250),
            (19.99, 1999),
            (32, 3200),
            (0.01, 1),
            (1234.56, 123456),
        ],
    )
    def test_converts_display_amounts(self, amount, expected):
        assert to_minor_units(amount) == expected

    def test_rounds_half_up(self):
        assert to_minor_units(10.005) == 1001
        assert to_minor_units(0.015) == 2

    def test_rounds_down_below_half(self):
        assert to_minor_units(10.004) == 1000

    def test_accepts_decimal(self):
        assert to_minor_units(Decimal("0.125")) == 13

    def test_accepts_numeric_string(self):
        assert to_minor_units("45.10") == 4510

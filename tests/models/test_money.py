from decimal import Decimal

import pytest

from billcycle.models import format_money, parse_money


class TestFormatMoney:
    def test_thousands(self):
        assert format_money(Decimal("2850")) == "R$ 2.850,00"

    def test_cents(self):
        assert format_money(Decimal("99.9")) == "R$ 99,90"

    def test_zero(self):
        assert format_money(Decimal("0")) == "R$ 0,00"

    def test_millions(self):
        assert format_money(Decimal("1234567.89")) == "R$ 1.234.567,89"


class TestParseMoney:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("2850.00", Decimal("2850.00")),
            ("2850", Decimal("2850.00")),
            ("2.850,00", Decimal("2850.00")),
            ("99,9", Decimal("99.90")),
            ("R$ 1.000,50", Decimal("1000.50")),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_money(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", "abc", "NaN", "Infinity"])
    def test_invalid(self, raw):
        assert parse_money(raw) is None

"""
Payment validation tests: cash change, GCash references, split tenders.
"""

import json

import pytest

from kitchenpos.money import format_amount, format_currency, round2
from kitchenpos.services.payment_service import (
    PaymentType,
    SplitComponent,
    calculate_change,
    parse_split_components,
    serialize_split_payment,
    validate_cash_payment,
    validate_gcash_reference,
    validate_split_payment,
)


class TestMoney:
    @pytest.mark.parametrize(
        "value,expected",
        [(0.1 + 0.2, 0.3), (1.005, 1.01), (2.675, 2.68), (-1.005, -1.01), (10, 10.0)],
    )
    def test_round2_half_up(self, value, expected):
        assert round2(value) == expected

    def test_format_amount(self):
        assert format_amount(0.1) == "0.10"
        assert format_amount(1234.5) == "1234.50"

    def test_format_currency(self):
        assert format_currency(1234.5) == "$1,234.50"
        assert format_currency(None, symbol="P") == "P0.00"
        assert format_currency(float("nan")) == "$0.00"


class TestCash:
    def test_change(self):
        check = validate_cash_payment(87.35, 100)
        assert check.valid
        assert check.change == 12.65
        assert check.total_paid == 100

    def test_exact_amount(self):
        assert validate_cash_payment(50, 50).change == 0

    def test_insufficient(self):
        check = validate_cash_payment(100, 80.5)
        assert not check.valid
        assert check.error == "Insufficient amount. Need 19.50 more"

    def test_zero_tendered(self):
        assert validate_cash_payment(10, 0).error == "Amount tendered must be greater than 0"

    def test_calculate_change_rejects_short_tender(self):
        with pytest.raises(ValueError):
            calculate_change(10, 9.99)


class TestGCash:
    @pytest.mark.parametrize(
        "reference,error",
        [
            (None, "GCash reference number is required"),
            ("   ", "GCash reference number is required"),
            ("ABC123", "GCash reference must be at least 10 characters"),
            ("ABC-123-456", "GCash reference must contain only letters and numbers"),
        ],
    )
    def test_invalid(self, reference, error):
        check = validate_gcash_reference(reference)
        assert not check.valid
        assert check.error == error

    def test_valid_is_trimmed(self):
        assert validate_gcash_reference("  1234567890  ").valid


class TestSplit:
    def test_cash_and_gcash(self):
        components = [
            SplitComponent(PaymentType.CASH, 100),
            SplitComponent(PaymentType.GCASH, 60, "REF1234567"),
        ]
        check = validate_split_payment(150, components)
        assert check.valid
        assert check.total_paid == 160
        assert check.change == 10

    def test_shortfall(self):
        check = validate_split_payment(150, [SplitComponent(PaymentType.CASH, 100.1)])
        assert check.error == "Insufficient payment. Need 49.90 more"

    def test_too_many_components(self):
        components = [SplitComponent(PaymentType.CASH, 10)] * 3
        assert validate_split_payment(30, components).error == "Maximum 2 payment components allowed"

    def test_tab_not_allowed_in_split(self):
        check = validate_split_payment(10, [SplitComponent(PaymentType.TAB, 10)])
        assert check.error == "Tab cannot be part of a split payment"

    def test_gcash_component_needs_reference(self):
        check = validate_split_payment(10, [SplitComponent(PaymentType.GCASH, 10)])
        assert check.error == "GCash reference number is required"

    def test_empty(self):
        assert not validate_split_payment(10, []).valid

    def test_parse_and_serialize(self):
        parsed = parse_split_components([
            {"method": "Cash", "amount": "40"},
            {"method": "GCash", "amount": 60, "reference": " REF1234567 "},
        ])
        assert parsed[1].reference == "REF1234567"

        stored = json.loads(serialize_split_payment(parsed, 100, 0))
        assert stored["components"][0] == {"method": "Cash", "amount": 40.0}
        assert stored["total_paid"] == 100

    @pytest.mark.parametrize("raw", [None, "Cash", [{"method": "Card", "amount": 1}], [{"method": "Cash"}]])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            parse_split_components(raw)

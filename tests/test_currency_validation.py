"""
Tests for Bs. to USD conversion and form validation.
"""

from decimal import Decimal

import pytest

from thcontrol.models import PaymentType, User, UserRole
from thcontrol.models.houses import initial_houses
from thcontrol.validation import (
    EntryValidator,
    ValidationError,
    convert_to_usd,
    format_usd,
    is_valid_bank_reference,
    parse_decimal,
    try_convert_to_usd,
)

HOUSE_IDS = [house.id for house in initial_houses()]


class TestCurrencyConversion:
    def test_zero_and_zero(self):
        assert convert_to_usd(0, 0) == Decimal("0.00")

    def test_basic_conversion(self):
        assert convert_to_usd(250, 50) == Decimal("5.00")
        assert convert_to_usd("500", "50") == Decimal("10.00")

    def test_missing_rate_never_raises(self):
        assert convert_to_usd(100, None) == Decimal("0.00")
        assert try_convert_to_usd(100, None) is None

    def test_rounds_half_up(self):
        assert convert_to_usd("100", "3") == Decimal("33.33")
        assert convert_to_usd("0.125", "1") == Decimal("0.13")

    def test_comma_decimal_separator(self):
        assert convert_to_usd("1000,50", "50") == Decimal("20.01")

    @pytest.mark.parametrize("amount,rate", [
        ("abc", "50"),
        ("100", "-1"),
        ("-100", "50"),
        ("100", "nan"),
        ("", "50"),
        (True, 50),
    ])
    def test_invalid_inputs(self, amount, rate):
        assert try_convert_to_usd(amount, rate) is None
        assert convert_to_usd(amount, rate) == Decimal("0.00")

    def test_parse_decimal_float(self):
        assert parse_decimal(0.1) == Decimal("0.1")

    def test_format_usd(self):
        assert format_usd(Decimal("10")) == "10.00"
        assert format_usd(None) == "0.00"
        assert format_usd("2.345") == "2.35"


class TestBankReference:
    def test_accepts_six_digits(self):
        assert is_valid_bank_reference("123456")
        assert is_valid_bank_reference("000000")

    @pytest.mark.parametrize("value", ["12345", "1234567", "12a456", "", None, "１２３４５６", "12345\n"])
    def test_rejects(self, value):
        assert not is_valid_bank_reference(value)


class TestEntryValidator:
    """Payment, expense and suggestion forms."""

    def setup_method(self):
        self.validator = EntryValidator()
        self.admin = User(role=UserRole.ADMIN, username="Admin")
        self.resident = User(role=UserRole.RESIDENT, username="V", house_id="TH01A")

    def _payment(self, **overrides):
        fields = dict(
            user=self.admin,
            house_id="TH01A",
            amount_bs="500",
            exchange_rate="50",
            bank_reference="123456",
            known_house_ids=HOUSE_IDS,
        )
        fields.update(overrides)
        return self.validator.validate_payment(**fields)

    def test_valid_payment(self):
        assert self._payment().is_valid

    def test_unknown_house(self):
        result = self._payment(house_id="TH99Z")
        assert result.issues[0].issue_type == "not_found"

    def test_missing_house(self):
        assert self._payment(house_id="").has_errors

    def test_resident_other_house(self):
        result = self._payment(user=self.resident, house_id="TH02A")
        assert result.issues[0].issue_type == "not_allowed"

    def test_bad_reference(self):
        result = self._payment(bank_reference="1234567")
        assert [i.field for i in result.issues] == ["bank_reference"]

    def test_rate_must_be_positive(self):
        result = self._payment(exchange_rate="0")
        assert result.error_count == 1
        assert result.issues[0].field == "exchange_rate"

    @pytest.mark.parametrize("amount, rate", [("0", "50"), ("0.001", "50")])
    def test_amount_must_be_above_zero(self, amount, rate):
        result = self._payment(amount_bs=amount, exchange_rate=rate)
        assert [i.field for i in result.issues] == ["amount_bs"]
        assert not self.validator.validate_expense("Agua", "Servicios", amount, rate).is_valid

    def test_zero_amount_still_displays(self):
        assert format_usd(convert_to_usd("0", "50")) == "0.00"

    def test_unknown_payment_type(self):
        result = self._payment(payment_type="Donación")
        assert [i.field for i in result.issues] == ["payment_type"]
        assert self._payment(payment_type="Cuota Extraordinaria", extraordinary_reason="Techo").is_valid

    def test_missing_amount_and_rate(self):
        result = self._payment(amount_bs=None, exchange_rate="")
        assert {i.field for i in result.issues} == {"amount_bs", "exchange_rate"}

    def test_extraordinary_needs_reason(self):
        result = self._payment(payment_type=PaymentType.EXTRAORDINARY, extraordinary_reason="  ")
        assert result.issues[0].field == "extraordinary_reason"
        assert self._payment(
            payment_type=PaymentType.EXTRAORDINARY, extraordinary_reason="Techo"
        ).is_valid

    def test_expense(self):
        assert self.validator.validate_expense("Agua", "Servicios", "100", "50").is_valid
        result = self.validator.validate_expense(" ", "Fiesta", "100", "50")
        assert {i.field for i in result.issues} == {"concept", "category"}

    def test_suggestion(self):
        assert self.validator.validate_suggestion(self.resident, "Hola").is_valid
        assert self.validator.validate_suggestion(self.resident, " \n ").has_errors

    def test_validation_error_carries_result(self):
        result = self._payment(bank_reference="x")
        error = ValidationError(result)
        assert error.result is result
        assert "bank reference" in str(error).lower()

    def test_summary(self):
        assert "passed" in self.validator.get_user_friendly_summary(self._payment())
        summary = self.validator.get_user_friendly_summary(self._payment(bank_reference="1"))
        assert "6 digits" in summary

"""
Tests for Finance Tracker

Test strategy:
1. Unit tests for individual components (models, recurrence, aggregation)
2. Integration tests for flows (with fake external services)
3. No real API calls in tests
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Frequency,
    Theme,
    Transaction,
    TransactionInput,
    TransactionItem,
    UserSettings,
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.transaction import (
    ITEM_NAME_MAX_LENGTH,
    coerce_items,
    parse_amount,
)


class TestValueParsing:
    """Tests for amount parsing and item coercion."""

    def test_parse_amount_plain_numbers(self):
        """Test that ints, floats and decimals are read exactly."""
        assert parse_amount(12) == Decimal("12")
        assert parse_amount(12.5) == Decimal("12.5")
        assert parse_amount(Decimal("3.10")) == Decimal("3.10")

    def test_parse_amount_currency_and_decimal_comma(self):
        """Test that currency symbols are ignored and a lone comma is decimal."""
        assert parse_amount("€ 12,50") == Decimal("12.50")
        assert parse_amount("$1,234.56") == Decimal("1234.56")

    @pytest.mark.parametrize("raw", ["1.234,56", "1,234.56", "€ 1.234,56", "1 234,56 €"])
    def test_parse_amount_last_separator_is_decimal(self, raw):
        """Test grouped thousands in both European and US notation."""
        assert parse_amount(raw) == Decimal("1234.56")

    def test_parse_amount_several_groups(self):
        """Test totals with more than one thousands separator."""
        assert parse_amount("12.345.678,90") == Decimal("12345678.90")
        assert parse_amount("12,345,678.90") == Decimal("12345678.90")

    def test_parse_amount_rejects_garbage(self):
        """Test that unreadable values give None."""
        assert parse_amount("abc") is None
        assert parse_amount(None) is None
        assert parse_amount(True) is None
        assert parse_amount(float("nan")) is None
        assert parse_amount({"amount": 1}) is None

    def test_coerce_items_from_comma_string(self):
        """Test the comma-separated legacy item format."""
        items = coerce_items("milk, bread ,, eggs")
        assert [item.name for item in items] == ["milk", "bread", "eggs"]
        assert all(item.price == Decimal("0") for item in items)

    def test_coerce_items_mixed_list(self):
        """Test plain strings and objects in one list."""
        items = coerce_items(["milk", {"name": "bread", "price": 2.5}, {"name": "jam"}])
        assert [(i.name, i.price) for i in items] == [
            ("milk", Decimal("0")),
            ("bread", Decimal("2.5")),
            ("jam", Decimal("0")),
        ]

    def test_coerce_items_drops_blank_names_and_bad_prices(self):
        """Test that blank names are dropped and bad prices become zero."""
        items = coerce_items([
            {"name": "  ", "price": 1},
            {"name": "tea", "price": -3},
            {"name": "coffee", "price": "n/a"},
            42,
        ])
        assert [(i.name, i.price) for i in items] == [
            ("tea", Decimal("0")),
            ("coffee", Decimal("0")),
        ]

    def test_coerce_items_keeps_duplicates(self):
        """Test that repeated item names stay separate entries."""
        items = coerce_items(["Milk", "milk"])
        assert len(items) == 2

    def test_coerce_items_missing(self):
        """Test that absent items give an empty list."""
        assert coerce_items(None) == []

    def test_coerce_items_cuts_long_names(self):
        """Test that an over-long item name is shortened, not rejected."""
        [item] = coerce_items([{"name": "x" * 500, "price": 1}])
        assert item.name == "x" * ITEM_NAME_MAX_LENGTH
        assert item.price == Decimal("1")

    def test_coerce_items_out_of_range_price(self):
        """Test that an absurdly large price becomes 0."""
        [item] = coerce_items([{"name": "tv", "price": 10 ** 20}])
        assert item.price == Decimal("0")


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_transaction_input_from_wire_names(self):
        """Test that camelCase payload keys are accepted."""
        payload = TransactionInput.model_validate({
            "place": "  Bakery  ",
            "category": "Food",
            "amount": "4.20",
            "isIncome": False,
            "date": "2024-03-01",
            "items": "croissant, coffee",
            "isRecurring": False,
            "recurringFrequency": "",
        })
        assert payload.place == "Bakery"
        assert payload.amount == Decimal("4.20")
        assert payload.date == date(2024, 3, 1)
        assert payload.recurring_frequency is None
        assert len(payload.items) == 2

    def test_transaction_input_from_attribute_names(self):
        """Test that snake_case keys are accepted too."""
        payload = TransactionInput(
            amount=Decimal("10"),
            date=date(2024, 1, 1),
            is_income=True,
        )
        assert payload.is_income is True
        assert payload.category == ""

    def test_negative_amount_rejected(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            TransactionInput(amount=Decimal("-1"), date=date(2024, 1, 1))

    def test_amount_rounded_to_cents(self):
        """Test that long-precision amounts are stored in whole cents."""
        payload = TransactionInput.model_validate({
            "amount": "10.123456789012345678",
            "date": "2024-01-01",
            "items": [{"name": "pen", "price": "0.005"}],
        })
        assert payload.amount == Decimal("10.12")
        assert payload.items[0].price == Decimal("0.01")

    def test_record_round_trip_keeps_amount(self):
        """Test that writing and reading a record returns the same amounts."""
        txn = Transaction.from_input(TransactionInput.model_validate({
            "amount": "10.123456789012345678",
            "date": "2024-01-01",
            "items": [{"name": "pen", "price": "3.333333333333333333"}],
        }))
        record = json.loads(json.dumps(txn.to_record()))
        assert Transaction.model_validate(record) == txn

    def test_amount_upper_bound(self):
        """Test that amounts too large to store exactly are rejected."""
        with pytest.raises(ValueError):
            TransactionInput.model_validate({"amount": "1e15", "date": "2024-01-01"})

    def test_malformed_amount_rejected(self):
        """Test that a non-numeric amount is rejected, not coerced to zero."""
        with pytest.raises(ValueError):
            TransactionInput.model_validate({"amount": "twelve", "date": "2024-01-01"})

    def test_missing_date_rejected(self):
        """Test that the date is required."""
        with pytest.raises(ValueError):
            TransactionInput.model_validate({"amount": 1})

    def test_recurring_requires_frequency(self):
        """Test that a recurring payload must name its frequency."""
        with pytest.raises(ValueError, match="recurring frequency"):
            TransactionInput(
                amount=Decimal("10"),
                date=date(2024, 1, 1),
                is_recurring=True,
            )

    def test_unknown_frequency_rejected(self):
        """Test that only the four frequencies are accepted."""
        with pytest.raises(ValueError):
            TransactionInput.model_validate({
                "amount": 10,
                "date": "2024-01-01",
                "isRecurring": True,
                "recurringFrequency": "fortnightly",
            })

    def test_from_input_drops_end_date(self):
        """Test that the end date is never stored on a transaction."""
        payload = TransactionInput.model_validate({
            "amount": 10,
            "date": "2024-01-01",
            "isRecurring": True,
            "recurringFrequency": "monthly",
            "recurringEndDate": "2024-06-01",
        })
        txn = Transaction.from_input(payload, transaction_id="abc")
        record = txn.to_record()
        assert txn.id == "abc"
        assert "recurringEndDate" not in record
        assert record["recurringFrequency"] == "monthly"

    def test_to_record_uses_wire_shape(self):
        """Test the stored JSON shape."""
        txn = Transaction(
            id="t1",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            place="Shop",
            amount=Decimal("12.50"),
            date=date(2024, 1, 2),
            items=[TransactionItem(name="pen", price=Decimal("1.99"))],
        )
        record = txn.to_record()
        assert record["id"] == "t1"
        assert record["amount"] == 12.5
        assert record["date"] == "2024-01-02"
        assert record["isIncome"] is False
        assert record["items"] == [{"name": "pen", "price": 1.99}]
        assert "createdAt" in record
        json.dumps(record)

    def test_record_round_trip(self):
        """Test that a stored record validates back to an equal transaction."""
        txn = Transaction(
            place="Shop",
            amount=Decimal("3.5"),
            date=date(2024, 5, 6),
            items=[TransactionItem(name="tea", price=Decimal("3.5"))],
        )
        assert Transaction.model_validate(txn.to_record()) == txn

    def test_merged_keeps_identity(self):
        """Test that id and createdAt survive a merge that tries to change them."""
        txn = Transaction(place="Shop", amount=Decimal("5"), date=date(2024, 1, 1))
        updated = txn.merged({
            "id": "other",
            "createdAt": "2000-01-01T00:00:00Z",
            "amount": 7,
            "place": "Market",
        })
        assert updated.id == txn.id
        assert updated.created_at == txn.created_at
        assert updated.amount == Decimal("7")
        assert updated.place == "Market"
        assert updated.date == txn.date

    def test_merged_accepts_attribute_names(self):
        """Test that snake_case change keys are applied."""
        txn = Transaction(amount=Decimal("5"), date=date(2024, 1, 1))
        updated = txn.merged({"is_income": True})
        assert updated.is_income is True

    def test_merged_validates_result(self):
        """Test that an invalid merge is rejected."""
        txn = Transaction(amount=Decimal("5"), date=date(2024, 1, 1))
        with pytest.raises(ValueError):
            txn.merged({"amount": -5})

    def test_matches_month(self):
        """Test calendar month membership."""
        txn = Transaction(amount=Decimal("1"), date=date(2024, 2, 29))
        assert txn.matches_month(2024, 2)
        assert not txn.matches_month(2024, 3)

    def test_item_key_normalizes_name(self):
        """Test the case-insensitive item key."""
        assert TransactionItem(name=" Milk ").key == "milk"


class TestUserSettings:
    """Tests for the user settings model."""

    def test_defaults(self):
        """Test the first-start settings document."""
        settings = UserSettings()
        assert settings.to_record() == {
            "currency": "€",
            "theme": "system",
            "startDate": 1,
            "geminiApiKey": "",
        }
        assert settings.has_api_key is False

    def test_merged_is_shallow(self):
        """Test that only supplied fields change."""
        settings = UserSettings().merged({"startDate": 15, "theme": "dark"})
        assert settings.start_date == 15
        assert settings.theme == Theme.DARK
        assert settings.currency == "€"

    def test_start_date_bounds(self):
        """Test that the month start day is 1-31."""
        with pytest.raises(ValueError):
            UserSettings(start_date=32)
        with pytest.raises(ValueError):
            UserSettings(start_date=0)


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description="Test error",
            error_message="Something went wrong",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "system_error"
        assert log_dict["severity"] == "error"
        assert log_dict["error_message"] == "Something went wrong"

    def test_audit_event_json_line_round_trip(self):
        """Test the append-only file format."""
        event = AuditEventBuilder.category_added("Pets", uuid4())
        line = event.to_json_line()
        assert "\n" not in line
        assert AuditEvent.model_validate_json(line) == event

    def test_audit_event_builder_transaction_created(self):
        """Test building a transaction created event."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transaction_created(
            transaction_id="t1",
            amount="12.50",
            is_income=False,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.entity_id == "t1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True
        assert event.details["amount"] == "12.50"

    def test_audit_event_builder_model_failed_is_warning(self):
        """Test that a model fallback is logged as a warning."""
        event = AuditEventBuilder.receipt_model_failed(
            model_name="gemini-2.0-flash-exp",
            error_message="quota exceeded",
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details["model"] == "gemini-2.0-flash-exp"


class TestValidationResult:
    """Tests for validation result model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test result with only warnings."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="items",
                    issue_type="inconsistent",
                    message="Items exceed amount",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.warnings == ["Items exceed amount"]


class TestFrequency:
    """Tests for the frequency enum."""

    def test_frequency_values(self):
        """Test frequency string values."""
        assert [f.value for f in Frequency] == ["daily", "weekly", "monthly", "yearly"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

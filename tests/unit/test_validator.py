"""Unit tests for the field validator."""

from __future__ import annotations

import logging
from decimal import Decimal

import pytest

from listing_fields.exceptions import AggregateValidationError, ValidationError
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.validator import FieldValidator


@pytest.fixture
def registry() -> FieldRegistry:
    registry = FieldRegistry()
    registry.register_field("name", {"type": "text", "required": True})
    registry.register_field("email", {"type": "email"})
    registry.register_field("seats", {"type": "number", "validation": {"min": 1}})
    registry.register_field(
        "status", {"type": "select", "options": {"open": "Open", "closed": "Closed"}}
    )
    return registry


@pytest.fixture
def validator(registry: FieldRegistry) -> FieldValidator:
    return FieldValidator(registry)


class TestValidateField:
    def test_valid_value(self, validator: FieldValidator) -> None:
        assert validator.validate_field("email", "a@example.com") is True

    def test_invalid_value(self, validator: FieldValidator) -> None:
        result = validator.validate_field("email", "nope")
        assert isinstance(result, ValidationError)
        assert result.field == "email"
        assert result.value == "nope"

    def test_value_is_sanitized_first(self, validator: FieldValidator) -> None:
        assert validator.validate_field("email", "  A@Example.COM ") is True

    def test_unregistered_passes_through(self, validator: FieldValidator, caplog) -> None:
        with caplog.at_level(logging.DEBUG, logger="listing_fields"):
            assert validator.validate_field("not_registered", "anything") is True
        assert "not_registered" in caplog.text

    def test_required_empty(self, validator: FieldValidator) -> None:
        result = validator.validate_field("name", "   ")
        assert isinstance(result, ValidationError)
        assert result.messages == ["Name is required."]

    def test_required_tags_only_is_empty(self, validator: FieldValidator) -> None:
        result = validator.validate_field("name", "<b></b>")
        assert isinstance(result, ValidationError)
        assert result.messages == ["Name is required."]

    def test_all_messages_for_one_field(self, registry: FieldRegistry) -> None:
        registry.register_field(
            "code",
            {"validation": {"min_length": 5, "pattern": r"^\d+$", "pattern_message": "Digits only."}},
        )
        result = FieldValidator(registry).validate_field("code", "ab")
        assert result.messages == ["Code must be at least 5 characters.", "Digits only."]

    def test_broken_callback_reported(self, registry: FieldRegistry) -> None:
        def explode(value, field):
            raise RuntimeError("boom")

        registry.register_field("nick", {"validation": {"callback": explode}})
        result = FieldValidator(registry).validate_field("nick", "x")
        assert isinstance(result, ValidationError)
        assert result.messages == ["Nick could not be validated."]


class TestValidateFields:
    def test_collects_every_failure(self, validator: FieldValidator) -> None:
        result = validator.validate_fields(
            {"name": "Cafe Luna", "email": "nope", "seats": "0"}, fields=["name", "email", "seats"]
        )
        assert isinstance(result, AggregateValidationError)
        assert len(result) == 2
        assert set(result.errors) == {"email", "seats"}

    def test_missing_required_reported(self, validator: FieldValidator) -> None:
        result = validator.validate_fields({"email": "a@example.com"})
        assert isinstance(result, AggregateValidationError)
        assert list(result.errors) == ["name"]

    def test_all_valid(self, validator: FieldValidator) -> None:
        assert validator.validate_fields({"name": "Cafe", "status": "open"}) is True

    def test_exclude(self, validator: FieldValidator) -> None:
        assert validator.validate_fields({"email": "bad"}, exclude=["name", "email"]) is True

    def test_unregistered_skipped_by_default(self, validator: FieldValidator) -> None:
        assert validator.validate_fields({"name": "Cafe", "mood": "sunny"}) is True

    def test_unregistered_reported_when_not_skipped(self, validator: FieldValidator) -> None:
        result = validator.validate_fields(
            {"name": "Cafe", "mood": "sunny"}, skip_unregistered=False
        )
        assert isinstance(result, AggregateValidationError)
        assert result.messages_for("mood") == ["Unknown field: mood."]

    def test_strict_validator(self, registry: FieldRegistry) -> None:
        result = FieldValidator(registry, strict=True).validate_fields({"name": "x", "mood": 1})
        assert "mood" in result


class TestProcessFields:
    def test_valid_submission(self, validator: FieldValidator) -> None:
        result = validator.process_fields(
            {"name": " <i>Cafe</i>  Luna ", "seats": "12", "mood": "sunny"}
        )
        assert result.valid is True
        assert result.errors is None
        assert result.values == {"name": "Cafe Luna", "seats": Decimal("12"), "mood": "sunny"}

    def test_invalid_submission(self, validator: FieldValidator) -> None:
        result = validator.process_fields({"name": "", "email": "nope"})
        assert result.valid is False
        assert set(result.error_messages()) == {"name", "email"}
        assert result.values["email"] == "nope"

    def test_required_empty_keeps_shape(self, validator: FieldValidator) -> None:
        result = validator.process_fields({"name": "   "})
        assert result.values["name"] == ""

    def test_partial_update(self, validator: FieldValidator) -> None:
        result = validator.process_fields({"email": "a@example.com"}, fields=["email"])
        assert result.valid is True
        assert result.values == {"email": "a@example.com"}

    def test_select_end_to_end(self, registry: FieldRegistry) -> None:
        validator = FieldValidator(registry)
        rejected = validator.process_fields({"status": "archived"}, fields=["status"])
        assert rejected.valid is False
        assert "status" in rejected.errors

        accepted = validator.process_fields({"status": "open"}, fields=["status"])
        assert accepted.valid is True
        handler = registry.get_field_type("select")
        assert handler.from_storage(handler.to_storage(accepted.values["status"])) == "open"


    def test_oversized_numbers_reported(self, registry: FieldRegistry) -> None:
        registry.register_field("price", {"type": "currency", "label": "Price"})
        validator = FieldValidator(registry)
        result = validator.process_fields(
            {"price": "1e31", "seats": "1e5000000"}, fields=["price", "seats"]
        )
        assert result.valid is False
        assert result.error_messages() == {
            "price": ["Price is out of range."],
            "seats": ["Seats is out of range."],
        }

    def test_large_currency_accepted(self, registry: FieldRegistry) -> None:
        registry.register_field("price", {"type": "currency"})
        result = FieldValidator(registry).process_fields({"price": "1e30"}, fields=["price"])
        assert result.valid is True
        assert result.values["price"] == Decimal("1e30")

    def test_repeated_key_keeps_last_value(self, validator: FieldValidator) -> None:
        result = validator.process_fields({"name": ["Cafe Luna", "Bar Nord"]}, fields=["name"])
        assert result.valid is True
        assert result.values == {"name": "Bar Nord"}

class TestValidateRequired:
    def test_reports_missing(self, validator: FieldValidator) -> None:
        result = validator.validate_required({"email": "a@example.com"})
        assert isinstance(result, AggregateValidationError)
        assert result.messages_for("name") == ["Name is required."]

    def test_passes(self, validator: FieldValidator) -> None:
        assert validator.validate_required({"name": "Cafe"}) is True

"""Unit tests for the field registry."""

from __future__ import annotations

import pytest

from listing_fields.exceptions import (
    DuplicateNameError,
    DuplicateTypeError,
    FieldNotFoundError,
    InvalidConfigError,
    UnknownTypeError,
)
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.types import TextField


class SlugField(TextField):
    type_name = "slug"

    def sanitize(self, value, field=None):
        return "-".join(super().sanitize(value, field).lower().split())


class TestFieldTypes:
    def test_builtin_types_registered(self) -> None:
        registry = FieldRegistry()
        for type_name in ("text", "email", "number", "select", "multiselect", "date"):
            assert registry.has_field_type(type_name)

    def test_without_builtins(self) -> None:
        registry = FieldRegistry(builtin_types=False)
        assert registry.field_types() == {}

    def test_register_custom_type(self) -> None:
        registry = FieldRegistry()
        registry.register_field_type(SlugField())
        registry.register_field("handle", {"type": "slug"})
        definition, handler = registry.handler_for("handle")
        assert handler.sanitize("Cafe Luna Berlin") == "cafe-luna-berlin"
        assert definition.type == "slug"

    def test_duplicate_type_raises(self) -> None:
        registry = FieldRegistry()
        with pytest.raises(DuplicateTypeError):
            registry.register_field_type(TextField())

    def test_replace_type(self) -> None:
        registry = FieldRegistry()
        replacement = TextField()
        registry.register_field_type(replacement, replace=True)
        assert registry.get_field_type("text") is replacement

    def test_type_without_name_rejected(self) -> None:
        class Nameless(TextField):
            type_name = ""

        with pytest.raises(InvalidConfigError):
            FieldRegistry().register_field_type(Nameless())


class TestRegisterField:
    def test_register_and_get(self) -> None:
        registry = FieldRegistry()
        definition = registry.register_field("phone_number", {"type": "phone"})
        assert registry.get_field("phone_number") is definition
        assert definition.label == "Phone Number"
        assert "phone_number" in registry

    def test_name_is_normalized(self) -> None:
        registry = FieldRegistry()
        registry.register_field("  Opening Hours! ", {"type": "textarea"})
        assert registry.has_field("openinghours")

    def test_defaults(self) -> None:
        definition = FieldRegistry().register_field("city")
        assert definition.type == "text"
        assert definition.required is False
        assert definition.priority == 10

    def test_list_options_become_mapping(self) -> None:
        definition = FieldRegistry().register_field(
            "status", {"type": "select", "options": ["open", "closed"]}
        )
        assert dict(definition.options) == {"open": "open", "closed": "closed"}

    def test_negative_priority_made_positive(self) -> None:
        definition = FieldRegistry().register_field("x", {"priority": -5})
        assert definition.priority == 5

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(InvalidConfigError):
            FieldRegistry().register_field("!!!")

    def test_duplicate_name_rejected(self) -> None:
        registry = FieldRegistry()
        first = registry.register_field("city")
        with pytest.raises(DuplicateNameError):
            registry.register_field("city", {"type": "textarea"})
        assert registry.get_field("city") is first

    def test_replace_field(self) -> None:
        registry = FieldRegistry()
        registry.register_field("city")
        registry.register_field("city", {"type": "textarea"}, replace=True)
        assert registry.get_field("city").type == "textarea"

    def test_unknown_type_leaves_registry_unchanged(self) -> None:
        registry = FieldRegistry()
        with pytest.raises(UnknownTypeError):
            registry.register_field("rating", {"type": "stars"})
        assert len(registry) == 0

    @pytest.mark.parametrize(
        "config",
        [
            {"colour": "red"},
            {"required": "yes"},
            {"label": 12},
            {"priority": "high"},
            {"options": "a,b"},
            {"validation": {"regex": ".*"}},
            {"validation": {"pattern": "("}},
        ],
    )
    def test_invalid_config(self, config) -> None:
        registry = FieldRegistry()
        with pytest.raises(InvalidConfigError):
            registry.register_field("broken", config)
        assert not registry.has_field("broken")

    def test_definitions_are_frozen(self) -> None:
        definition = FieldRegistry().register_field(
            "status", {"type": "select", "options": {"open": "Open"}}
        )
        with pytest.raises(TypeError):
            definition.options["closed"] = "Closed"


class TestQueries:
    @pytest.fixture
    def registry(self) -> FieldRegistry:
        registry = FieldRegistry()
        registry.register_field("zip", {"priority": 30, "searchable": True})
        registry.register_field("notes", {"type": "textarea", "priority": 20, "admin_only": True})
        registry.register_field("city", {"priority": 10, "searchable": True, "filterable": True})
        registry.register_field("state", {"priority": 10})
        return registry

    def test_priority_order_keeps_registration_ties(self, registry: FieldRegistry) -> None:
        names = [f.name for f in registry.list_fields()]
        assert names == ["city", "state", "notes", "zip"]

    def test_order_by_name_descending(self, registry: FieldRegistry) -> None:
        names = [f.name for f in registry.list_fields(order_by="name", descending=True)]
        assert names == ["zip", "state", "notes", "city"]

    def test_filters(self, registry: FieldRegistry) -> None:
        assert [f.name for f in registry.searchable_fields()] == ["city", "zip"]
        assert [f.name for f in registry.filterable_fields()] == ["city"]
        assert [f.name for f in registry.admin_fields()] == ["notes"]
        assert "notes" not in [f.name for f in registry.frontend_fields()]
        assert [f.name for f in registry.list_fields(type="textarea")] == ["notes"]

    def test_unregister(self, registry: FieldRegistry) -> None:
        removed = registry.unregister_field("zip")
        assert removed.name == "zip"
        assert not registry.has_field("zip")
        with pytest.raises(FieldNotFoundError):
            registry.unregister_field("zip")

    def test_snapshot_iteration_survives_writes(self, registry: FieldRegistry) -> None:
        snapshot = iter(registry)
        registry.register_field("country")
        assert len(list(snapshot)) == 4
        assert len(registry) == 5

    def test_reset_keeps_types(self, registry: FieldRegistry) -> None:
        registry.reset()
        assert len(registry) == 0
        assert registry.has_field_type("text")

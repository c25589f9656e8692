"""Unit tests for the built-in field type handlers."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

import pytest

from listing_fields.fields.definitions import RenderContext, build_definition
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.types import BUILTIN_HANDLERS, clean_multiline, clean_text

OPTIONS = {"a": "Alpha", "b": "Beta", "c": "Gamma"}

# (type, raw input, expected sanitized value)
VALID_SAMPLES = [
    ("text", "  Hello   <b>World</b> ", "Hello World"),
    ("textarea", "Line one\r\nLine   two", "Line one\nLine two"),
    (
        "richtext",
        '<p onclick="steal()">Fresh <b>pasta</b><script>x()</script></p>',
        "<p>Fresh <b>pasta</b></p>",
    ),
    ("email", " Info@Example.COM ", "info@example.com"),
    ("url", "https://example.com/a b", "https://example.com/a%20b"),
    ("phone", "+49 (30) 123-4567", "+49 (30) 123-4567"),
    ("hidden", "token-1", "token-1"),
    ("color", "FF8800", "#ff8800"),
    ("number", "42", Decimal("42")),
    ("number", "-0.5", Decimal("-0.5")),
    ("decimal", "3.14159", Decimal("3.14")),
    ("currency", "$1,234.5", Decimal("1234.50")),
    ("date", "2024-03-01", date(2024, 3, 1)),
    ("datetime", "2024-03-01T10:30:00", datetime(2024, 3, 1, 10, 30)),
    ("time", "09:30", time(9, 30)),
    ("daterange", "2024-05-01..2024-09-30", (date(2024, 5, 1), date(2024, 9, 30))),
    ("select", "a", "a"),
    ("radio", " b ", "b"),
    ("multiselect", ["c", "a", "c"], ["c", "a"]),
    ("checkboxgroup", ["b"], ["b"]),
    ("checkbox", "yes", True),
    ("file", "uploads/menu.pdf", "uploads/menu.pdf"),
    ("image", "https://cdn.example.com/logo.png", "https://cdn.example.com/logo.png"),
    ("gallery", "front.jpg, terrace.png,front.jpg", ["front.jpg", "terrace.png"]),
]


def _no_digits(value, field):
    return "No digits." if any(c.isdigit() for c in value) else True


def _field(type_name: str, **config):
    return build_definition("sample", {"type": type_name, "options": OPTIONS, **config})


@pytest.fixture(scope="module")
def registry() -> FieldRegistry:
    return FieldRegistry()


class TestBuiltinCoverage:
    def test_every_builtin_has_a_sample(self) -> None:
        sampled = {type_name for type_name, _, _ in VALID_SAMPLES}
        assert sampled == {cls.type_name for cls in BUILTIN_HANDLERS}


class TestSanitize:
    @pytest.mark.parametrize("type_name,raw,expected", VALID_SAMPLES)
    def test_sanitize(self, registry: FieldRegistry, type_name, raw, expected) -> None:
        handler = registry.get_field_type(type_name)
        assert handler.sanitize(raw, _field(type_name)) == expected

    @pytest.mark.parametrize("type_name,raw,expected", VALID_SAMPLES)
    def test_sanitize_is_idempotent(self, registry: FieldRegistry, type_name, raw, expected) -> None:
        handler = registry.get_field_type(type_name)
        field = _field(type_name)
        once = handler.sanitize(raw, field)
        assert handler.sanitize(once, field) == once

    @pytest.mark.parametrize("type_name,raw,expected", VALID_SAMPLES)
    def test_samples_are_valid(self, registry: FieldRegistry, type_name, raw, expected) -> None:
        handler = registry.get_field_type(type_name)
        field = _field(type_name)
        assert handler.validate(handler.sanitize(raw, field), field) == []


class TestStorageRoundTrip:
    @pytest.mark.parametrize("type_name,raw,expected", VALID_SAMPLES)
    def test_round_trip(self, registry: FieldRegistry, type_name, raw, expected) -> None:
        handler = registry.get_field_type(type_name)
        clean = handler.sanitize(raw, _field(type_name))
        assert handler.from_storage(handler.to_storage(clean)) == clean

    def test_multiselect_keeps_order(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("multiselect")
        stored = handler.to_storage(["c", "a", "b"])
        assert stored == '["c", "a", "b"]'
        assert handler.from_storage(stored) == ["c", "a", "b"]

    def test_number_stored_in_plain_notation(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("number")
        assert handler.to_storage(handler.sanitize("1e3")) == "1000"

    def test_missing_values_decode_to_defaults(self, registry: FieldRegistry) -> None:
        assert registry.get_field_type("text").from_storage(None) == ""
        assert registry.get_field_type("number").from_storage(None) is None
        assert registry.get_field_type("multiselect").from_storage(None) == []
        assert registry.get_field_type("checkbox").from_storage(None) is False

    def test_corrupt_list_decodes_empty(self, registry: FieldRegistry) -> None:
        assert registry.get_field_type("multiselect").from_storage("not json") == []

    @pytest.mark.parametrize(
        "type_name,raw,expected",
        [
            ("text", ["Cafe Luna", "Bar Nord"], "Bar Nord"),
            ("url", ["https://a.example", "https://b.example"], "https://b.example"),
            ("hidden", ("t1", "t2"), "t2"),
            ("number", ["12", "40"], Decimal("40")),
            ("date", ["2024-01-01", "2024-03-01"], date(2024, 3, 1)),
            ("select", ["a", "b"], "b"),
            ("checkbox", ["0", "1"], True),
            ("text", [], ""),
        ],
    )
    def test_repeated_value_on_scalar_field(
        self, registry: FieldRegistry, type_name, raw, expected
    ) -> None:
        handler = registry.get_field_type(type_name)
        field = _field(type_name)
        clean = handler.sanitize(raw, field)
        assert clean == expected
        assert handler.from_storage(handler.to_storage(clean)) == clean


class TestCleaning:
    def test_clean_text_strips_tags(self) -> None:
        assert clean_text("a <b>bold</b>\n<i>x</i>") == "a bold x"

    def test_clean_text_none(self) -> None:
        assert clean_text(None) == ""

    def test_clean_multiline_keeps_breaks(self) -> None:
        assert clean_multiline("a  b\n\tc ") == "a b\nc"


class TestValidation:
    def test_invalid_email(self, registry: FieldRegistry) -> None:
        field = _field("email", label="Email")
        messages = registry.get_field_type("email").validate("not-an-email", field)
        assert messages == ["Email must be a valid email address."]

    def test_invalid_url_scheme(self, registry: FieldRegistry) -> None:
        field = _field("url", label="Website")
        assert registry.get_field_type("url").validate("ftp://example.com", field)

    def test_phone_digit_count(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("phone")
        field = _field("phone")
        assert handler.validate(handler.sanitize("12-34"), field)

    def test_number_not_coerced(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("number")
        field = _field("number", label="Seats")
        clean = handler.sanitize("twelve", field)
        assert clean == "twelve"
        assert handler.validate(clean, field) == ["Seats must be a number."]

    def test_number_exponent_limit(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("number")
        field = _field("number", label="Seats")
        huge = handler.sanitize("1e5000000", field)
        assert huge == "1e5000000"
        assert handler.validate(huge, field) == ["Seats is out of range."]
        tiny = handler.sanitize("1e-31", field)
        assert handler.validate(tiny, field) == ["Seats is out of range."]
        assert handler.validate(handler.sanitize("0e-5000000", field), field) == [
            "Seats is out of range."
        ]
        assert handler.to_storage(handler.sanitize("1e30", field)) == "1" + "0" * 30

    def test_large_currency_quantizes(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("currency")
        field = _field("currency", label="Price")
        clean = handler.sanitize("1e30", field)
        assert clean == Decimal("1e30")
        assert handler.to_storage(clean) == "1" + "0" * 30 + ".00"
        assert handler.validate(handler.sanitize("$1e31", field), field) == [
            "Price is out of range."
        ]

    def test_number_bounds(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("number")
        field = _field("number", label="Seats", validation={"min": 1, "max": 10})
        assert handler.validate(Decimal("0"), field) == ["Seats must be at least 1."]
        assert handler.validate(Decimal("11"), field) == ["Seats must be no more than 10."]
        assert handler.validate(Decimal("5"), field) == []

    def test_currency_negative(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("currency")
        field = _field("currency", label="Price")
        assert handler.validate(handler.sanitize("-5", field), field) == [
            "Price cannot be negative."
        ]

    def test_select_rejects_unknown_option(self, registry: FieldRegistry) -> None:
        field = _field("select", label="Status")
        messages = registry.get_field_type("select").validate("z", field)
        assert messages == ["Status contains an invalid selection."]

    def test_multiselect_selection_count(self, registry: FieldRegistry) -> None:
        field = _field("multiselect", label="Options", validation={"max": 1})
        messages = registry.get_field_type("multiselect").validate(["a", "b"], field)
        assert messages == ["Options allows at most 1 selection(s)."]

    def test_date_bounds(self, registry: FieldRegistry) -> None:
        field = _field("date", label="Opened", validation={"min": "2020-01-01"})
        messages = registry.get_field_type("date").validate(date(2019, 5, 1), field)
        assert messages == ["Opened must be on or after 2020-01-01."]

    def test_invalid_date(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("date")
        field = _field("date", label="Opened")
        assert handler.validate(handler.sanitize("2024-13-45"), field) == [
            "Opened must be a valid date (YYYY-MM-DD)."
        ]

    def test_image_extension(self, registry: FieldRegistry) -> None:
        field = _field("image", label="Logo")
        messages = registry.get_field_type("image").validate("logo.exe", field)
        assert messages and "jpg" in messages[0]

    def test_file_attachment_id_accepted(self, registry: FieldRegistry) -> None:
        field = _field("file", extra={"allowed_types": ["pdf"]})
        assert registry.get_field_type("file").validate("123", field) == []

    def test_rules_pattern_and_length(self, registry: FieldRegistry) -> None:
        field = _field(
            "text",
            label="Code",
            validation={"pattern": r"^[A-Z]+$", "pattern_message": "Use capitals.", "max_length": 3},
        )
        messages = registry.get_field_type("text").validate("abcd", field)
        assert messages == ["Code must not exceed 3 characters.", "Use capitals."]

    def test_callback_rule(self, registry: FieldRegistry) -> None:
        field = _field(
            "text",
            label="Name",
            validation={"callback": _no_digits},
        )
        handler = registry.get_field_type("text")
        assert handler.validate("abc1", field) == ["No digits."]
        assert handler.validate("abc", field) == []

    def test_empty_optional_value_is_valid(self, registry: FieldRegistry) -> None:
        field = _field("email")
        assert registry.get_field_type("email").validate("", field) == []

    def test_required_checkbox_message(self, registry: FieldRegistry) -> None:
        field = _field("checkbox", label="Terms", required=True)
        assert registry.get_field_type("checkbox").validate(False, field) == ["Terms must be checked."]


class TestRendering:
    def test_text_input_escapes_value(self, registry: FieldRegistry) -> None:
        field = _field("text")
        html = registry.get_field_type("text").render(field, '"><script>', RenderContext.ADMIN)
        assert "<script>" not in html
        assert "&#34;&gt;&lt;script&gt;" in html

    def test_required_only_on_public_form(self, registry: FieldRegistry) -> None:
        field = _field("text", required=True)
        handler = registry.get_field_type("text")
        assert "required" in handler.render(field, "", RenderContext.PUBLIC_FORM)
        assert "required" not in handler.render(field, "", RenderContext.ADMIN)

    def test_select_marks_selected_option(self, registry: FieldRegistry) -> None:
        field = _field("select", extra={"empty_option": "Choose"})
        html = registry.get_field_type("select").render(field, "b", RenderContext.ADMIN)
        assert '<option value="">Choose</option>' in html
        assert '<option value="b" selected>Beta</option>' in html

    def test_multiselect_input_name(self, registry: FieldRegistry) -> None:
        field = _field("multiselect")
        html = registry.get_field_type("multiselect").render(field, ["a"], RenderContext.ADMIN)
        assert 'name="lf_field_sample[]"' in html
        assert "multiple" in html

    def test_display_values(self, registry: FieldRegistry) -> None:
        display = RenderContext.DISPLAY
        assert registry.get_field_type("checkbox").render(_field("checkbox"), True, display) == "Yes"
        assert registry.get_field_type("select").render(_field("select"), "a", display) == "Alpha"
        assert (
            registry.get_field_type("currency").render(_field("currency"), Decimal("1234.5"), display)
            == "$1,234.50"
        )
        assert (
            registry.get_field_type("email").render(_field("email"), "a@b.co", display)
            == '<a href="mailto:a@b.co">a@b.co</a>'
        )

    def test_textarea_display_breaks(self, registry: FieldRegistry) -> None:
        html = registry.get_field_type("textarea").render(
            _field("textarea"), "Mon 9-5\nSat <closed>", RenderContext.DISPLAY
        )
        assert html == "Mon 9-5<br>\nSat &lt;closed&gt;"


class TestRichText:
    def test_unsafe_links_and_handlers_removed(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("richtext")
        clean = handler.sanitize(
            '<a href="javascript:alert(1)" title="x">menu</a>'
            '<img src="https://cdn.example.com/a.png" onerror="x()">'
            '<a href="https://example.com" style="color: red">site</a>'
        )
        assert clean == (
            '<a title="x">menu</a><img src="https://cdn.example.com/a.png"/>'
            '<a href="https://example.com">site</a>'
        )

    def test_unknown_tags_unwrapped_and_comments_dropped(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("richtext")
        clean = handler.sanitize("<div><span>Open</span> <!-- note -->daily</div><style>p{}</style>")
        assert clean == "Open daily"

    def test_markup_without_text_is_empty(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("richtext")
        field = _field("richtext", label="Description", required=True)
        assert handler.validate(handler.sanitize("<p> </p>"), field) == [
            "Description is required."
        ]
        assert handler.validate(handler.sanitize('<img src="a.png">'), field) == []

    def test_display_recleans_stored_markup(self, registry: FieldRegistry) -> None:
        html = registry.get_field_type("richtext").render(
            _field("richtext"), "<p>Hi<script>x()</script></p>", RenderContext.DISPLAY
        )
        assert html == "<p>Hi</p>"

    def test_editor_textarea(self, registry: FieldRegistry) -> None:
        html = registry.get_field_type("richtext").render(
            _field("richtext"), "<p>Hi</p>", RenderContext.ADMIN
        )
        assert 'data-editor="richtext"' in html
        assert 'rows="10"' in html
        assert "&lt;p&gt;Hi&lt;/p&gt;" in html


class TestGallery:
    def test_json_array_input(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("gallery")
        assert handler.sanitize('["b.jpg", "a.jpg"]') == ["b.jpg", "a.jpg"]

    def test_max_images(self, registry: FieldRegistry) -> None:
        field = _field("gallery", label="Photos", extra={"max_images": 2})
        messages = registry.get_field_type("gallery").validate(["a.jpg", "b.jpg", "c.jpg"], field)
        assert messages == ["Photos cannot contain more than 2 images."]

    def test_image_types(self, registry: FieldRegistry) -> None:
        field = _field("gallery", label="Photos")
        messages = registry.get_field_type("gallery").validate(["a.jpg", "menu.pdf", "17"], field)
        assert len(messages) == 1
        assert messages[0].startswith("Photos images must be one of these file types: jpg")

    def test_corrupt_storage_decodes_empty(self, registry: FieldRegistry) -> None:
        assert registry.get_field_type("gallery").from_storage("a.jpg") == []

    def test_display(self, registry: FieldRegistry) -> None:
        field = _field("gallery", label="Photos")
        html = registry.get_field_type("gallery").render(field, ["a.jpg"], RenderContext.DISPLAY)
        assert '<a class="lf-gallery-link" href="a.jpg">' in html
        assert 'alt="Photos"' in html

    def test_form_input_keeps_order(self, registry: FieldRegistry) -> None:
        field = _field("gallery", extra={"max_images": 4})
        html = registry.get_field_type("gallery").render(
            field, ["b.jpg", "a.jpg"], RenderContext.ADMIN
        )
        assert 'value="b.jpg,a.jpg"' in html
        assert 'data-max-images="4"' in html


class TestDateRange:
    def test_open_end(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("daterange")
        clean = handler.sanitize("2024-05-01..")
        assert clean == (date(2024, 5, 1), None)
        assert handler.to_storage(clean) == '["2024-05-01", null]'
        assert handler.from_storage(handler.to_storage(clean)) == clean

    def test_mapping_input(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("daterange")
        assert handler.sanitize({"start": "2024-05-01", "end": ""}) == (date(2024, 5, 1), None)
        assert handler.sanitize({"start": "", "end": ""}) is None

    def test_single_date_is_one_day(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("daterange")
        assert handler.sanitize("2024-05-01") == (date(2024, 5, 1), date(2024, 5, 1))

    def test_invalid_side_kept_for_validation(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("daterange")
        field = _field("daterange", label="Season")
        clean = handler.sanitize("2024-13-01..2024-05-01")
        assert clean == ("2024-13-01", date(2024, 5, 1))
        assert handler.validate(clean, field) == [
            "Season start date must be in YYYY-MM-DD format."
        ]
        assert handler.from_storage(handler.to_storage(clean)) == clean

    def test_end_before_start(self, registry: FieldRegistry) -> None:
        field = _field("daterange", label="Season")
        messages = registry.get_field_type("daterange").validate(
            (date(2024, 9, 1), date(2024, 5, 1)), field
        )
        assert messages == ["Season end date cannot be before the start date."]

    def test_required_needs_both_sides(self, registry: FieldRegistry) -> None:
        field = _field("daterange", label="Season", required=True)
        handler = registry.get_field_type("daterange")
        assert handler.validate((date(2024, 5, 1), None), field) == [
            "Season requires both start and end dates."
        ]
        assert handler.validate(None, field) == ["Season is required."]

    def test_bounds_apply_to_both_sides(self, registry: FieldRegistry) -> None:
        field = _field("daterange", label="Season", validation={"max": "2024-12-31"})
        messages = registry.get_field_type("daterange").validate(
            (date(2025, 1, 1), date(2025, 2, 1)), field
        )
        assert messages == [
            "Season start date must be on or before 2024-12-31.",
            "Season end date must be on or before 2024-12-31.",
        ]

    def test_search_value_encoding(self, registry: FieldRegistry) -> None:
        handler = registry.get_field_type("daterange")
        field = _field("daterange")
        assert handler.encode_value("2024-06-01", field) == "2024-06-01"
        assert handler.encode_value("June", field) is None

    def test_display(self, registry: FieldRegistry) -> None:
        field = _field("daterange", extra={"format": "%Y-%m-%d", "separator": " to "})
        html = registry.get_field_type("daterange").render(
            field, (date(2024, 5, 1), date(2024, 9, 30)), RenderContext.DISPLAY
        )
        assert html == "2024-05-01 to 2024-09-30"

    def test_form_inputs(self, registry: FieldRegistry) -> None:
        html = registry.get_field_type("daterange").render(
            _field("daterange"), (date(2024, 5, 1), None), RenderContext.PUBLIC_FORM
        )
        assert 'name="lf_field_sample[start]"' in html
        assert 'value="2024-05-01"' in html
        assert 'id="lf-field-sample-end"' in html

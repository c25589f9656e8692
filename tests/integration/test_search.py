"""Integration tests: compiled searches executed against SQLite."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.orm import Session

from listing_fields.schema import Schema
from listing_fields.search.parser import parse_criteria
from listing_fields.store import AttributeWriter, ListingStore, SqlAttachmentStore


@pytest.fixture
def run(session: Session, listing_schema: Schema, seeded: dict[str, int]):
    """Search and return the matching titles in result order."""
    names = {item_id: title for title, item_id in seeded.items()}
    engine = listing_schema.engine(ListingStore(session))

    def _run(params: Any) -> list[str]:
        return [names[item_id] for item_id in engine.search(params).item_ids]

    return _run


class TestFilters:
    def test_unfiltered_newest_first(self, run) -> None:
        assert run({}) == ["Bar Nord", "Pizza Roma", "Cafe Luna"]

    def test_drafts_hidden(self, run) -> None:
        assert run({"category": "cafes"}) == ["Cafe Luna"]

    def test_drafts_included_on_request(
        self, session: Session, listing_schema: Schema, seeded: dict[str, int]
    ) -> None:
        store = ListingStore(session, statuses=("publish", "draft"))
        assert listing_schema.engine(store).search({"category": "cafes"}).total == 2

    def test_taxonomy_values_ored(self, run) -> None:
        assert run({"category": "cafes,bars", "orderby": "title", "order": "asc"}) == [
            "Bar Nord",
            "Cafe Luna",
        ]

    def test_text_field_equals(self, run) -> None:
        assert sorted(run({"city": "Berlin"})) == ["Bar Nord", "Cafe Luna"]

    def test_select_values_ored(self, run) -> None:
        assert sorted(run({"price_range": "$,$$"})) == ["Cafe Luna", "Pizza Roma"]

    def test_numeric_range_compares_numbers(self, run) -> None:
        assert sorted(run({"seats_min": "9"})) == ["Cafe Luna", "Pizza Roma"]
        assert run({"seats": "20..30"}) == ["Cafe Luna"]

    def test_list_membership(self, run) -> None:
        assert run({"amenities": "terrace"}) == ["Pizza Roma"]
        assert sorted(run({"amenities": "wifi"})) == ["Cafe Luna", "Pizza Roma"]

    def test_list_membership_matches_whole_values(
        self, session: Session, listing_schema: Schema
    ) -> None:
        listing_schema.fields.register_field(
            "amenities", {"type": "multiselect", "options": ["wifi", "wifi-pro"]}, replace=True
        )
        listing = ListingStore(session).create("Hotel")
        AttributeWriter(listing_schema.validator, SqlAttachmentStore(session)).save(
            listing.id, {"amenities": ["wifi-pro"]}, fields=["amenities"]
        )
        result = listing_schema.engine(ListingStore(session)).search({"amenities": "wifi"})
        assert result.item_ids == []

    def test_date_range(self, run) -> None:
        assert run({"date": "2024-02-01..2024-12-31"}) == ["Bar Nord", "Pizza Roma"]

    def test_predicates_anded(self, run) -> None:
        assert run({"city": "Berlin", "category": "bars"}) == ["Bar Nord"]

    def test_unknown_filter_ignored(self, run) -> None:
        assert len(run({"bogus": "x"})) == 3


class TestKeyword:
    def test_matches_content(self, run) -> None:
        assert run({"s": "pizza"}) == ["Pizza Roma"]

    def test_matches_searchable_field(self, run) -> None:
        assert run({"s": "10115"}) == ["Bar Nord"]
        assert sorted(run({"keyword": "Berlin"})) == ["Bar Nord", "Cafe Luna"]

    def test_no_match(self, run) -> None:
        assert run({"s": "sushi"}) == []


class TestSortAndPages:
    def test_title_ascending(self, run) -> None:
        assert run({"orderby": "title", "order": "asc"}) == [
            "Bar Nord",
            "Cafe Luna",
            "Pizza Roma",
        ]

    def test_numeric_field_sort(self, run) -> None:
        assert run({"orderby": "seats", "order": "desc"}) == [
            "Pizza Roma",
            "Cafe Luna",
            "Bar Nord",
        ]

    def test_select_field_sort(self, run) -> None:
        assert run({"orderby": "price_range", "order": "asc"}) == [
            "Pizza Roma",
            "Cafe Luna",
            "Bar Nord",
        ]

    def test_second_page(
        self, session: Session, listing_schema: Schema, seeded: dict[str, int]
    ) -> None:
        engine = listing_schema.engine(ListingStore(session))
        result = engine.search({"per_page": "2", "page": "2"})
        assert result.item_ids == [seeded["Cafe Luna"]]
        assert result.total == 3
        assert result.pages == 2
        assert not result.has_more

    def test_page_past_end_keeps_total(
        self, session: Session, listing_schema: Schema, seeded: dict[str, int]
    ) -> None:
        engine = listing_schema.engine(ListingStore(session))
        result = engine.search({"per_page": "2", "page": "5"})
        assert result.item_ids == []
        assert result.total == 3

    def test_huge_page_number_returns_empty_page(
        self, session: Session, listing_schema: Schema, seeded: dict[str, int]
    ) -> None:
        engine = listing_schema.engine(ListingStore(session))
        result = engine.search({"page": "100000000000000000000"})
        assert result.item_ids == []
        assert result.total == 3

    def test_out_of_range_number_ignored(self, run) -> None:
        assert run({"seats_min": "1e5000000"}) == ["Bar Nord", "Pizza Roma", "Cafe Luna"]

    def test_oversized_page_clamped(
        self, session: Session, listing_schema: Schema, seeded: dict[str, int]
    ) -> None:
        result = listing_schema.engine(ListingStore(session)).search({"page_size": "10000"})
        assert result.page_size == 100
        assert result.total == 3


class TestQueryLanguage:
    def test_parsed_query(self, run) -> None:
        criteria = parse_criteria("category:cafes,restaurants price_range:$ orderby:title")
        assert run(criteria) == ["Pizza Roma"]

    def test_parsed_range(self, run) -> None:
        assert run(parse_criteria("seats:..30 orderby:seats order:asc")) == [
            "Bar Nord",
            "Cafe Luna",
        ]


class TestDateRangeFilter:
    @pytest.fixture
    def season_run(self, session: Session, listing_schema: Schema, seeded: dict[str, int]):
        listing_schema.fields.register_field("season", {"type": "daterange"})
        listing_schema.filters.register_filter(
            "season", {"operators": ["range", "equals"], "type": "range"}
        )
        writer = AttributeWriter(listing_schema.validator, SqlAttachmentStore(session))
        seasons = {
            "Cafe Luna": "2024-05-01..2024-09-30",
            "Pizza Roma": "2024-11-01..",
        }
        for title, season in seasons.items():
            result = writer.save(seeded[title], {"season": season}, fields=["season"])
            assert result.valid, result.error_messages()
        session.flush()
        names = {item_id: title for title, item_id in seeded.items()}
        engine = listing_schema.engine(ListingStore(session))

        def _run(params: Any) -> list[str]:
            return sorted(names[item_id] for item_id in engine.search(params).item_ids)

        return _run

    def test_overlapping_ranges_match(self, season_run) -> None:
        assert season_run({"season": "2024-09-01..2024-12-01"}) == ["Cafe Luna", "Pizza Roma"]
        assert season_run({"season": "2024-10-01..2024-10-31"}) == []

    def test_open_end_matches_later_dates(self, season_run) -> None:
        assert season_run({"season": "2030-01-01"}) == ["Pizza Roma"]

    def test_single_date_inside_range(self, season_run) -> None:
        assert season_run({"season": "2024-06-15"}) == ["Cafe Luna"]

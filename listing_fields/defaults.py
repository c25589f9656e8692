"""Default field and filter set for a listing directory."""

from __future__ import annotations

import logging
from typing import Any

from listing_fields.fields.registry import FieldRegistry
from listing_fields.search.registry import FilterRegistry

log = logging.getLogger(__name__)

DEFAULT_FIELDS: dict[str, dict[str, Any]] = {
    "phone": {"type": "phone", "label": "Phone", "priority": 10, "searchable": True},
    "email": {"type": "email", "label": "Email", "priority": 20},
    "website": {"type": "url", "label": "Website", "priority": 30},
    "address": {"type": "text", "label": "Address", "priority": 40, "searchable": True},
    "city": {
        "type": "text",
        "label": "City",
        "priority": 50,
        "searchable": True,
        "filterable": True,
    },
    "state": {"type": "text", "label": "State", "priority": 60},
    "zip": {"type": "text", "label": "Zip Code", "priority": 70, "searchable": True},
    "hours": {"type": "textarea", "label": "Business Hours", "priority": 80},
    "price_range": {
        "type": "select",
        "label": "Price Range",
        "priority": 90,
        "filterable": True,
        "options": ["$", "$$", "$$$", "$$$$"],
        "extra": {"empty_option": "Not specified"},
    },
}

DEFAULT_FILTERS: dict[str, dict[str, Any]] = {
    "keyword": {
        "source": "structural",
        "operators": ["contains"],
        "type": "text",
        "label": "Search",
        "param": "s",
        "priority": 5,
    },
    "category": {
        "source": "taxonomy",
        "operators": ["equals", "in"],
        "type": "select",
        "priority": 10,
    },
    "tag": {
        "source": "taxonomy",
        "operators": ["equals", "in"],
        "type": "checkbox",
        "label": "Tags",
        "priority": 20,
        "multiple": True,
    },
    "price_range": {
        "source": "field",
        "operators": ["equals", "in"],
        "type": "select",
        "priority": 30,
    },
    "date": {
        "source": "structural",
        "operators": ["range"],
        "type": "date",
        "label": "Date Added",
        "priority": 40,
    },
}


def register_default_fields(registry: FieldRegistry) -> int:
    """Register the default fields that are not registered yet.

    Returns:
        Number of fields registered.
    """
    count = 0
    for name, config in DEFAULT_FIELDS.items():
        # Direct registration takes priority over defaults.
        if registry.has_field(name):
            continue
        registry.register_field(name, config)
        count += 1
    log.debug("Registered %d default field(s)", count)
    return count


def register_default_filters(filters: FilterRegistry) -> int:
    """Register the default filters whose name and source are available.

    Returns:
        Number of filters registered.
    """
    count = 0
    for name, config in DEFAULT_FILTERS.items():
        if filters.has_filter(name):
            continue
        if config["source"] == "field" and not filters.fields.has_field(config.get("source_key", name)):
            log.debug("Skipping default filter %s: field is not registered", name)
            continue
        filters.register_filter(name, config)
        count += 1
    log.debug("Registered %d default filter(s)", count)
    return count


# Written by ``init-config --schema`` as a starting point for a directory's
# own fields; it registers cleanly on top of the defaults above.
STARTER_SCHEMA: dict[str, Any] = {
    "fields": {
        "description": {"type": "richtext", "label": "Description", "priority": 5},
        "seats": {
            "type": "number",
            "label": "Seats",
            "priority": 100,
            "filterable": True,
            "validation": {"min": 1},
        },
        "amenities": {
            "type": "checkboxgroup",
            "label": "Amenities",
            "priority": 110,
            "filterable": True,
            "options": {"wifi": "Wi-Fi", "parking": "Parking", "terrace": "Terrace"},
        },
        "season": {
            "type": "daterange",
            "label": "Open Season",
            "priority": 120,
            "filterable": True,
        },
        "photos": {
            "type": "gallery",
            "label": "Photos",
            "priority": 130,
            "extra": {"max_images": 12},
        },
    },
    "filters": {
        "seats": {"operators": ["range", "equals"], "type": "range", "priority": 50},
        "amenities": {"operators": ["contains"], "type": "checkbox", "priority": 60},
        "season": {"operators": ["range", "equals"], "type": "date", "priority": 70},
    },
    "groups": {
        "details": {
            "title": "Details",
            "priority": 10,
            "fields": ["description", "seats", "amenities", "season"],
        },
        "media": {"title": "Photos", "priority": 20, "collapsible": True, "fields": ["photos"]},
    },
}

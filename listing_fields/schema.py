"""Schema lifecycle object tying the registries and services together."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

from listing_fields.defaults import register_default_fields, register_default_filters
from listing_fields.exceptions import ConfigParseError, ConfigValidationError
from listing_fields.fields.registry import FieldRegistry
from listing_fields.fields.renderer import FieldRenderer
from listing_fields.fields.validator import FieldValidator
from listing_fields.search.engine import SearchQueryEngine
from listing_fields.search.registry import FilterRegistry

if TYPE_CHECKING:
    from listing_fields.config import Config
    from listing_fields.store.protocols import AttachmentStore, ContentItemStore

log = logging.getLogger(__name__)


class Schema:
    """Owns one FieldRegistry and one FilterRegistry.

    Build one at startup, register fields, filters and groups (groups go on
    ``layout``), then hand it to everything that validates, renders or
    searches. Tests build a fresh one each so no state leaks between them.
    """

    def __init__(self, config: Config | None = None, *, defaults: bool | None = None) -> None:
        self.config = config
        self.fields = FieldRegistry()
        self.filters = FilterRegistry(self.fields)
        self.layout = FieldRenderer(self.fields)
        self.validator = FieldValidator(
            self.fields, strict=config.strict_fields if config is not None else False
        )
        if defaults is None:
            defaults = config.register_defaults if config is not None else False

        data: dict[str, Any] = {}
        if config is not None and config.schema_file is not None and config.schema_file.exists():
            data = read_schema_file(config.schema_file)
            log.debug("Read schema file %s", config.schema_file)
        # File entries win over defaults of the same name; file filters may
        # use default fields.
        self._load_fields(data)
        if defaults:
            register_default_fields(self.fields)
        self._load_layout(data)
        if defaults:
            register_default_filters(self.filters)

    def __repr__(self) -> str:
        return f"<Schema(fields={len(self.fields)}, filters={len(self.filters)})>"

    def register_defaults(self) -> None:
        register_default_fields(self.fields)
        register_default_filters(self.filters)

    def load(self, data: dict[str, Any]) -> None:
        """Register the ``fields``, ``filters`` and ``groups`` tables of a schema document.

        Fields go first so filters can refer to them. Registration errors
        propagate unchanged.
        """
        self._load_fields(data)
        self._load_layout(data)
        log.debug("Loaded schema: %r", self)

    def _load_fields(self, data: dict[str, Any]) -> None:
        for name, config in _tables(data, "fields").items():
            self.fields.register_field(name, config)

    def _load_layout(self, data: dict[str, Any]) -> None:
        for name, config in _tables(data, "filters").items():
            self.filters.register_filter(name, config)
        for group_id, config in _tables(data, "groups").items():
            self.layout.register_group(group_id, config)

    def load_file(self, path: Path) -> None:
        """Load a TOML schema file.

        Raises:
            ConfigParseError: If the file is not valid TOML.
            ConfigValidationError: If a top-level table is malformed.
        """
        self.load(read_schema_file(path))

    def renderer(self, attachments: AttachmentStore | None = None) -> FieldRenderer:
        """New renderer sharing the registered groups.

        Use one per request since a renderer holds error state.
        """
        return self.layout.for_request(attachments)

    def engine(self, store: ContentItemStore | None = None) -> SearchQueryEngine:
        if self.config is not None:
            return SearchQueryEngine.from_config(self.fields, self.filters, self.config, store)
        return SearchQueryEngine(self.fields, self.filters, store)


def _tables(data: dict[str, Any], section: str) -> dict[str, dict[str, Any]]:
    tables = data.get(section, {})
    if not isinstance(tables, dict):
        raise ConfigValidationError(section, tables, "must be a table of tables")
    for name, config in tables.items():
        if not isinstance(config, dict):
            raise ConfigValidationError(f"{section}.{name}", config, "must be a table")
    return tables


def read_schema_file(path: Path) -> dict[str, Any]:
    """Read a TOML schema document.

    Raises:
        ConfigParseError: If the file is not valid TOML.
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(path, str(e)) from e

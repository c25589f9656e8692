"""Attachment store for field values and the validated write path."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from listing_fields.exceptions import ListingNotFoundError
from listing_fields.fields.validator import FieldValidator, ProcessResult
from listing_fields.store.models import Listing, ListingAttribute

log = logging.getLogger(__name__)


class SqlAttachmentStore:
    """``(item_id, field_name) -> stored value`` backed by ``listing_attributes``."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, item_id: int, key: str) -> str | None:
        row = self.session.get(ListingAttribute, (item_id, key))
        return row.value if row is not None else None

    def set(self, item_id: int, key: str, value: str | None) -> None:
        if self.session.get(Listing, item_id) is None:
            raise ListingNotFoundError(item_id)
        row = self.session.get(ListingAttribute, (item_id, key))
        if row is None:
            self.session.add(ListingAttribute(listing_id=item_id, key=key, value=value))
        else:
            row.value = value
        self.session.flush()

    def delete(self, item_id: int, key: str) -> None:
        self.session.execute(
            delete(ListingAttribute).where(
                ListingAttribute.listing_id == item_id, ListingAttribute.key == key
            )
        )

    def get_all(self, item_id: int) -> dict[str, str]:
        rows = self.session.execute(
            select(ListingAttribute.key, ListingAttribute.value).where(
                ListingAttribute.listing_id == item_id
            )
        )
        return {key: value for key, value in rows if value is not None}

    def delete_all(self, item_id: int) -> None:
        self.session.execute(delete(ListingAttribute).where(ListingAttribute.listing_id == item_id))


def _encode_unregistered(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class AttributeWriter:
    """Persists field values, always through ``FieldValidator.process_fields``.

    Nothing is written unless the whole submission validates. Empty values
    delete the stored attribute.
    """

    def __init__(self, validator: FieldValidator, attachments: SqlAttachmentStore) -> None:
        self.validator = validator
        self.attachments = attachments

    def save(
        self,
        item_id: int,
        values: Mapping[str, Any],
        *,
        fields: Iterable[str] | None = None,
        exclude: Iterable[str] | None = None,
    ) -> ProcessResult:
        result = self.validator.process_fields(values, fields=fields, exclude=exclude)
        if not result.valid:
            log.debug("Not saving listing %s: %s", item_id, result.errors)
            return result

        registry = self.validator.registry
        for key, value in result.values.items():
            resolved = registry.handler_for(key)
            if resolved is None:
                if value is None:
                    self.attachments.delete(item_id, key)
                else:
                    self.attachments.set(item_id, key, _encode_unregistered(value))
                continue
            definition, handler = resolved
            if handler.is_empty(value):
                self.attachments.delete(item_id, definition.name)
                continue
            self.attachments.set(item_id, definition.name, handler.to_storage(value))
        log.debug("Saved %d value(s) for listing %s", len(result.values), item_id)
        return result

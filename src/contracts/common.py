"""Shared base model and helpers for persisted domain records."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List

from pydantic import BaseModel, ConfigDict

from src.utils.datetime_utils import parse_timestamp


def new_id() -> str:
    """Return a fresh opaque identifier."""

    return uuid.uuid4().hex


def unique(values: Iterable[Any]) -> List[Any]:
    """Drop duplicates and blank strings, keeping first-seen order and types."""

    seen: set[Any] = set()
    result: List[Any] = []
    for value in values:
        if isinstance(value, str) and not value.strip():
            continue
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def coerce_timestamp(value: Any) -> Any:
    """``mode="before"`` hook accepting ISO strings, epoch millis and datetimes."""

    if value is None or isinstance(value, (str, int, float, datetime)):
        return parse_timestamp(value) if value is not None else None
    return value


class DomainModel(BaseModel):
    """Base for stored records; unknown keys from older payloads are dropped."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        validate_assignment=True,
        str_strip_whitespace=True,
    )

    def model_dump_for_storage(self) -> Dict[str, Any]:
        """Return a JSON-safe mapping ready for the collection store."""

        return self.model_dump(mode="json")


__all__ = ["DomainModel", "coerce_timestamp", "new_id", "unique"]

"""Free-text notes attached to a catalog item."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from src.utils.datetime_utils import utc_now

from .common import DomainModel, coerce_timestamp, new_id
from .enums import NoteTargetType


class Note(DomainModel):
    id: str = Field(default_factory=new_id, min_length=1)
    target_type: NoteTargetType
    target_id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: Any) -> Any:
        return coerce_timestamp(value)


__all__ = ["Note"]

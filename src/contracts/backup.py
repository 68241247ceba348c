"""Backup bundle: every stored collection plus a format version."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import Field, field_validator

from src.utils.datetime_utils import utc_now

from .catalog import Activity, BuenaObra, PersonType, Sin
from .common import DomainModel, coerce_timestamp
from .events import ExamSession
from .notes import Note
from .preferences import UserPreferences, UserState

# Stored collections bundled by an export, in restore order
BACKUP_COLLECTIONS: Tuple[str, ...] = (
    "sins",
    "buenas_obras",
    "exam_sessions",
    "notes",
    "person_types",
    "activities",
    "preferences",
    "user_state",
)


class BackupBundle(DomainModel):
    version: str = Field(..., min_length=1)
    exported_at: datetime = Field(default_factory=utc_now)
    sins: List[Sin] = Field(default_factory=list)
    buenas_obras: List[BuenaObra] = Field(default_factory=list)
    exam_sessions: List[ExamSession] = Field(default_factory=list)
    notes: List[Note] = Field(default_factory=list)
    person_types: List[PersonType] = Field(default_factory=list)
    activities: List[Activity] = Field(default_factory=list)
    preferences: Optional[UserPreferences] = None
    user_state: Optional[UserState] = None

    @field_validator("exported_at", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: Any) -> Any:
        return coerce_timestamp(value)


__all__ = ["BACKUP_COLLECTIONS", "BackupBundle"]

"""Event log records: sin and good-deed occurrences grouped into sessions."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, PositiveInt, field_validator, model_validator

from src.utils.datetime_utils import utc_now

from .common import DomainModel, coerce_timestamp, new_id, unique
from .enums import AttentionLevel, FreeformPillar, MotiveType, PurityOfIntention, Responsibility


class CondicionantesSnapshot(DomainModel):
    """Condicionantes matched when the event was registered, with the resulting factor."""

    applied: List[str] = Field(default_factory=list)
    k: int = Field(default=0, ge=0)
    factor: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def _check_k(self) -> "CondicionantesSnapshot":
        if self.k != len(self.applied):
            raise ValueError("k must equal the number of applied condicionantes")
        return self


class OptionalFlags(DomainModel):
    """Aggravating circumstances that may accompany a sin event."""

    escandalo_grave: bool = False
    fin_gravemente_malo: bool = False
    desprecio_formal_ley: bool = False
    peligro_proximo: bool = False

    def active(self) -> List[str]:
        return [name for name, value in self.model_dump().items() if value]


class _TimedEvent(DomainModel):
    id: str = Field(default_factory=new_id, min_length=1)
    timestamp: datetime = Field(default_factory=utc_now)
    count_increment: PositiveInt = 1
    condicionantes: Optional[CondicionantesSnapshot] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: Any) -> Any:
        return coerce_timestamp(value)


class SinEvent(_TimedEvent):
    """One logged occurrence of a sin."""

    sin_id: str = Field(..., min_length=1)
    attention: AttentionLevel = AttentionLevel.DELIBERADO
    motive: MotiveType = MotiveType.FRAGILIDAD
    responsibility: Responsibility = Responsibility.FORMAL
    optional_flags: OptionalFlags = Field(default_factory=OptionalFlags)


class BuenaObraEvent(_TimedEvent):
    """One logged occurrence of a good deed."""

    buena_obra_id: str = Field(..., min_length=1)
    purity_of_intention: PurityOfIntention = PurityOfIntention.VIRTUAL


class FreeformEntry(DomainModel):
    """Uncataloged entry written during an examination."""

    id: str = Field(default_factory=new_id, min_length=1)
    text: str = Field(..., min_length=1)
    pillar: FreeformPillar = FreeformPillar.SELF
    promoted_to: Optional[str] = None


class SessionContext(DomainModel):
    """Selection used to build the examination questionnaire."""

    person_type_ids: List[str] = Field(default_factory=list)
    activity_ids: List[str] = Field(default_factory=list)
    sin_ids: List[str] = Field(default_factory=list)

    @field_validator("person_type_ids", "activity_ids", "sin_ids")
    @classmethod
    def _dedupe(cls, value: List[str]) -> List[str]:
        return unique(value)


class ExamSession(DomainModel):
    """One examination sitting; frozen once ``ended_at`` is set."""

    id: str = Field(default_factory=new_id, min_length=1)
    started_at: datetime = Field(default_factory=utc_now)
    ended_at: Optional[datetime] = None
    context: SessionContext = Field(default_factory=SessionContext)
    events: List[SinEvent] = Field(default_factory=list)
    buena_obra_events: List[BuenaObraEvent] = Field(default_factory=list)
    freeform_sins: List[FreeformEntry] = Field(default_factory=list)
    freeform_buenas_obras: List[FreeformEntry] = Field(default_factory=list)

    @field_validator("started_at", "ended_at", mode="before")
    @classmethod
    def _normalize_timestamps(cls, value: Any) -> Any:
        return coerce_timestamp(value)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ExamSession":
        if self.ended_at is not None and self.ended_at < self.started_at:
            raise ValueError("ended_at cannot precede started_at")
        return self

    @property
    def is_completed(self) -> bool:
        return self.ended_at is not None


__all__ = [
    "BuenaObraEvent",
    "CondicionantesSnapshot",
    "ExamSession",
    "FreeformEntry",
    "OptionalFlags",
    "SessionContext",
    "SinEvent",
]

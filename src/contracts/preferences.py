"""User preferences, subject profile and aggregate user state."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from .common import DomainModel, coerce_timestamp, unique
from .enums import DuplicateStrategy


class SubjectProfile(DomainModel):
    """Condicionantes describing the person examining themselves."""

    condicionantes_activos: List[str] = Field(default_factory=list)
    custom_condicionantes: List[str] = Field(default_factory=list)

    @field_validator("condicionantes_activos", "custom_condicionantes")
    @classmethod
    def _dedupe(cls, value: List[str]) -> List[str]:
        return unique(value)


class SleepWindow(DomainModel):
    start_hour: int = Field(default=23, ge=0, le=23)
    end_hour: int = Field(default=7, ge=0, le=23)

    def contains(self, hour: int) -> bool:
        if self.start_hour == self.end_hour:
            return False
        if self.start_hour < self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour

    @property
    def hours(self) -> int:
        return (self.end_hour - self.start_hour) % 24


class MetricsCalibration(DomainModel):
    """Calibration of the pass-rate ceiling against a 20-point target grade."""

    target_grade: float = Field(default=15.5, ge=0.0, le=20.0)
    calibration_window_days: int = Field(default=14, ge=1)
    auto_calibrate: bool = True
    pass_rate_max: float = Field(default=50.0, gt=0.0)
    use_active_hours_only: bool = False
    sleep_window: SleepWindow = Field(default_factory=SleepWindow)


class UserPreferences(DomainModel):
    """Explicit preference object handed to the scoring and metrics engines."""

    subject_profile: SubjectProfile = Field(default_factory=SubjectProfile)
    metrics_calibration: MetricsCalibration = Field(default_factory=MetricsCalibration)
    default_duplicate_strategy: DuplicateStrategy = DuplicateStrategy.SKIP

    @property
    def active_condicionantes(self) -> List[str]:
        return list(self.subject_profile.condicionantes_activos)


class UserState(DomainModel):
    last_exam_at: Optional[datetime] = None
    total_exams: int = Field(default=0, ge=0)

    @field_validator("last_exam_at", mode="before")
    @classmethod
    def _normalize_timestamp(cls, value: Any) -> Any:
        return coerce_timestamp(value)


__all__ = [
    "MetricsCalibration",
    "SleepWindow",
    "SubjectProfile",
    "UserPreferences",
    "UserState",
]

"""Period presets and window resolution for metrics."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Union

from src.utils.datetime_utils import ensure_utc, utc_now


class PeriodPreset(str, Enum):
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    LAST_90_DAYS = "90d"
    LAST_YEAR = "1y"
    CUSTOM = "custom"


PRESET_DAYS: Dict[PeriodPreset, int] = {
    PeriodPreset.LAST_7_DAYS: 7,
    PeriodPreset.LAST_30_DAYS: 30,
    PeriodPreset.LAST_90_DAYS: 90,
    PeriodPreset.LAST_YEAR: 365,
}

PRESET_LABELS: Dict[PeriodPreset, str] = {
    PeriodPreset.LAST_7_DAYS: "7 días",
    PeriodPreset.LAST_30_DAYS: "30 días",
    PeriodPreset.LAST_90_DAYS: "90 días",
    PeriodPreset.LAST_YEAR: "1 año",
    PeriodPreset.CUSTOM: "Personalizado",
}


@dataclass(frozen=True)
class PeriodConfig:
    """Closed time window ``[start, end]`` in UTC."""

    preset: PeriodPreset
    start: datetime
    end: datetime
    label: str

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def days(self) -> float:
        return self.duration.total_seconds() / 86400.0

    @property
    def hours(self) -> float:
        return self.duration.total_seconds() / 3600.0

    def contains(self, moment: datetime) -> bool:
        moment = ensure_utc(moment)
        return self.start <= moment <= self.end


def resolve_period(
    preset: Union[PeriodPreset, str],
    now: Optional[datetime] = None,
    custom_start: Optional[datetime] = None,
    custom_end: Optional[datetime] = None,
    default_custom_days: int = 7,
) -> PeriodConfig:
    """
    Resolve a preset against ``now``.

    Fixed presets end at ``now``. A custom period without a start covers
    the last ``default_custom_days`` days; without an end it finishes now.
    """
    preset = PeriodPreset(preset)
    current = ensure_utc(now) if now else utc_now()

    if preset is PeriodPreset.CUSTOM:
        end = ensure_utc(custom_end) if custom_end else current
        start = (
            ensure_utc(custom_start)
            if custom_start
            else current - timedelta(days=default_custom_days)
        )
        if start > end:
            raise ValueError("custom period start is after its end")
        return PeriodConfig(preset, start, end, PRESET_LABELS[preset])

    start = current - timedelta(days=PRESET_DAYS[preset])
    return PeriodConfig(preset, start, current, PRESET_LABELS[preset])


def previous_period(period: PeriodConfig) -> PeriodConfig:
    """Window of the same length that ends where ``period`` starts."""
    return replace(period, start=period.start - period.duration, end=period.start)


__all__ = [
    "PRESET_DAYS",
    "PRESET_LABELS",
    "PeriodConfig",
    "PeriodPreset",
    "previous_period",
    "resolve_period",
]

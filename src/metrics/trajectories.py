"""Time-bucketed series with period-over-period variation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from src.utils.datetime_utils import ensure_utc, short_date_label

from .periods import PeriodConfig
from .variation import VariationResult, calculate_variation

DAY = timedelta(days=1)
WEEK = timedelta(days=7)


@dataclass
class TrajectoryPoint:
    timestamp: datetime
    label: str
    value: float
    event_count: int


@dataclass
class TrajectoryData:
    points: List[TrajectoryPoint] = field(default_factory=list)
    total_score: float = 0.0
    event_count: int = 0
    variation: Optional[VariationResult] = None
    contribution_percent: Optional[float] = None
    label: str = ""


@dataclass(frozen=True)
class Bucket:
    start: datetime
    end: datetime
    label: str


def bucket_width(period: PeriodConfig, daily_max_days: int = 14) -> timedelta:
    return DAY if period.days <= daily_max_days else WEEK


def build_buckets(
    period: PeriodConfig, tz: str = "UTC", daily_max_days: int = 14
) -> List[Bucket]:
    """
    Lay out equal-width buckets from the period start.

    Daily buckets are labelled ``15 oct``; weekly ones ``Sem. 15 oct``.
    """
    width = bucket_width(period, daily_max_days)
    count = max(1, math.ceil(period.duration / width))
    buckets = []
    for index in range(count):
        start = period.start + index * width
        label = short_date_label(start, tz)
        if width == WEEK:
            label = f"Sem. {label}"
        buckets.append(Bucket(start, min(start + width, period.end), label))
    return buckets


def bucket_index(moment: datetime, period: PeriodConfig, width: timedelta, count: int) -> int:
    """Bucket holding ``moment``; outside timestamps clamp to the edge buckets."""
    offset = ensure_utc(moment) - period.start
    index = math.floor(offset / width)
    return min(max(index, 0), count - 1)


def contribution(part: float, whole: float) -> float:
    return part / whole * 100.0 if whole > 0 else 0.0


def build_trajectory(
    scored: Sequence[Tuple[datetime, float]],
    period: PeriodConfig,
    previous_total: Optional[float] = None,
    *,
    category_total: Optional[float] = None,
    higher_is_better: bool = False,
    config: Optional[Dict[str, Any]] = None,
) -> TrajectoryData:
    """
    Sum ``(timestamp, score)`` pairs into the period's buckets.

    Bucket values always add up to the period total. ``previous_total``
    enables the variation; ``category_total`` the contribution percent.
    """
    cfg = config or {}
    daily_max = int(cfg.get("daily_bucket_max_days", 14))
    buckets = build_buckets(period, cfg.get("timezone", "UTC"), daily_max)
    width = bucket_width(period, daily_max)

    values = [0.0] * len(buckets)
    counts = [0] * len(buckets)
    for moment, score in scored:
        index = bucket_index(moment, period, width, len(buckets))
        values[index] += score
        counts[index] += 1

    total = sum(score for _, score in scored)
    trajectory = TrajectoryData(
        points=[
            TrajectoryPoint(bucket.start, bucket.label, values[i], counts[i])
            for i, bucket in enumerate(buckets)
        ],
        total_score=total,
        event_count=len(scored),
    )
    if previous_total is not None:
        trajectory.variation = calculate_variation(
            total,
            previous_total,
            higher_is_better=higher_is_better,
            band=float(cfg.get("variation_band", 0.10)),
            epsilon=float(cfg.get("epsilon", 0.001)),
        )
    if category_total is not None:
        trajectory.contribution_percent = contribution(total, category_total)
    return trajectory


def build_grade_trajectory(
    events: Sequence[Tuple[datetime, Any]],
    period: PeriodConfig,
    grade_of: Callable[[List[Any], PeriodConfig], float],
    previous_grade: Optional[float] = None,
    *,
    config: Optional[Dict[str, Any]] = None,
) -> TrajectoryData:
    """
    One grade per bucket, computed from the events that fall in it.

    ``events`` pairs each timestamp with an opaque payload handed back to
    ``grade_of`` together with the bucket window.
    """
    cfg = config or {}
    daily_max = int(cfg.get("daily_bucket_max_days", 14))
    buckets = build_buckets(period, cfg.get("timezone", "UTC"), daily_max)
    width = bucket_width(period, daily_max)

    grouped: List[List[Any]] = [[] for _ in buckets]
    for moment, payload in events:
        grouped[bucket_index(moment, period, width, len(buckets))].append(payload)

    points = []
    for bucket, payloads in zip(buckets, grouped):
        window = PeriodConfig(period.preset, bucket.start, bucket.end, bucket.label)
        points.append(
            TrajectoryPoint(bucket.start, bucket.label, grade_of(payloads, window), len(payloads))
        )

    current = grade_of([payload for _, payload in events], period)
    trajectory = TrajectoryData(points=points, total_score=current, event_count=len(events))
    if previous_grade is not None:
        trajectory.variation = calculate_variation(
            current,
            previous_grade,
            higher_is_better=True,
            band=float(cfg.get("variation_band", 0.10)),
            epsilon=float(cfg.get("epsilon", 0.001)),
        )
    return trajectory


__all__ = [
    "Bucket",
    "TrajectoryData",
    "TrajectoryPoint",
    "bucket_index",
    "bucket_width",
    "build_buckets",
    "build_grade_trajectory",
    "build_trajectory",
    "contribution",
]

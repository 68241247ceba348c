"""Metrics package exports."""

from .calibration import CalibrationSuggestion, calculate_auto_calibration, target_pass_probability
from .counts import ItemCount, live_count, persisted_count, should_reset
from .dimensions import DIMENSION_LABELS, DIMENSION_ORDER, DimensionRow, DimensionTable
from .engine import MetricsEngine, MetricsResult, NoteInPeriod, calculate_metrics
from .filters import MetricFilter
from .grade import ItemDetail, PeriodGrade, calculate_period_grade
from .periods import PeriodConfig, PeriodPreset, previous_period, resolve_period
from .trajectories import TrajectoryData, TrajectoryPoint
from .variation import VariationResult, VariationType, calculate_variation, format_percentage

__all__ = [
    "CalibrationSuggestion",
    "DIMENSION_LABELS",
    "DIMENSION_ORDER",
    "DimensionRow",
    "DimensionTable",
    "ItemCount",
    "ItemDetail",
    "MetricFilter",
    "MetricsEngine",
    "MetricsResult",
    "NoteInPeriod",
    "PeriodConfig",
    "PeriodGrade",
    "PeriodPreset",
    "TrajectoryData",
    "TrajectoryPoint",
    "VariationResult",
    "VariationType",
    "calculate_auto_calibration",
    "calculate_metrics",
    "calculate_period_grade",
    "calculate_variation",
    "format_percentage",
    "live_count",
    "persisted_count",
    "previous_period",
    "resolve_period",
    "should_reset",
    "target_pass_probability",
]

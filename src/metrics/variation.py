"""Period-over-period variation classification."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

DEFAULT_BAND = 0.10
DEFAULT_EPSILON = 0.001


class VariationType(str, Enum):
    PROGRESS = "progress"
    REGRESSION = "regression"
    STABLE = "stable"


@dataclass
class VariationResult:
    current_value: float
    previous_value: float
    delta: float
    percentage: float
    type: VariationType


def round1(value: float) -> float:
    """Round half away from zero to one decimal; never returns ``-0.0``."""
    rounded = math.copysign(math.floor(abs(value) * 10 + 0.5) / 10, value)
    return rounded + 0.0 if rounded == 0 else rounded


def calculate_variation(
    current: float,
    previous: float,
    higher_is_better: bool = False,
    band: float = DEFAULT_BAND,
    epsilon: float = DEFAULT_EPSILON,
) -> VariationResult:
    """
    Compare a period total against the previous one.

    For sin series a drop of at least ``band`` is progress. Grade and
    good-deed series pass ``higher_is_better`` and read the other way.
    """
    delta = current - previous
    effective = max(epsilon, previous)
    percentage = round1(delta / effective * 100.0)

    kind = VariationType.STABLE
    if delta != 0:
        fell = delta < 0 and current <= (1.0 - band) * effective
        rose = delta > 0 and current >= (1.0 + band) * effective
        if fell:
            kind = VariationType.REGRESSION if higher_is_better else VariationType.PROGRESS
        elif rose:
            kind = VariationType.PROGRESS if higher_is_better else VariationType.REGRESSION

    return VariationResult(
        current_value=current,
        previous_value=previous,
        delta=delta,
        percentage=percentage,
        type=kind,
    )


def format_percentage(value: float) -> str:
    """Spanish one-decimal percentage, ``0,0%`` for values that round to zero."""
    if abs(value) < 0.05:
        return "0,0%"
    return f"{value:.1f}".replace(".", ",") + "%"


__all__ = [
    "VariationResult",
    "VariationType",
    "calculate_variation",
    "format_percentage",
    "round1",
]

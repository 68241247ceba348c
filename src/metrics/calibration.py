# src/metrics/calibration.py
# Autocalibración del umbral de tasa venial
# =========================================

"""
Sugiere el ``pass_rate_max`` a partir de la tasa venial observada en los
días aprobados de la ventana de calibración.

La nota objetivo vive en la escala de 20 puntos: ``p_target`` es la
proporción del umbral que debería consumir un día normal, y el umbral
sugerido es ``tasa_normal / p_target``.
"""

import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from src.contracts.preferences import MetricsCalibration
from src.utils.datetime_utils import ensure_utc, local_date, to_display_tz, utc_now

from .enrichment import EnrichedSinEvent

logger = logging.getLogger(__name__)

TARGET_SCALE = 20.0
TARGET_SPREAD = 9.5


@dataclass
class CalibrationSuggestion:
    p_target: float
    venial_rate_normal: float
    pass_rate_max: float
    days_considered: int


def target_pass_probability(target_grade: float) -> float:
    """``p_target = (20 - nota objetivo) / 9.5``."""
    return (TARGET_SCALE - target_grade) / TARGET_SPREAD


def calculate_auto_calibration(
    sin_events: Sequence[EnrichedSinEvent],
    calibration: MetricsCalibration,
    now: Optional[datetime] = None,
    tz: str = "UTC",
) -> Optional[CalibrationSuggestion]:
    """
    Calcula la sugerencia de calibración.

    Devuelve ``None`` si la autocalibración está desactivada, si la nota
    objetivo no deja margen o si no hay días aprobados con datos.
    """
    if not calibration.auto_calibrate:
        return None
    p_target = target_pass_probability(calibration.target_grade)
    if p_target <= 0:
        logger.info("Nota objetivo sin margen, no se calibra")
        return None

    current = ensure_utc(now) if now else utc_now()
    window_start = current - timedelta(days=calibration.calibration_window_days)

    venial_by_day: Dict[date, float] = defaultdict(float)
    failed_days = set()
    for enriched in sin_events:
        stamp = enriched.timestamp
        if not window_start <= stamp <= current:
            continue
        if calibration.use_active_hours_only and calibration.sleep_window.contains(
            to_display_tz(stamp, tz).hour
        ):
            continue
        day = local_date(stamp, tz)
        if enriched.is_mortal_imputable:
            failed_days.add(day)
        else:
            venial_by_day[day] += enriched.score

    hours = 24.0
    if calibration.use_active_hours_only:
        hours = max(1.0, 24.0 - calibration.sleep_window.hours)

    rates: List[float] = [
        total / hours for day, total in venial_by_day.items() if day not in failed_days
    ]
    if not rates:
        return None

    normal = statistics.median(rates)
    suggestion = CalibrationSuggestion(
        p_target=p_target,
        venial_rate_normal=normal,
        pass_rate_max=normal / p_target,
        days_considered=len(rates),
    )
    logger.info(
        f"🎯 Calibración sugerida: pass_rate_max={suggestion.pass_rate_max:.2f} "
        f"({suggestion.days_considered} días)"
    )
    return suggestion


__all__ = ["CalibrationSuggestion", "calculate_auto_calibration", "target_pass_probability"]

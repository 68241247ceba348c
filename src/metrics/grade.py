# src/metrics/grade.py
# Nota del periodo (escala 1-10)
# ==============================

"""
La nota parte de la nota máxima y descuenta los puntos negativos de los
pecados. Las buenas obras solo recuperan lo perdido: nunca llevan la nota
por encima del máximo. Un pecado mortal imputable, o una acumulación de
veniales que alcanza materia grave, limita la nota al techo configurado
(4,9 por defecto) y el periodo queda desaprobado.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config.settings import METRICS_CONFIG
from src.scoring.event_scorer import AggregationStatus, EventScorer

from .enrichment import EnrichedBuenaObraEvent, EnrichedSinEvent
from .variation import round1

logger = logging.getLogger(__name__)


@dataclass
class ItemDetail:
    id: str
    name: str
    count: int
    points: float


@dataclass
class PeriodGrade:
    """Resultado de la nota de un periodo."""

    passed: bool
    grade: float
    positive_points: float
    negative_points: float
    mortal_count: int
    mortal_peak: float
    aggregations_crossed: int
    period_hours: float
    explanation: str
    buenas_obras_detail: List[ItemDetail] = field(default_factory=list)
    pecados_detail: List[ItemDetail] = field(default_factory=list)
    aggregations: List[AggregationStatus] = field(default_factory=list)


def _details(entries: Iterable[tuple], divisor: float) -> List[ItemDetail]:
    merged: Dict[str, ItemDetail] = {}
    for item_id, name, count, score in entries:
        detail = merged.get(item_id)
        if detail is None:
            merged[item_id] = ItemDetail(item_id, name, count, score / divisor)
        else:
            detail.count += count
            detail.points += score / divisor
    return sorted(merged.values(), key=lambda detail: detail.points, reverse=True)


def crossed_aggregations(sin_events: Sequence[EnrichedSinEvent]) -> List[AggregationStatus]:
    """Acumulaciones de veniales que alcanzaron su umbral en estos eventos."""
    grouped: Dict[str, List[EnrichedSinEvent]] = defaultdict(list)
    for enriched in sin_events:
        if enriched.sin.can_aggregate_to_mortal:
            grouped[enriched.sin.id].append(enriched)

    crossed = []
    for items in grouped.values():
        status = EventScorer.calculate_aggregation(items[0].sin, [e.event for e in items])
        if status.has_reached_mortal:
            crossed.append(status)
    return crossed


def calculate_period_grade(
    sin_events: Sequence[EnrichedSinEvent],
    buena_obra_events: Sequence[EnrichedBuenaObraEvent],
    period_hours: float = 0.0,
    config: Optional[Dict[str, Any]] = None,
) -> PeriodGrade:
    """
    Calcula la nota del periodo a partir de eventos ya puntuados.

    Args:
        sin_events: Eventos de pecado del periodo (ya filtrados).
        buena_obra_events: Eventos de buenas obras del periodo.
        period_hours: Duración del periodo, solo informativa.
        config: Parámetros de ``METRICS_CONFIG``.
    """
    cfg = config or METRICS_CONFIG
    full_mark = float(cfg["full_mark"])
    ceiling = float(cfg["mortal_ceiling"])
    divisor = float(cfg["points_divisor"])

    mortal_scores = [e.score for e in sin_events if e.is_mortal_imputable]
    mortal_count = len(mortal_scores)
    mortal_peak = max(mortal_scores) if mortal_scores else 0.0
    aggregations = crossed_aggregations(sin_events)
    has_grave_matter = mortal_count > 0 or bool(aggregations)

    negative_points = sum(e.score for e in sin_events) / divisor
    positive_points = sum(e.score for e in buena_obra_events) / divisor

    grade = full_mark - negative_points
    if grade < full_mark and positive_points > 0:
        grade = min(full_mark, grade + positive_points)
    if has_grave_matter:
        grade = min(ceiling, grade)
    grade = max(float(cfg["grade_floor"]), min(full_mark, grade))
    grade = round1(grade)

    if mortal_count:
        explanation = f"Desaprobado por {mortal_count} pecado(s) mortal(es) imputable(s)"
    elif aggregations:
        explanation = (
            f"Desaprobado por {len(aggregations)} acumulación(es) que alcanzó materia grave"
        )
    else:
        explanation = (
            f"Puntos negativos: {negative_points:.1f}, Puntos positivos: {positive_points:.1f}"
        )

    passed = not has_grave_matter and grade >= float(cfg["pass_grade"])
    if has_grave_matter:
        logger.debug(f"⛔ Periodo desaprobado: {explanation}")

    return PeriodGrade(
        passed=passed,
        grade=grade,
        positive_points=round1(positive_points),
        negative_points=round1(negative_points),
        mortal_count=mortal_count,
        mortal_peak=mortal_peak,
        aggregations_crossed=len(aggregations),
        period_hours=period_hours,
        explanation=explanation,
        buenas_obras_detail=_details(
            (
                (e.buena_obra.id, e.buena_obra.name, e.event.count_increment, e.score)
                for e in buena_obra_events
            ),
            divisor,
        ),
        pecados_detail=_details(
            ((e.sin.id, e.sin.name, e.event.count_increment, e.score) for e in sin_events),
            divisor,
        ),
        aggregations=aggregations,
    )


__all__ = ["ItemDetail", "PeriodGrade", "calculate_period_grade", "crossed_aggregations"]

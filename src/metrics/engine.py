# src/metrics/engine.py
# Motor de métricas: nota, trayectorias y tablas por dimensión
# ============================================================

"""
Orquesta el cálculo completo de métricas de un periodo.

El cálculo siempre se rehace desde el registro de sesiones: se eligen las
sesiones completadas del periodo (y del periodo anterior, para las
variaciones), se resuelven los eventos contra el catálogo vigente, se
puntúan, se aplica el filtro y se construyen la nota, las trayectorias y
las tablas por dimensión.

Ninguna función de este módulo lanza excepciones por datos vacíos,
huérfanos o filtrados por completo: el resultado siempre es válido.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from config.settings import METRICS_CONFIG, RESET_CONFIG
from src.contracts.catalog import Activity, BuenaObra, PersonType, Sin
from src.contracts.enums import NoteTargetType
from src.contracts.events import ExamSession
from src.contracts.notes import Note
from src.contracts.preferences import MetricsCalibration
from src.scoring import get_default_scorer
from src.scoring.event_scorer import EventScorer
from src.utils.datetime_utils import ensure_utc

from .calibration import CalibrationSuggestion, calculate_auto_calibration
from .counts import ItemCount, live_count, persisted_count
from .dimensions import (
    SIN_DIMENSIONS,
    DimensionTable,
    build_buena_obra_tables,
    build_sin_tables,
)
from .enrichment import (
    EnrichedBuenaObraEvent,
    EnrichedSinEvent,
    enrich_buena_obra_events,
    enrich_sin_events,
    select_sessions,
)
from .filters import MetricFilter
from .grade import PeriodGrade, calculate_period_grade
from .periods import PeriodConfig, PeriodPreset, previous_period, resolve_period
from .trajectories import TrajectoryData, build_grade_trajectory, build_trajectory

logger = logging.getLogger(__name__)


@dataclass
class TotalTrajectories:
    grade: TrajectoryData
    buenas_obras: TrajectoryData
    mortal_sins: TrajectoryData
    venial_sins: TrajectoryData


@dataclass
class NoteInPeriod:
    note_id: str
    target_type: NoteTargetType
    target_id: str
    name: str
    text: str
    created_at: datetime


@dataclass
class MetricsResult:
    """Todo lo que la vista de métricas necesita para un periodo."""

    period: PeriodConfig
    previous_period: PeriodConfig
    period_grade: PeriodGrade
    previous_grade: PeriodGrade
    total_trajectories: TotalTrajectories
    by_sin: Dict[str, TrajectoryData] = field(default_factory=dict)
    by_buena_obra: Dict[str, TrajectoryData] = field(default_factory=dict)
    by_dimension: Dict[str, Dict[str, TrajectoryData]] = field(default_factory=dict)
    dimensions: Dict[str, DimensionTable] = field(default_factory=dict)
    good_deed_dimensions: Dict[str, DimensionTable] = field(default_factory=dict)
    filtered_trajectory: Optional[TrajectoryData] = None
    notes_in_period: List[NoteInPeriod] = field(default_factory=list)
    calibration: Optional[CalibrationSuggestion] = None


def _pairs(events: Iterable[Any]) -> List[tuple]:
    return [(e.timestamp, e.score) for e in events]


def _total(events: Iterable[Any]) -> float:
    return sum(e.score for e in events)


def _split_grade_inputs(payloads: Sequence[Any]) -> tuple:
    sins = [p for p in payloads if isinstance(p, EnrichedSinEvent)]
    obras = [p for p in payloads if isinstance(p, EnrichedBuenaObraEvent)]
    return sins, obras


def _per_item(
    current: Sequence[Any],
    previous: Sequence[Any],
    key_of,
    label_of,
    period: PeriodConfig,
    higher_is_better: bool,
    config: Dict[str, Any],
) -> Dict[str, TrajectoryData]:
    grand_total = _total(current)
    keys: List[str] = []
    for event in list(current) + list(previous):
        key = key_of(event)
        if key not in keys:
            keys.append(key)

    series: Dict[str, TrajectoryData] = {}
    for key in keys:
        mine = [e for e in current if key_of(e) == key]
        before = [e for e in previous if key_of(e) == key]
        trajectory = build_trajectory(
            _pairs(mine),
            period,
            _total(before),
            category_total=grand_total,
            higher_is_better=higher_is_better,
            config=config,
        )
        trajectory.label = label_of(mine[0] if mine else before[0])
        series[key] = trajectory
    return series


def dimension_trajectories(
    dimension: str,
    current: Sequence[EnrichedSinEvent],
    previous: Sequence[EnrichedSinEvent],
    period: PeriodConfig,
    table: DimensionTable,
    config: Optional[Dict[str, Any]] = None,
) -> Dict[str, TrajectoryData]:
    """
    Una trayectoria por cada valor observado de una dimensión de pecados.

    El porcentaje de contribución se mide contra el total de la tabla de
    esa dimensión, de modo que los valores suman 100.
    """
    cfg = config or METRICS_CONFIG
    extract = SIN_DIMENSIONS[dimension]

    def _values(enriched: EnrichedSinEvent) -> set:
        return {getattr(v, "value", v) for v in extract(enriched.sin, enriched.event)}

    grand_total = table.total_score
    series: Dict[str, TrajectoryData] = {}
    for key, row in table.rows.items():
        mine = [e for e in current if key in _values(e)]
        before = [e for e in previous if key in _values(e)]
        trajectory = build_trajectory(
            _pairs(mine),
            period,
            _total(before),
            category_total=grand_total,
            config=cfg,
        )
        trajectory.label = row.label
        series[key] = trajectory
    return series


def notes_in_period(
    notes: Iterable[Note],
    period: PeriodConfig,
    sins: Iterable[Sin],
    buenas_obras: Iterable[BuenaObra],
) -> List[NoteInPeriod]:
    """Notas creadas dentro del periodo, con el nombre actual de su destino."""
    names = {
        NoteTargetType.SIN: {sin.id: sin.name for sin in sins},
        NoteTargetType.GOOD_WORK: {obra.id: obra.name for obra in buenas_obras},
    }
    selected = [
        NoteInPeriod(
            note_id=note.id,
            target_type=note.target_type,
            target_id=note.target_id,
            name=names[note.target_type].get(note.target_id, note.target_id),
            text=note.text,
            created_at=ensure_utc(note.created_at),
        )
        for note in notes
        if period.contains(note.created_at)
    ]
    return sorted(selected, key=lambda item: item.created_at, reverse=True)


def calculate_metrics(
    period: PeriodConfig,
    metric_filter: Optional[MetricFilter] = None,
    *,
    sins: Sequence[Sin],
    buenas_obras: Sequence[BuenaObra] = (),
    sessions: Sequence[ExamSession] = (),
    notes: Sequence[Note] = (),
    person_types: Sequence[PersonType] = (),
    activities: Sequence[Activity] = (),
    calibration: Optional[MetricsCalibration] = None,
    config: Optional[Dict[str, Any]] = None,
    scorer: Optional[EventScorer] = None,
) -> MetricsResult:
    """
    Calcula las métricas completas de ``period``.

    Args:
        period: Ventana del periodo actual.
        metric_filter: Filtro conjuntivo aplicado a todos los agregados.
        sins, buenas_obras: Catálogo vigente.
        sessions: Registro completo de sesiones.
        notes: Notas del usuario.
        person_types, activities: Entidades para rotular dimensiones.
        calibration: Preferencias de calibración; si se pasan, se sugiere
            un nuevo ``pass_rate_max``.
        config: ``METRICS_CONFIG`` o equivalente.
        scorer: Motor de puntuación; por defecto el configurado.
    """
    cfg = config or METRICS_CONFIG
    scorer = scorer or get_default_scorer()
    metric_filter = metric_filter or MetricFilter()
    previous = previous_period(period)

    current_sessions = select_sessions(sessions, period)
    previous_sessions = select_sessions(sessions, previous)

    all_sin_events = enrich_sin_events(current_sessions, sins, scorer)
    sin_events = metric_filter.apply_sins(all_sin_events)
    bo_events = metric_filter.apply_buenas_obras(
        enrich_buena_obra_events(current_sessions, buenas_obras, scorer)
    )
    prev_sin_events = metric_filter.apply_sins(
        enrich_sin_events(previous_sessions, sins, scorer)
    )
    prev_bo_events = metric_filter.apply_buenas_obras(
        enrich_buena_obra_events(previous_sessions, buenas_obras, scorer)
    )

    grade = calculate_period_grade(sin_events, bo_events, period.hours, cfg)
    prev_grade = calculate_period_grade(prev_sin_events, prev_bo_events, previous.hours, cfg)

    def _grade_of(payloads: Sequence[Any], window: PeriodConfig) -> float:
        bucket_sins, bucket_obras = _split_grade_inputs(payloads)
        return calculate_period_grade(bucket_sins, bucket_obras, window.hours, cfg).grade

    mortal = [e for e in sin_events if e.is_mortal_imputable]
    venial = [e for e in sin_events if not e.is_mortal_imputable]
    totals = TotalTrajectories(
        grade=build_grade_trajectory(
            [(e.timestamp, e) for e in list(sin_events) + list(bo_events)],
            period,
            _grade_of,
            prev_grade.grade,
            config=cfg,
        ),
        buenas_obras=build_trajectory(
            _pairs(bo_events),
            period,
            _total(prev_bo_events),
            higher_is_better=True,
            config=cfg,
        ),
        mortal_sins=build_trajectory(
            _pairs(mortal),
            period,
            _total(e for e in prev_sin_events if e.is_mortal_imputable),
            config=cfg,
        ),
        venial_sins=build_trajectory(
            _pairs(venial),
            period,
            _total(e for e in prev_sin_events if not e.is_mortal_imputable),
            config=cfg,
        ),
    )

    names: Mapping[str, Mapping[str, str]] = {
        "personType": {item.id: item.name for item in person_types},
        "activity": {item.id: item.name for item in activities},
    }
    dimensions = build_sin_tables(sin_events, names)

    result = MetricsResult(
        period=period,
        previous_period=previous,
        period_grade=grade,
        previous_grade=prev_grade,
        total_trajectories=totals,
        by_sin=_per_item(
            sin_events,
            prev_sin_events,
            lambda e: e.sin.id,
            lambda e: e.sin.name,
            period,
            False,
            cfg,
        ),
        by_buena_obra=_per_item(
            bo_events,
            prev_bo_events,
            lambda e: e.buena_obra.id,
            lambda e: e.buena_obra.name,
            period,
            True,
            cfg,
        ),
        by_dimension={
            dimension: dimension_trajectories(
                dimension, sin_events, prev_sin_events, period, table, cfg
            )
            for dimension, table in dimensions.items()
        },
        dimensions=dimensions,
        good_deed_dimensions=build_buena_obra_tables(bo_events, names),
        notes_in_period=notes_in_period(notes, period, sins, buenas_obras),
    )

    if not metric_filter.is_empty():
        result.filtered_trajectory = build_trajectory(
            _pairs(sin_events),
            period,
            _total(prev_sin_events),
            category_total=_total(all_sin_events),
            config=cfg,
        )

    if calibration is not None:
        history = enrich_sin_events(select_sessions(sessions), sins, scorer)
        result.calibration = calculate_auto_calibration(
            history, calibration, now=period.end, tz=cfg.get("timezone", "UTC")
        )

    logger.debug(
        f"📊 Métricas {period.label}: nota={grade.grade} "
        f"pecados={len(sin_events)} buenas_obras={len(bo_events)}"
    )
    return result


class MetricsEngine:
    """
    Calcula métricas leyendo el catálogo y el registro desde el almacén.

    ``store`` es un ``MagisStore`` (o cualquier objeto con los mismos
    repositorios). Las preferencias se leen una vez por cálculo y se pasan
    explícitamente al núcleo.
    """

    def __init__(
        self,
        store,
        config: Optional[Dict[str, Any]] = None,
        scorer=None,
        reset_config: Optional[Dict[str, Any]] = None,
    ):
        self.store = store
        self.config = config or METRICS_CONFIG
        self.reset_config = reset_config or RESET_CONFIG
        self.scorer = scorer or get_default_scorer()

    def resolve(
        self,
        preset: Union[PeriodPreset, str] = PeriodPreset.LAST_7_DAYS,
        now: Optional[datetime] = None,
        custom_start: Optional[datetime] = None,
        custom_end: Optional[datetime] = None,
    ) -> PeriodConfig:
        return resolve_period(
            preset,
            now=now,
            custom_start=custom_start,
            custom_end=custom_end,
            default_custom_days=int(self.config.get("default_custom_days", 7)),
        )

    def calculate(
        self,
        preset: Union[PeriodPreset, str] = PeriodPreset.LAST_7_DAYS,
        metric_filter: Optional[MetricFilter] = None,
        now: Optional[datetime] = None,
        custom_start: Optional[datetime] = None,
        custom_end: Optional[datetime] = None,
    ) -> MetricsResult:
        period = self.resolve(preset, now, custom_start, custom_end)
        preferences = self.store.preferences.get_preferences()
        return calculate_metrics(
            period,
            metric_filter,
            sins=self.store.catalog.get_sins(),
            buenas_obras=self.store.catalog.get_buenas_obras(),
            sessions=self.store.sessions.get_exam_sessions(),
            notes=self.store.notes.get_all_notes(),
            person_types=self.store.entities.get_person_types(),
            activities=self.store.entities.get_activities(),
            calibration=preferences.metrics_calibration,
            config=self.config,
            scorer=self.scorer,
        )

    def item_count(self, item, now: Optional[datetime] = None) -> ItemCount:
        return persisted_count(
            item, self.store.sessions.get_exam_sessions(), now, self.reset_config
        )

    def live_item_count(self, item, now: Optional[datetime] = None) -> int:
        """Contador visible durante el examen: lo persistido más la sesión abierta."""
        sessions = self.store.sessions.get_exam_sessions()
        current = self.store.sessions.get_in_progress_session()
        return live_count(item, sessions, current, now, self.reset_config)


__all__ = [
    "MetricsEngine",
    "MetricsResult",
    "NoteInPeriod",
    "TotalTrajectories",
    "calculate_metrics",
    "dimension_trajectories",
    "notes_in_period",
]

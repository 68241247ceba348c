# src/scoring/event_scorer.py
# Motor de puntuación de eventos de pecado y buenas obras
# ========================================================

"""
Convierte cada evento registrado en un puntaje normalizado y explicable.

El puntaje de un pecado es el producto de un peso base (según gravedad y
materia) por una serie de factores: término, categoría especial,
manifestación, atención, motivo, responsabilidad y agravantes opcionales.
El producto se acota en ``max_raw`` y se lleva a la escala 0-100, para
luego aplicar el factor de condicionantes guardado en el evento, las
unidades por toque y el incremento del evento.

El puntaje no se muestra como número al usuario: alimenta las notas de
periodo, las trayectorias y las tablas por dimensión.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from config.settings import SCORING_CONFIG
from src.contracts.catalog import BuenaObra, Sin
from src.contracts.enums import (
    AttentionLevel,
    Gravity,
    MateriaTipo,
    MotiveType,
    Responsibility,
)
from src.contracts.events import (
    BuenaObraEvent,
    CondicionantesSnapshot,
    SinEvent,
)

from .condicionantes import (
    BUENA_OBRA_KIND,
    SIN_KIND,
    calculate_condicionantes_factor,
)

logger = logging.getLogger(__name__)


@dataclass
class ScoreBreakdown:
    """Desglose completo del puntaje de un evento de pecado."""

    p_base: float
    term_factor: float
    special_factor: float
    special_reasons: List[str]
    manifestation_factor: float
    attention_factor: float
    motive_factor: float
    responsibility_factor: float
    flags_factor: float
    raw_score: float
    capped_score: float
    condicionantes_factor: float
    applied_condicionantes: List[str]
    condicionantes_k: int
    unit_per_tap: float
    count_increment: int
    normalized_score: float
    is_mortal_imputable: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GoodWorkScoreBreakdown:
    base: float
    sacrifice_factor: float
    condicionantes_factor: float
    applied_condicionantes: List[str]
    condicionantes_k: int
    count_increment: int
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AggregationStatus:
    """Acumulación de veniales de un pecado hacia materia grave."""

    sin_id: str
    total_units: float = 0.0
    threshold: float = 0.0
    has_reached_mortal: bool = False
    percentage_to_mortal: float = 0.0


@dataclass
class SessionScore:
    total_score: float = 0.0
    event_count: int = 0
    average_score: float = 0.0
    max_score: float = 0.0
    min_score: float = 0.0


class EventScorer:
    """
    Puntúa eventos con los multiplicadores configurados.

    Todas las magnitudes vienen de ``SCORING_CONFIG`` (o del diccionario
    recibido), de modo que pueden calibrarse sin tocar el código.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or SCORING_CONFIG
        self.max_raw = float(self.config["max_raw"])
        self.scale = float(self.config.get("normalization_scale", 100.0))
        self._special = self.config["special_factors"]
        self._condicionantes = self.config["condicionantes"]
        logger.debug(f"🧮 EventScorer inicializado (max_raw={self.max_raw})")

    # ------------------------------------------------------------------
    # Factores del pecado (catálogo)
    # ------------------------------------------------------------------

    def base_weight(self, sin: Sin) -> float:
        if sin.manual_weight_override is not None and sin.manual_weight_override > 0:
            return float(sin.manual_weight_override)
        weights = self.config["base_weights"]
        if Gravity.MORTAL in sin.gravities:
            if MateriaTipo.EX_TOTO in sin.materia_tipo:
                return float(weights["mortal_ex_toto"])
            return float(weights["mortal_other"])
        return float(weights["venial"])

    def term_factor(self, sin: Sin) -> float:
        factors = self.config["term_factors"]
        present = [float(factors[term.value]) for term in sin.terms]
        return max(present) if present else 1.0

    def special_factor(self, sin: Sin) -> tuple:
        """Devuelve ``(factor, motivos)`` por categorías especiales del pecado."""
        tags = [tag.lower() for tag in sin.tags]
        reasons: List[str] = []
        factor = 1.0

        def _tagged(keywords: Sequence[str]) -> bool:
            return any(keyword in tag for tag in tags for keyword in keywords)

        if _tagged(self._special["holy_spirit_keywords"]):
            factor *= float(self._special["holy_spirit"])
            reasons.append("contra el Espíritu Santo")
        if _tagged(self._special["cries_to_heaven_keywords"]):
            factor *= float(self._special["cries_to_heaven"])
            reasons.append("clama al cielo")
        if sin.capital_sins:
            factor *= float(self._special["capital_sin"])
            reasons.append("pecado capital")

        return min(factor, float(self._special["cap"])), reasons

    def manifestation_factor(self, sin: Sin) -> float:
        factors = self.config["manifestation_factors"]
        present = [float(factors[item.value]) for item in sin.manifestations]
        return max(present) if present else 1.0

    # ------------------------------------------------------------------
    # Factores del evento
    # ------------------------------------------------------------------

    def flags_factor(self, event: SinEvent) -> float:
        factors = self.config["flag_factors"]
        factor = 1.0
        for flag in event.optional_flags.active():
            factor *= float(factors[flag])
        return factor

    def snapshot_condicionantes(
        self, item: Any, active_condicionantes: Iterable[str]
    ) -> CondicionantesSnapshot:
        """
        Congela los condicionantes aplicables al registrar un evento.

        ``item`` puede ser un ``Sin`` o una ``BuenaObra``; el tipo decide si
        el factor atenúa o amplifica.
        """
        kind = BUENA_OBRA_KIND if isinstance(item, BuenaObra) else SIN_KIND
        return calculate_condicionantes_factor(
            active_condicionantes,
            item.condicionantes,
            kind,
            sin_base=float(self._condicionantes["sin_base"]),
            good_work_base=float(self._condicionantes["good_work_base"]),
        )

    def _resolve_condicionantes(
        self,
        item: Any,
        snapshot: Optional[CondicionantesSnapshot],
        active_condicionantes: Optional[Iterable[str]],
    ) -> CondicionantesSnapshot:
        if snapshot is not None:
            return snapshot
        if active_condicionantes is not None and item.condicionantes:
            return self.snapshot_condicionantes(item, active_condicionantes)
        return CondicionantesSnapshot()

    @staticmethod
    def is_mortal_imputable(sin: Sin, event: SinEvent) -> bool:
        """Materia grave, plena advertencia, responsabilidad formal y sin ignorancia."""
        return (
            Gravity.MORTAL in sin.gravities
            and event.attention == AttentionLevel.DELIBERADO
            and event.responsibility == Responsibility.FORMAL
            and event.motive != MotiveType.IGNORANCIA
        )

    # ------------------------------------------------------------------
    # Puntajes
    # ------------------------------------------------------------------

    def score_event(
        self,
        sin: Sin,
        event: SinEvent,
        active_condicionantes: Optional[Iterable[str]] = None,
    ) -> ScoreBreakdown:
        """
        Calcula el puntaje de un evento de pecado.

        Args:
            sin: Definición vigente del pecado.
            event: Evento registrado, con su snapshot de condicionantes.
            active_condicionantes: Perfil del sujeto; solo se usa si el
                evento no trae snapshot propio.

        Returns:
            ScoreBreakdown con cada factor y el puntaje normalizado.
        """
        p_base = self.base_weight(sin)
        term_factor = self.term_factor(sin)
        special_factor, special_reasons = self.special_factor(sin)
        manifestation_factor = self.manifestation_factor(sin)
        attention_factor = float(self.config["attention_factors"][event.attention.value])
        motive_factor = float(self.config["motive_factors"][event.motive.value])
        responsibility_factor = float(
            self.config["responsibility_factors"][event.responsibility.value]
        )
        flags_factor = self.flags_factor(event)

        raw_score = (
            p_base
            * term_factor
            * special_factor
            * manifestation_factor
            * attention_factor
            * motive_factor
            * responsibility_factor
            * flags_factor
        )
        capped_score = min(raw_score, self.max_raw)

        snapshot = self._resolve_condicionantes(
            sin, event.condicionantes, active_condicionantes
        )
        normalized = (
            self.scale
            * (capped_score / self.max_raw)
            * snapshot.factor
            * sin.unit_per_tap
            * event.count_increment
        )

        return ScoreBreakdown(
            p_base=p_base,
            term_factor=term_factor,
            special_factor=special_factor,
            special_reasons=special_reasons,
            manifestation_factor=manifestation_factor,
            attention_factor=attention_factor,
            motive_factor=motive_factor,
            responsibility_factor=responsibility_factor,
            flags_factor=flags_factor,
            raw_score=raw_score,
            capped_score=capped_score,
            condicionantes_factor=snapshot.factor,
            applied_condicionantes=list(snapshot.applied),
            condicionantes_k=snapshot.k,
            unit_per_tap=sin.unit_per_tap,
            count_increment=event.count_increment,
            normalized_score=max(0.0, normalized),
            is_mortal_imputable=self.is_mortal_imputable(sin, event),
        )

    def score_buena_obra_event(
        self,
        obra: BuenaObra,
        event: BuenaObraEvent,
        active_condicionantes: Optional[Iterable[str]] = None,
    ) -> GoodWorkScoreBreakdown:
        """Puntaje de una buena obra: base x sacrificio x condicionantes x cantidad."""
        good_works = self.config["good_works"]
        if obra.base_good_override is not None and obra.base_good_override > 0:
            base = float(obra.base_good_override)
        else:
            base = float(good_works["base"])
        sacrifice_factor = float(good_works["sacrifice"][obra.sacrificio_relativo.value])
        snapshot = self._resolve_condicionantes(
            obra, event.condicionantes, active_condicionantes
        )
        score = base * sacrifice_factor * snapshot.factor * event.count_increment
        return GoodWorkScoreBreakdown(
            base=base,
            sacrifice_factor=sacrifice_factor,
            condicionantes_factor=snapshot.factor,
            applied_condicionantes=list(snapshot.applied),
            condicionantes_k=snapshot.k,
            count_increment=event.count_increment,
            score=max(0.0, score),
        )

    # ------------------------------------------------------------------
    # Agregados
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_aggregation(sin: Sin, events: Iterable[SinEvent]) -> AggregationStatus:
        """
        Suma las unidades de un pecado venial acumulable.

        Si el pecado no admite acumulación se devuelve un estado vacío.
        """
        if not sin.can_aggregate_to_mortal:
            return AggregationStatus(sin_id=sin.id)

        total_units = sum(
            event.count_increment * sin.unit_per_tap
            for event in events
            if event.sin_id == sin.id
        )
        threshold = sin.mortal_threshold_units
        return AggregationStatus(
            sin_id=sin.id,
            total_units=total_units,
            threshold=threshold,
            has_reached_mortal=total_units >= threshold,
            percentage_to_mortal=min(total_units / threshold * 100.0, 100.0),
        )

    def session_score(self, sins: Iterable[Sin], events: Iterable[SinEvent]) -> SessionScore:
        """Totales de un conjunto de eventos; los huérfanos no cuentan."""
        scores = self._score_list(sins, events)
        if not scores:
            return SessionScore()
        total = sum(scores)
        return SessionScore(
            total_score=total,
            event_count=len(scores),
            average_score=total / len(scores),
            max_score=max(scores),
            min_score=min(scores),
        )

    def _score_list(self, sins: Iterable[Sin], events: Iterable[SinEvent]) -> List[float]:
        catalog = {sin.id: sin for sin in sins}
        scores: List[float] = []
        for event in events:
            sin = catalog.get(event.sin_id)
            if sin is None:
                logger.debug(f"Evento huérfano omitido: {event.id} -> {event.sin_id}")
                continue
            scores.append(self.score_event(sin, event).normalized_score)
        return scores


__all__ = [
    "AggregationStatus",
    "EventScorer",
    "GoodWorkScoreBreakdown",
    "ScoreBreakdown",
    "SessionScore",
]

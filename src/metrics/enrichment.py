"""Resolve logged events against the current catalog and attach their scores."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from src.contracts.catalog import BuenaObra, Sin
from src.contracts.events import BuenaObraEvent, ExamSession, SinEvent
from src.scoring.event_scorer import EventScorer, GoodWorkScoreBreakdown, ScoreBreakdown
from src.utils.datetime_utils import ensure_utc

from .periods import PeriodConfig

logger = logging.getLogger(__name__)


@dataclass
class EnrichedSinEvent:
    event: SinEvent
    sin: Sin
    session_id: str
    breakdown: ScoreBreakdown

    @property
    def score(self) -> float:
        return self.breakdown.normalized_score

    @property
    def is_mortal_imputable(self) -> bool:
        return self.breakdown.is_mortal_imputable

    @property
    def timestamp(self) -> datetime:
        return ensure_utc(self.event.timestamp)


@dataclass
class EnrichedBuenaObraEvent:
    event: BuenaObraEvent
    buena_obra: BuenaObra
    session_id: str
    breakdown: GoodWorkScoreBreakdown

    @property
    def score(self) -> float:
        return self.breakdown.score

    @property
    def timestamp(self) -> datetime:
        return ensure_utc(self.event.timestamp)


def select_sessions(
    sessions: Iterable[ExamSession], period: Optional[PeriodConfig] = None
) -> List[ExamSession]:
    """Completed sessions whose start falls inside ``period``."""
    selected = []
    for session in sessions:
        if not session.is_completed:
            continue
        if period is not None and not period.contains(session.started_at):
            continue
        selected.append(session)
    return selected


def enrich_sin_events(
    sessions: Iterable[ExamSession], sins: Iterable[Sin], scorer: EventScorer
) -> List[EnrichedSinEvent]:
    """
    Score every sin event whose sin still exists.

    Events pointing at a deleted sin are skipped. Only the condicionantes
    snapshot stored on the event is used; the live profile is never read.
    """
    catalog = {sin.id: sin for sin in sins}
    enriched: List[EnrichedSinEvent] = []
    orphans = 0
    for session in sessions:
        for event in session.events:
            sin = catalog.get(event.sin_id)
            if sin is None:
                orphans += 1
                continue
            enriched.append(
                EnrichedSinEvent(event, sin, session.id, scorer.score_event(sin, event))
            )
    if orphans:
        logger.debug("Skipped %d orphaned sin events", orphans)
    return enriched


def enrich_buena_obra_events(
    sessions: Iterable[ExamSession],
    buenas_obras: Iterable[BuenaObra],
    scorer: EventScorer,
) -> List[EnrichedBuenaObraEvent]:
    catalog = {obra.id: obra for obra in buenas_obras}
    enriched: List[EnrichedBuenaObraEvent] = []
    for session in sessions:
        for event in session.buena_obra_events:
            obra = catalog.get(event.buena_obra_id)
            if obra is None:
                continue
            enriched.append(
                EnrichedBuenaObraEvent(
                    event, obra, session.id, scorer.score_buena_obra_event(obra, event)
                )
            )
    return enriched


__all__ = [
    "EnrichedBuenaObraEvent",
    "EnrichedSinEvent",
    "enrich_buena_obra_events",
    "enrich_sin_events",
    "select_sessions",
]

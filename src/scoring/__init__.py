"""Scoring package exports."""

from typing import Any, Dict, List, Optional

from config import SCORING_CONFIG

from .condicionantes import (
    SEED_CONDICIONANTES,
    calculate_condicionantes_factor,
    get_all_condicionantes,
    migrate_condicionantes,
)
from .event_scorer import (
    AggregationStatus,
    EventScorer,
    GoodWorkScoreBreakdown,
    ScoreBreakdown,
    SessionScore,
)

_default_scorer: Optional[EventScorer] = None


def create_scorer(config: Optional[Dict[str, Any]] = None) -> EventScorer:
    """Factory returning a scorer bound to the given (or configured) multipliers."""
    return EventScorer(config or SCORING_CONFIG)


def get_default_scorer() -> EventScorer:
    """Return the shared scorer built from configuration defaults."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = create_scorer()
    return _default_scorer


def score_multiple_events(sins, events, scorer=None) -> List[ScoreBreakdown]:
    """Score every resolvable event; orphaned events are skipped."""
    scorer = scorer or get_default_scorer()
    catalog = {sin.id: sin for sin in sins}
    results = []
    for event in events:
        sin = catalog.get(event.sin_id)
        if sin is not None:
            results.append(scorer.score_event(sin, event))
    return results


__all__ = [
    "AggregationStatus",
    "EventScorer",
    "GoodWorkScoreBreakdown",
    "SEED_CONDICIONANTES",
    "ScoreBreakdown",
    "SessionScore",
    "calculate_condicionantes_factor",
    "create_scorer",
    "get_all_condicionantes",
    "get_default_scorer",
    "migrate_condicionantes",
    "score_multiple_events",
]

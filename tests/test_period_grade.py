"""Period grade: full mark minus sins, capped recovery and the mortal ceiling."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.metrics.enrichment import enrich_buena_obra_events, enrich_sin_events
from src.metrics.grade import calculate_period_grade
from src.scoring import create_scorer
from tests.magis_factories import (
    NOW,
    completed_session,
    make_mortal_sin,
    make_obra,
    make_sin,
    obra_event,
    sin_event,
)

SCORER = create_scorer()


def _grade(sins, obras, sin_events=(), obra_events=()):
    session = completed_session(NOW, sin_events, obra_events)
    return calculate_period_grade(
        enrich_sin_events([session], sins, SCORER),
        enrich_buena_obra_events([session], obras, SCORER),
        period_hours=168.0,
    )


def test_empty_period_gets_full_mark() -> None:
    grade = _grade([], [])
    assert grade.grade == 10.0
    assert grade.passed
    assert grade.negative_points == 0.0


def test_sins_subtract_points() -> None:
    sin = make_sin(manual_weight_override=165)
    grade = _grade([sin], [], [sin_event(sin.id, NOW, count_increment=3)])
    assert grade.negative_points == pytest.approx(30.0)
    assert grade.grade == 1.0
    assert not grade.passed


def test_good_deeds_recover_but_never_exceed_full_mark() -> None:
    sin = make_sin(manual_weight_override=165)
    obra = make_obra(base_good_override=200)
    grade = _grade([sin], [obra], [sin_event(sin.id, NOW)], [obra_event(obra.id, NOW)])
    assert grade.grade == 10.0
    assert grade.positive_points == pytest.approx(20.0)


def test_good_deeds_alone_do_not_raise_the_grade() -> None:
    obra = make_obra(base_good_override=50)
    grade = _grade([], [obra], obra_events=[obra_event(obra.id, NOW)])
    assert grade.grade == 10.0


def test_mortal_event_caps_grade_and_fails() -> None:
    sin = make_mortal_sin(manual_weight_override=1)
    grade = _grade([sin], [], [sin_event(sin.id, NOW)])
    assert grade.grade == 4.9
    assert not grade.passed
    assert grade.mortal_count == 1
    assert "mortal" in grade.explanation


def test_crossed_aggregation_triggers_ceiling() -> None:
    sin = make_sin(can_aggregate_to_mortal=True, mortal_threshold_units=2)
    grade = _grade([sin], [], [sin_event(sin.id, NOW), sin_event(sin.id, NOW)])
    assert grade.aggregations_crossed == 1
    assert grade.grade == 4.9
    assert not grade.passed


def test_grade_is_floored_at_one() -> None:
    sin = make_mortal_sin(manual_weight_override=165)
    grade = _grade([sin], [], [sin_event(sin.id, NOW, count_increment=50)])
    assert grade.grade == 1.0


def test_pass_threshold_at_five() -> None:
    sin = make_sin(manual_weight_override=16.5)
    passing = _grade([sin], [], [sin_event(sin.id, NOW)])
    assert passing.grade == 9.0
    assert passing.passed
    exactly = _grade([sin], [], [sin_event(sin.id, NOW, count_increment=5)])
    assert exactly.grade == 5.0
    assert exactly.passed


def test_details_merge_per_item() -> None:
    sin = make_sin(manual_weight_override=165)
    grade = _grade([sin], [], [sin_event(sin.id, NOW), sin_event(sin.id, NOW, count_increment=2)])
    assert len(grade.pecados_detail) == 1
    assert grade.pecados_detail[0].count == 3
    assert grade.pecados_detail[0].points == pytest.approx(30.0)

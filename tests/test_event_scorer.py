"""Scoring rules for sin and good-deed events."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.contracts import CondicionantesSnapshot, OptionalFlags
from src.contracts.enums import (
    AttentionLevel,
    Gravity,
    Manifestation,
    MateriaTipo,
    MotiveType,
    Responsibility,
    SacrificioRelativo,
    Term,
)
from src.scoring import EventScorer, create_scorer, score_multiple_events
from tests.magis_factories import NOW, make_mortal_sin, make_obra, make_sin, obra_event, sin_event

VENIAL_SCORE = 100 * 10 / 165


@pytest.fixture
def scorer() -> EventScorer:
    return create_scorer()


def test_plain_venial_event_scores_base_over_max_raw(scorer: EventScorer) -> None:
    breakdown = scorer.score_event(make_sin(), sin_event("sin-1", NOW))
    assert breakdown.p_base == 10
    assert breakdown.raw_score == pytest.approx(10)
    assert breakdown.normalized_score == pytest.approx(VENIAL_SCORE)
    assert breakdown.condicionantes_factor == 1.0
    assert not breakdown.is_mortal_imputable


@pytest.mark.parametrize(
    ("materia", "expected_base"),
    [([MateriaTipo.EX_TOTO], 80), ([MateriaTipo.EX_GENERE], 60), ([], 60)],
)
def test_mortal_base_weight_depends_on_materia(
    scorer: EventScorer, materia: list, expected_base: float
) -> None:
    sin = make_sin(gravities=[Gravity.MORTAL], materia_tipo=materia)
    assert scorer.base_weight(sin) == expected_base


def test_manual_override_replaces_base_weight(scorer: EventScorer) -> None:
    sin = make_mortal_sin(manual_weight_override=25)
    assert scorer.base_weight(sin) == 25
    assert scorer.base_weight(make_sin(manual_weight_override=0)) == 10


def test_highest_term_factor_wins(scorer: EventScorer) -> None:
    sin = make_sin(terms=[Term.CONTRA_SI_MISMO, Term.CONTRA_DIOS])
    assert scorer.term_factor(sin) == pytest.approx(1.10)


def test_special_factor_is_capped(scorer: EventScorer) -> None:
    sin = make_sin(
        tags=["Contra el Espíritu Santo", "Clama al cielo"],
        capital_sins=["Ira"],
    )
    factor, reasons = scorer.special_factor(sin)
    assert factor == pytest.approx(2.0)
    assert len(reasons) == 3


def test_raw_score_is_capped_at_max_raw(scorer: EventScorer) -> None:
    sin = make_mortal_sin(
        terms=[Term.CONTRA_DIOS],
        manifestations=[Manifestation.EXTERNO],
        capital_sins=["Soberbia"],
    )
    event = sin_event(
        sin.id,
        NOW,
        motive=MotiveType.MALICIA,
        optional_flags=OptionalFlags(escandalo_grave=True),
    )
    breakdown = scorer.score_event(sin, event)
    assert breakdown.raw_score > 165
    assert breakdown.capped_score == pytest.approx(165)
    assert breakdown.normalized_score == pytest.approx(100)


def test_subjective_factors_multiply(scorer: EventScorer) -> None:
    event = sin_event(
        "sin-1",
        NOW,
        attention=AttentionLevel.SEMIDELIBERADO,
        motive=MotiveType.IGNORANCIA,
        responsibility=Responsibility.MATERIAL,
    )
    breakdown = scorer.score_event(make_sin(), event)
    assert breakdown.raw_score == pytest.approx(10 * 0.6 * 0.7 * 0.25)


def test_count_and_unit_per_tap_scale_linearly(scorer: EventScorer) -> None:
    sin = make_sin(unit_per_tap=2.0)
    single = scorer.score_event(sin, sin_event(sin.id, NOW)).normalized_score
    triple = scorer.score_event(sin, sin_event(sin.id, NOW, count_increment=3))
    assert triple.normalized_score == pytest.approx(single * 3)
    assert single == pytest.approx(VENIAL_SCORE * 2)


@pytest.mark.parametrize(
    ("attention", "responsibility", "motive", "expected"),
    [
        (AttentionLevel.DELIBERADO, Responsibility.FORMAL, MotiveType.FRAGILIDAD, True),
        (AttentionLevel.SEMIDELIBERADO, Responsibility.FORMAL, MotiveType.FRAGILIDAD, False),
        (AttentionLevel.DELIBERADO, Responsibility.MATERIAL, MotiveType.MALICIA, False),
        (AttentionLevel.DELIBERADO, Responsibility.FORMAL, MotiveType.IGNORANCIA, False),
    ],
)
def test_mortal_imputability(attention, responsibility, motive, expected) -> None:
    sin = make_mortal_sin()
    event = sin_event(
        sin.id, NOW, attention=attention, responsibility=responsibility, motive=motive
    )
    assert EventScorer.is_mortal_imputable(sin, event) is expected


def test_venial_sin_is_never_mortal_imputable() -> None:
    assert not EventScorer.is_mortal_imputable(make_sin(), sin_event("sin-1", NOW))


def test_stored_snapshot_wins_over_live_profile(scorer: EventScorer) -> None:
    sin = make_sin(condicionantes=["Salud crónica", "Crisis económica"])
    frozen = CondicionantesSnapshot(applied=["Salud crónica"], k=1, factor=0.8)
    event = sin_event(sin.id, NOW, condicionantes=frozen)
    breakdown = scorer.score_event(sin, event, ["Salud crónica", "Crisis económica"])
    assert breakdown.condicionantes_factor == pytest.approx(0.8)
    assert breakdown.normalized_score == pytest.approx(VENIAL_SCORE * 0.8)


def test_profile_used_only_when_event_has_no_snapshot(scorer: EventScorer) -> None:
    sin = make_sin(condicionantes=["Salud crónica", "Crisis económica"])
    event = sin_event(sin.id, NOW)
    with_profile = scorer.score_event(sin, event, ["Salud crónica", "Crisis económica"])
    without_profile = scorer.score_event(sin, event)
    assert with_profile.condicionantes_k == 2
    assert with_profile.condicionantes_factor == pytest.approx(0.64)
    assert without_profile.condicionantes_factor == 1.0


def test_good_deed_score(scorer: EventScorer) -> None:
    obra = make_obra(base_good_override=20, sacrificio_relativo=SacrificioRelativo.ALTO)
    breakdown = scorer.score_buena_obra_event(obra, obra_event(obra.id, NOW, count_increment=2))
    assert breakdown.score == pytest.approx(20 * 1.5 * 2)


def test_good_deed_condicionantes_amplify(scorer: EventScorer) -> None:
    obra = make_obra(condicionantes=["Salud crónica"])
    breakdown = scorer.score_buena_obra_event(obra, obra_event(obra.id, NOW), ["Salud crónica"])
    assert breakdown.score == pytest.approx(10 * 1.2)


def test_aggregation_reaches_mortal_threshold() -> None:
    sin = make_sin(can_aggregate_to_mortal=True, mortal_threshold_units=3)
    events = [sin_event(sin.id, NOW, count_increment=2), sin_event(sin.id, NOW)]
    status = EventScorer.calculate_aggregation(sin, events)
    assert status.total_units == 3
    assert status.has_reached_mortal
    assert status.percentage_to_mortal == pytest.approx(100)


def test_aggregation_disabled_returns_empty_status() -> None:
    status = EventScorer.calculate_aggregation(make_sin(), [sin_event("sin-1", NOW)])
    assert status.total_units == 0
    assert not status.has_reached_mortal


def test_orphaned_events_are_skipped(scorer: EventScorer) -> None:
    events = [sin_event("sin-1", NOW), sin_event("deleted", NOW)]
    results = score_multiple_events([make_sin()], events, scorer)
    assert len(results) == 1
    session = scorer.session_score([make_sin()], events)
    assert session.event_count == 1
    assert session.total_score == pytest.approx(VENIAL_SCORE)

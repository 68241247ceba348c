from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.contracts.enums import AttentionLevel, Gravity, MotiveType, Responsibility, Term
from src.metrics.enrichment import enrich_buena_obra_events, enrich_sin_events
from src.metrics.grade import calculate_period_grade
from src.metrics.periods import PeriodPreset, resolve_period
from src.metrics.trajectories import build_trajectory
from src.metrics.variation import VariationType, calculate_variation, round1
from src.scoring import SEED_CONDICIONANTES, create_scorer
from tests.magis_factories import NOW, completed_session, make_obra, make_sin, obra_event, sin_event

SCORER = create_scorer()
PERIOD = resolve_period(PeriodPreset.LAST_30_DAYS, now=NOW)

sins_strategy = st.builds(
    lambda terms, gravity, override, unit: make_sin(
        "s",
        terms=terms,
        gravities=[gravity],
        manual_weight_override=override,
        unit_per_tap=unit,
    ),
    st.lists(st.sampled_from(list(Term)), min_size=1, max_size=3),
    st.sampled_from(list(Gravity)),
    st.one_of(st.none(), st.floats(min_value=0.5, max_value=400)),
    st.floats(min_value=0.1, max_value=5),
)

events_strategy = st.builds(
    lambda attention, motive, responsibility, count: sin_event(
        "s",
        NOW,
        attention=attention,
        motive=motive,
        responsibility=responsibility,
        count_increment=count,
    ),
    st.sampled_from(list(AttentionLevel)),
    st.sampled_from(list(MotiveType)),
    st.sampled_from(list(Responsibility)),
    st.integers(min_value=1, max_value=20),
)


@given(sins_strategy, events_strategy)
@settings(max_examples=150)
def test_normalized_score_is_bounded_by_the_raw_cap(sin, event) -> None:
    breakdown = SCORER.score_event(sin, event)
    assert breakdown.capped_score <= 165.0
    ceiling = 100.0 * sin.unit_per_tap * event.count_increment
    assert 0.0 <= breakdown.normalized_score <= ceiling + 1e-9


@given(sins_strategy, events_strategy, st.permutations(list(SEED_CONDICIONANTES)))
@settings(max_examples=100)
def test_each_matching_condicionante_lowers_the_sin_score(sin, event, order) -> None:
    sin = sin.model_copy(update={"condicionantes": list(SEED_CONDICIONANTES)})
    scores = []
    for k in range(len(order) + 1):
        snapshot = SCORER.snapshot_condicionantes(sin, order[:k])
        assert snapshot.k == k
        scored = SCORER.score_event(sin, event.model_copy(update={"condicionantes": snapshot}))
        scores.append(scored.normalized_score)
    assert all(later < earlier for earlier, later in zip(scores, scores[1:]))


@given(
    st.integers(min_value=1, max_value=20),
    st.one_of(st.none(), st.floats(min_value=0.5, max_value=100)),
    st.permutations(list(SEED_CONDICIONANTES)),
)
@settings(max_examples=100)
def test_each_matching_condicionante_raises_the_good_deed_score(count, base, order) -> None:
    obra = make_obra("o", condicionantes=list(SEED_CONDICIONANTES), base_good_override=base)
    event = obra_event("o", NOW, count_increment=count)
    scores = []
    for k in range(len(order) + 1):
        snapshot = SCORER.snapshot_condicionantes(obra, order[:k])
        scored = SCORER.score_buena_obra_event(obra, event.model_copy(update={"condicionantes": snapshot}))
        scores.append(scored.score)
    assert all(later > earlier for earlier, later in zip(scores, scores[1:]))


@given(
    st.lists(
        st.tuples(
            st.integers(min_value=-5 * 24, max_value=40 * 24),
            st.floats(min_value=0, max_value=500, allow_nan=False),
        ),
        max_size=40,
    )
)
@settings(max_examples=100)
def test_bucket_values_add_up_to_the_total(entries) -> None:
    scored = [(PERIOD.start + timedelta(hours=hours), value) for hours, value in entries]
    trajectory = build_trajectory(scored, PERIOD)
    assert abs(sum(p.value for p in trajectory.points) - trajectory.total_score) < 1e-6
    assert trajectory.event_count == len(entries)


@given(
    st.lists(st.tuples(sins_strategy, events_strategy), max_size=8),
    st.lists(st.integers(min_value=1, max_value=10), max_size=5),
)
@settings(max_examples=100)
def test_grade_stays_within_the_scale(pairs, deed_counts) -> None:
    sins = []
    events = []
    for index, (sin, event) in enumerate(pairs):
        sin_id = f"s{index}"
        sins.append(sin.model_copy(update={"id": sin_id}))
        events.append(event.model_copy(update={"sin_id": sin_id}))
    obra = make_obra("o")
    deeds = [obra_event("o", NOW, count_increment=count) for count in deed_counts]
    session = completed_session(NOW, events, deeds)

    grade = calculate_period_grade(
        enrich_sin_events([session], sins, SCORER),
        enrich_buena_obra_events([session], [obra], SCORER),
    )
    assert 1.0 <= grade.grade <= 10.0
    assert grade.grade == round1(grade.grade)
    if grade.mortal_count or grade.aggregations_crossed:
        assert grade.grade <= 4.9
        assert not grade.passed


@given(
    st.floats(min_value=0, max_value=1e6, allow_nan=False),
    st.floats(min_value=0, max_value=1e6, allow_nan=False),
)
def test_variation_direction_mirrors_for_higher_is_better(current, previous) -> None:
    lower = calculate_variation(current, previous).type
    higher = calculate_variation(current, previous, higher_is_better=True).type
    mirrored = {
        VariationType.PROGRESS: VariationType.REGRESSION,
        VariationType.REGRESSION: VariationType.PROGRESS,
        VariationType.STABLE: VariationType.STABLE,
    }
    assert higher is mirrored[lower]
    if current == previous:
        assert lower is VariationType.STABLE


@given(st.floats(min_value=-1e6, max_value=1e6, allow_nan=False))
def test_round1_is_idempotent_and_never_negative_zero(value) -> None:
    rounded = round1(value)
    assert round1(rounded) == rounded
    assert abs(rounded - value) <= 0.05 + 1e-9
    if rounded == 0:
        assert str(rounded) == "0.0"

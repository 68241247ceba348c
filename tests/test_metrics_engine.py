"""End-to-end metrics over an in-memory event log."""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.contracts import ExamSession, MetricsCalibration, Note
from src.contracts.enums import NoteTargetType, ResetCycle, Term
from src.metrics import MetricFilter, MetricsEngine, PeriodPreset, calculate_metrics, resolve_period
from src.metrics.variation import VariationType
from src.scoring import create_scorer
from src.storage import DatabaseManager, MagisStore
from tests.magis_factories import (
    NOW,
    completed_session,
    make_mortal_sin,
    make_obra,
    make_sin,
    obra_event,
    sin_event,
)

LIE = make_sin("lie", manual_weight_override=16.5)
SLOTH = make_sin("sloth", manual_weight_override=15, capital_sins=["Acidia"])
MURDER = make_mortal_sin("murder", terms=[Term.CONTRA_PROJIMO])
PRAYER = make_obra("prayer", base_good_override=5)

PERIOD = resolve_period(PeriodPreset.LAST_7_DAYS, now=NOW)


def _sessions():
    day = timedelta(days=1)
    return [
        completed_session(
            NOW - 2 * day,
            [sin_event("lie", NOW - 2 * day), sin_event("sloth", NOW - 2 * day)],
            [obra_event("prayer", NOW - 2 * day)],
        ),
        completed_session(NOW - 9 * day, [sin_event("lie", NOW - 9 * day, count_increment=3)]),
        completed_session(NOW - day, [sin_event("ghost", NOW - day)]),
    ]


def test_grade_and_totals_for_the_period() -> None:
    result = calculate_metrics(
        PERIOD, sins=[LIE, SLOTH, MURDER], buenas_obras=[PRAYER], sessions=_sessions()
    )
    assert result.period_grade.negative_points == pytest.approx(2.0)
    assert result.period_grade.grade == 8.5
    assert result.previous_grade.grade == 7.0
    totals = result.total_trajectories
    assert totals.venial_sins.total_score == pytest.approx(20.0)
    assert totals.venial_sins.variation.type is VariationType.PROGRESS
    assert totals.mortal_sins.total_score == 0.0
    assert totals.buenas_obras.total_score == pytest.approx(5.0)
    assert totals.grade.total_score == 8.5
    assert totals.grade.variation.type is VariationType.PROGRESS


def test_per_item_trajectories_include_previous_only_items() -> None:
    result = calculate_metrics(PERIOD, sins=[LIE, SLOTH], sessions=_sessions())
    assert set(result.by_sin) == {"lie", "sloth"}
    assert result.by_sin["lie"].total_score == pytest.approx(10.0)
    assert result.by_sin["lie"].contribution_percent == pytest.approx(50.0)
    assert result.by_sin["lie"].label == "Pecado lie"


def test_filter_applies_to_grade_and_dimensions() -> None:
    metric_filter = MetricFilter(capital_sins=["Acidia"])
    result = calculate_metrics(
        PERIOD, metric_filter, sins=[LIE, SLOTH], buenas_obras=[PRAYER], sessions=_sessions()
    )
    assert result.period_grade.negative_points == pytest.approx(1.0)
    assert result.total_trajectories.buenas_obras.total_score == 0.0
    assert set(result.dimensions["capitalSin"].rows) == {"Acidia"}
    assert result.filtered_trajectory is not None
    assert result.filtered_trajectory.contribution_percent == pytest.approx(50.0)


def test_fully_filtered_period_is_still_valid() -> None:
    metric_filter = MetricFilter(sin_ids=["nothing"])
    result = calculate_metrics(PERIOD, metric_filter, sins=[LIE], sessions=_sessions())
    assert result.period_grade.grade == 10.0
    assert result.period_grade.passed
    assert all(p.value == 0 for p in result.total_trajectories.venial_sins.points)


def test_mortal_event_fails_the_period() -> None:
    sessions = [completed_session(NOW - timedelta(hours=5), [sin_event("murder", NOW)])]
    result = calculate_metrics(PERIOD, sins=[MURDER], sessions=sessions)
    assert not result.period_grade.passed
    assert result.period_grade.grade <= 4.9
    assert result.total_trajectories.mortal_sins.event_count == 1


def test_open_sessions_are_ignored() -> None:
    open_session = ExamSession(started_at=NOW - timedelta(hours=1), events=[sin_event("lie", NOW)])
    result = calculate_metrics(PERIOD, sins=[LIE], sessions=[open_session])
    assert result.period_grade.negative_points == 0.0


def test_future_and_open_sessions_stay_out_of_the_totals() -> None:
    sessions = [
        ExamSession(started_at=NOW - timedelta(days=1), events=[sin_event("lie", NOW - timedelta(days=1))]),
        completed_session(NOW + timedelta(days=5), [sin_event("lie", NOW + timedelta(days=5))]),
    ]
    result = calculate_metrics(PERIOD, sins=[LIE], sessions=sessions)
    assert result.total_trajectories.venial_sins.event_count == 0
    assert result.total_trajectories.venial_sins.total_score == 0.0
    assert result.period_grade.grade == 10.0


def test_notes_in_period_newest_first_with_fallback_name() -> None:
    notes = [
        Note(target_type=NoteTargetType.SIN, target_id="lie", text="a", created_at=NOW - timedelta(days=3)),
        Note(target_type=NoteTargetType.SIN, target_id="gone", text="b", created_at=NOW - timedelta(days=1)),
        Note(target_type=NoteTargetType.SIN, target_id="lie", text="c", created_at=NOW - timedelta(days=30)),
    ]
    result = calculate_metrics(PERIOD, sins=[LIE], notes=notes)
    assert [n.text for n in result.notes_in_period] == ["b", "a"]
    assert result.notes_in_period[0].name == "gone"
    assert result.notes_in_period[1].name == "Pecado lie"


def test_calibration_suggestion_is_attached() -> None:
    result = calculate_metrics(
        PERIOD,
        sins=[LIE, SLOTH],
        sessions=_sessions(),
        calibration=MetricsCalibration(target_grade=15.5, calibration_window_days=14),
    )
    assert result.calibration is not None
    assert result.calibration.days_considered == 2


def test_two_sessions_fill_two_daily_buckets() -> None:
    day = timedelta(days=1)
    sessions = [
        completed_session(NOW - 3 * day, [sin_event("lie", NOW - 3 * day)]),
        completed_session(NOW - day, [sin_event("lie", NOW - day)]),
    ]
    plain = make_sin("lie")
    score = create_scorer().score_event(plain, sin_event("lie", NOW)).normalized_score

    result = calculate_metrics(PERIOD, sins=[plain], sessions=sessions)
    buckets = [p for p in result.total_trajectories.venial_sins.points if p.event_count]
    assert len(buckets) == 2
    assert [p.event_count for p in buckets] == [1, 1]
    assert sum(p.value for p in buckets) == pytest.approx(2 * score)
    assert result.dimensions["term"].rows["contra_si_mismo"].contribution_percent == pytest.approx(100.0)


def test_engine_counts_read_the_store(tmp_path) -> None:
    store = MagisStore(DatabaseManager({"type": "sqlite", "path": str(tmp_path / "magis.db")}))
    weekly = store.catalog.save_sin(make_sin("weekly", reset_cycle=ResetCycle.SEMANAL))
    reset_config = {
        "weekly_days": 7,
        "monthly_days": 30,
        "yearly_days": 365,
        "custom_month_days": 30,
        "timezone": "UTC",
    }
    engine = MetricsEngine(store, reset_config=reset_config)

    done = store.sessions.create_exam_session(started_at=NOW - timedelta(days=1))
    store.sessions.add_sin_event(done.id, sin_event("weekly", NOW - timedelta(days=1), count_increment=2))
    store.sessions.complete_exam_session(done.id, ended_at=NOW - timedelta(days=1) + timedelta(minutes=5))
    current = store.sessions.create_exam_session(started_at=NOW)
    store.sessions.add_sin_event(current.id, sin_event("weekly", NOW))

    assert engine.item_count(weekly, NOW).count == 2
    assert engine.live_item_count(weekly, NOW) == 3
    assert engine.item_count(weekly, NOW + timedelta(days=6)).count == 2
    assert engine.item_count(weekly, NOW + timedelta(days=6, seconds=1)).count == 0
    assert engine.item_count(weekly, NOW + timedelta(days=20)).count == 0

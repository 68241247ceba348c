"""Conjunctive filtering and dimension tables."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.contracts.enums import (
    AttentionLevel,
    BuenaObraTerm,
    Gravity,
    PurityOfIntention,
    Term,
)
from src.metrics.dimensions import build_buena_obra_tables, build_sin_tables
from src.metrics.enrichment import enrich_buena_obra_events, enrich_sin_events
from src.metrics.filters import MetricFilter
from src.scoring import create_scorer
from tests.magis_factories import (
    NOW,
    completed_session,
    make_obra,
    make_sin,
    obra_event,
    sin_event,
)

SCORER = create_scorer()

PRIDE = make_sin(
    "pride",
    terms=[Term.CONTRA_DIOS],
    involved_person_types=["pt-1", "pt-3"],
    capital_sins=["Vanagloria"],
    opposite_virtues=["Fe", "Humildad"],
)
ANGER = make_sin(
    "anger",
    terms=[Term.CONTRA_PROJIMO],
    involved_person_types=["pt-3"],
    capital_sins=["Ira"],
)
ALMS = make_obra(
    "alms",
    terms=[BuenaObraTerm.HACIA_PROJIMO],
    involved_person_types=["pt-5"],
)

SESSION = completed_session(
    NOW,
    [
        sin_event("pride", NOW),
        sin_event("anger", NOW, attention=AttentionLevel.SEMIDELIBERADO),
    ],
    [obra_event("alms", NOW, purity_of_intention=PurityOfIntention.ACTUAL)],
)


@pytest.fixture
def sin_events():
    return enrich_sin_events([SESSION], [PRIDE, ANGER], SCORER)


@pytest.fixture
def obra_events():
    return enrich_buena_obra_events([SESSION], [ALMS], SCORER)


def test_empty_filter_keeps_everything(sin_events, obra_events) -> None:
    metric_filter = MetricFilter()
    assert metric_filter.is_empty()
    assert len(metric_filter.apply_sins(sin_events)) == 2
    assert len(metric_filter.apply_buenas_obras(obra_events)) == 1


def test_keys_combine_with_and(sin_events) -> None:
    metric_filter = MetricFilter(person_type_ids=["pt-3"], capital_sins=["Ira"])
    kept = metric_filter.apply_sins(sin_events)
    assert [e.sin.id for e in kept] == ["anger"]


def test_values_within_a_key_combine_with_or(sin_events) -> None:
    metric_filter = MetricFilter(terms=[Term.CONTRA_DIOS, "contra_projimo"])
    assert len(metric_filter.apply_sins(sin_events)) == 2


def test_event_level_keys(sin_events) -> None:
    metric_filter = MetricFilter(attentions=[AttentionLevel.SEMIDELIBERADO])
    assert [e.sin.id for e in metric_filter.apply_sins(sin_events)] == ["anger"]


def test_good_deed_terms_map_to_sin_pillars(obra_events) -> None:
    metric_filter = MetricFilter(terms=[Term.CONTRA_PROJIMO])
    assert len(metric_filter.apply_buenas_obras(obra_events)) == 1


def test_sin_only_key_excludes_good_deeds(obra_events) -> None:
    metric_filter = MetricFilter(gravities=[Gravity.VENIAL])
    assert metric_filter.apply_buenas_obras(obra_events) == []


def test_good_deed_only_key_excludes_sins(sin_events) -> None:
    metric_filter = MetricFilter(purity_of_intentions=[PurityOfIntention.ACTUAL])
    assert metric_filter.apply_sins(sin_events) == []


def test_from_dict_rejects_unknown_keys() -> None:
    assert MetricFilter.from_dict({"terms": ["contra_dios"]}).terms == ["contra_dios"]
    with pytest.raises(ValueError):
        MetricFilter.from_dict({"colour": ["red"]})


def test_multi_valued_events_count_in_each_row(sin_events) -> None:
    tables = build_sin_tables(sin_events, {"personType": {"pt-1": "Superiores"}})
    person = tables["personType"]
    assert person.rows["pt-3"].event_count == 2
    assert person.rows["pt-1"].label == "Superiores"
    assert person.rows["pt-3"].label == "pt-3"
    assert sum(row.contribution_percent for row in person.rows.values()) == pytest.approx(100.0)


def test_virtues_are_split_by_group(sin_events) -> None:
    tables = build_sin_tables(sin_events)
    assert set(tables["virtudeTeologal"].rows) == {"Fe"}
    assert set(tables["virtudeAnexa"].rows) == {"Humildad"}
    assert tables["virtudeCardinal"].rows == {}


def test_enum_rows_use_spanish_labels(sin_events) -> None:
    tables = build_sin_tables(sin_events)
    assert tables["term"].rows["contra_dios"].label == "Contra Dios"
    assert tables["attention"].rows["semideliberado"].label == "Semideliberado"


def test_good_deed_tables_are_separate(obra_events) -> None:
    tables = build_buena_obra_tables(obra_events)
    assert "gravity" not in tables
    assert tables["purityOfIntention"].rows["actual"].contribution_percent == pytest.approx(100.0)


def test_empty_tables_have_zero_total() -> None:
    tables = build_sin_tables([])
    assert all(table.total_score == 0 for table in tables.values())

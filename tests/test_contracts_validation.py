import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.contracts import (
    CondicionantesSnapshot,
    CustomResetRule,
    ExamSession,
    Sin,
    SinEvent,
)
from src.contracts.defaults import default_activities, default_person_types, virtue_group
from src.contracts.enums import AttentionLevel, ResetCycle, Term


def _valid_sin_payload() -> dict[str, object]:
    return {
        "id": "lie",
        "name": "Mentira",
        "terms": ["contra_projimo"],
        "gravities": ["venial"],
        "capital_sins": ["Vanagloria", "Vanagloria", " "],
        "legacyField": "ignored",
        "created_at": 1735689600000,
    }


def test_sin_contract_normalizes_lists_and_ignores_unknown_keys() -> None:
    sin = Sin.model_validate(_valid_sin_payload())
    assert sin.terms == [Term.CONTRA_PROJIMO]
    assert sin.capital_sins == ["Vanagloria"]
    assert not sin.is_mortal
    assert sin.created_at == datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert "legacyField" not in sin.model_dump_for_storage()


def test_sin_contract_requires_terms() -> None:
    payload = _valid_sin_payload()
    payload["terms"] = []
    with pytest.raises(ValidationError):
        Sin.model_validate(payload)


def test_sin_contract_rejects_unknown_palette() -> None:
    payload = _valid_sin_payload()
    payload["color_palette_key"] = "neon"
    with pytest.raises(ValidationError):
        Sin.model_validate(payload)


@pytest.mark.parametrize("field", ["unit_per_tap", "mortal_threshold_units", "manual_weight_override"])
def test_sin_numbers_must_be_finite(field) -> None:
    payload = _valid_sin_payload()
    payload[field] = float("inf")
    with pytest.raises(ValidationError):
        Sin.model_validate(payload)


def test_custom_cycle_requires_rule() -> None:
    payload = _valid_sin_payload()
    payload["reset_cycle"] = ResetCycle.PERSONALIZADO
    with pytest.raises(ValidationError):
        Sin.model_validate(payload)
    payload["custom_reset_rule"] = CustomResetRule(value=3)
    assert Sin.model_validate(payload).custom_reset_rule.value == 3


def test_event_timestamps_accept_epoch_millis() -> None:
    expected = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)
    event = SinEvent(sin_id="lie", timestamp=int(expected.timestamp() * 1000))
    assert event.timestamp == expected
    assert event.attention is AttentionLevel.DELIBERADO
    with pytest.raises(ValidationError):
        SinEvent(sin_id="lie", count_increment=0)


def test_snapshot_k_must_match_applied() -> None:
    assert CondicionantesSnapshot(applied=["Salud crónica"], k=1, factor=0.8).k == 1
    with pytest.raises(ValidationError):
        CondicionantesSnapshot(applied=["Salud crónica"], k=2, factor=0.64)


def test_session_cannot_end_before_it_starts() -> None:
    start = datetime(2025, 10, 15, tzinfo=timezone.utc)
    with pytest.raises(ValidationError):
        ExamSession(started_at=start, ended_at=start - timedelta(minutes=1))
    assert not ExamSession(started_at=start).is_completed


def test_defaults_and_virtue_groups() -> None:
    assert [p.id for p in default_person_types()][:2] == ["pt-1", "pt-2"]
    assert len(default_person_types()) == 8
    assert len(default_activities()) == 15
    assert virtue_group("Caridad") == "teologal"
    assert virtue_group("Templanza") == "cardinal"
    assert virtue_group("Humildad") == "anexa"


def test_enum_labels_resolve_from_text() -> None:
    assert Term.from_text("Contra el prójimo") is Term.CONTRA_PROJIMO
    assert Term.from_text("CONTRA_DIOS") is Term.CONTRA_DIOS
    assert Term.CONTRA_DIOS.label == "Contra Dios"
    assert Term.from_text("nada") is None

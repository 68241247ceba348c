from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from src.contracts import (
    BuenaObra,
    BuenaObraEvent,
    ExamSession,
    Sin,
    SinEvent,
)
from src.contracts.enums import Gravity, MateriaTipo, Term

NOW = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


def make_sin(sin_id: str = "sin-1", **overrides: Any) -> Sin:
    data: dict[str, Any] = {
        "id": sin_id,
        "name": f"Pecado {sin_id}",
        "terms": [Term.CONTRA_SI_MISMO],
        "gravities": [Gravity.VENIAL],
    }
    data.update(overrides)
    return Sin(**data)


def make_mortal_sin(sin_id: str = "mortal-1", **overrides: Any) -> Sin:
    overrides.setdefault("gravities", [Gravity.MORTAL])
    overrides.setdefault("materia_tipo", [MateriaTipo.EX_TOTO])
    return make_sin(sin_id, **overrides)


def make_obra(obra_id: str = "obra-1", **overrides: Any) -> BuenaObra:
    data: dict[str, Any] = {"id": obra_id, "name": f"Obra {obra_id}"}
    data.update(overrides)
    return BuenaObra(**data)


def sin_event(sin_id: str, at: datetime, **overrides: Any) -> SinEvent:
    return SinEvent(sin_id=sin_id, timestamp=at, **overrides)


def obra_event(obra_id: str, at: datetime, **overrides: Any) -> BuenaObraEvent:
    return BuenaObraEvent(buena_obra_id=obra_id, timestamp=at, **overrides)


def completed_session(
    at: datetime,
    events: Iterable[SinEvent] = (),
    buena_obra_events: Iterable[BuenaObraEvent] = (),
    session_id: Optional[str] = None,
) -> ExamSession:
    data: dict[str, Any] = {
        "started_at": at,
        "ended_at": at + timedelta(minutes=10),
        "events": list(events),
        "buena_obra_events": list(buena_obra_events),
    }
    if session_id:
        data["id"] = session_id
    return ExamSession(**data)

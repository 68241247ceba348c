"""Repositories over a throwaway SQLite collection store."""

from __future__ import annotations

import sys
from datetime import timedelta
from pathlib import Path

import pytest
from loguru import logger

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.contracts.enums import AttentionLevel, FreeformPillar, NoteTargetType, Term
from src.storage import DatabaseManager, MagisStore
from src.storage.models import CollectionRecord
from tests.magis_factories import NOW, make_mortal_sin, make_obra, make_sin, obra_event, sin_event

STRESS = "Estrés o sufrimiento prolongados"


@pytest.fixture
def db(tmp_path):
    return DatabaseManager({"type": "sqlite", "path": str(tmp_path / "magis.db")})


@pytest.fixture
def session_records():
    records = []
    sink_id = logger.add(
        lambda message: records.append(message.record),
        level="DEBUG",
        filter=lambda record: "session_id" in record["extra"],
    )
    yield records
    logger.remove(sink_id)


@pytest.fixture
def store(db):
    store = MagisStore(db)
    store.catalog.save_sin(make_sin("lie", condicionantes=[STRESS]))
    store.catalog.save_buena_obra(make_obra("alms"))
    return store


def test_unknown_collection_reads_as_empty(db) -> None:
    assert db.read_collection("sins") == []


def test_corrupt_collection_reads_as_empty(db) -> None:
    with db.get_session() as session:
        session.add(CollectionRecord(name="sins", payload="{not json", item_count=1))
    assert db.read_collection("sins") == []


def test_invalid_items_are_skipped(db) -> None:
    db.write_collection("sins", [{"id": "broken", "terms": "nope"}, make_sin("ok").model_dump_for_storage()])
    store = MagisStore(db)
    assert [s.id for s in store.catalog.get_sins()] == ["ok"]


def test_catalog_upsert_and_lookup(store) -> None:
    sin = store.catalog.get_sin("lie")
    sin.name = "Mentira"
    store.catalog.save_sin(sin)
    assert len(store.catalog.get_sins()) == 1
    assert store.catalog.find_sin_by_name("MENTIRA").id == "lie"
    assert store.catalog.get_sin("lie").updated_at is not None
    assert store.catalog.delete_sin("lie")
    assert not store.catalog.delete_sin("lie")


def test_entities_are_seeded_once(store) -> None:
    person_types = store.entities.get_person_types()
    assert person_types and all(p.is_default for p in person_types)
    assert store.entities.delete_person_type(person_types[0].id)
    assert len(store.entities.get_person_types()) == len(person_types) - 1
    assert store.entities.get_activities()


def test_event_snapshot_uses_the_active_profile(store) -> None:
    store.preferences.set_active_condicionantes(["Fatiga"])
    session = store.sessions.create_exam_session(started_at=NOW)
    event = store.register_sin_event(session.id, sin_event("lie", NOW))
    assert event.condicionantes.applied == [STRESS]
    assert event.condicionantes.factor == pytest.approx(0.8)

    store.preferences.set_active_condicionantes([])
    stored = store.sessions.get_exam_session(session.id)
    assert stored.events[0].condicionantes.factor == pytest.approx(0.8)


def test_unknown_catalog_item_is_rejected(store) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    assert store.sessions.add_sin_event(session.id, sin_event("ghost", NOW)) is None
    assert store.sessions.get_exam_session(session.id).events == []


def test_completed_session_is_frozen(store) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    event = store.sessions.add_sin_event(session.id, sin_event("lie", NOW))
    completed = store.sessions.complete_exam_session(session.id, ended_at=NOW + timedelta(minutes=5))
    assert completed.is_completed

    assert store.sessions.add_sin_event(session.id, sin_event("lie", NOW)) is None
    assert store.sessions.add_buena_obra_event(session.id, obra_event("alms", NOW)) is None
    assert not store.sessions.remove_sin_event(session.id, event.id)
    assert store.sessions.update_sin_event(session.id, event.id, count_increment=3) is None
    assert store.sessions.complete_exam_session(session.id) is None
    assert len(store.sessions.get_exam_session(session.id).events) == 1

    state = store.user_state.get_state()
    assert state.total_exams == 1
    assert state.last_exam_at == NOW + timedelta(minutes=5)


def test_update_and_remove_events_on_open_session(store) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    event = store.sessions.add_sin_event(session.id, sin_event("lie", NOW))
    updated = store.sessions.update_sin_event(
        session.id, event.id, attention=AttentionLevel.SEMIDELIBERADO, count_increment=2
    )
    assert updated.id == event.id
    assert updated.count_increment == 2
    stats = store.sessions.session_stats(session.id)
    assert stats["total_events"] == 2
    assert stats["by_attention"]["semideliberado"] == 2
    assert store.sessions.remove_sin_event(session.id, event.id)
    assert not store.sessions.remove_sin_event(session.id, event.id)


def test_in_progress_session_is_the_latest_open_one(store) -> None:
    older = store.sessions.create_exam_session(started_at=NOW - timedelta(hours=2))
    newer = store.sessions.create_exam_session(started_at=NOW)
    assert store.sessions.get_in_progress_session().id == newer.id
    store.sessions.complete_exam_session(newer.id, ended_at=NOW)
    assert store.sessions.get_in_progress_session().id == older.id


def test_promote_freeform_sin_works_on_closed_sessions(store) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    entry = store.sessions.add_freeform_sin(session.id, "Murmuración", FreeformPillar.NEIGHBOR)
    store.sessions.complete_exam_session(session.id, ended_at=NOW)

    sin = store.sessions.promote_freeform_sin(session.id, entry.id)
    assert sin.name == "Murmuración"
    assert sin.terms == [Term.CONTRA_PROJIMO]
    assert store.catalog.get_sin(sin.id) is not None
    stored = store.sessions.get_exam_session(session.id)
    assert stored.freeform_sins[0].promoted_to == sin.id
    assert store.sessions.promote_freeform_sin(session.id, entry.id) is None


def test_notes_newest_first(store) -> None:
    store.notes.add_note(NoteTargetType.SIN, "lie", "primera", created_at=NOW - timedelta(days=1))
    latest = store.notes.add_note(NoteTargetType.SIN, "lie", "segunda", created_at=NOW)
    store.notes.add_note(NoteTargetType.GOOD_WORK, "alms", "otra", created_at=NOW)
    notes = store.notes.get_notes_for_target(NoteTargetType.SIN, "lie")
    assert [n.text for n in notes] == ["segunda", "primera"]
    assert store.notes.delete_note(latest.id)
    assert len(store.notes.get_all_notes()) == 2


def test_preferences_default_and_calibration_update(store) -> None:
    assert store.preferences.get_preferences().active_condicionantes == []
    store.preferences.update_calibration(target_grade=14.0)
    assert store.preferences.get_preferences().metrics_calibration.target_grade == 14.0


def test_catalog_condicionantes_migration(db) -> None:
    db.write_collection("sins", [make_sin("old", condicionantes=["Fatiga", "Estrés"]).model_dump_for_storage()])
    store = MagisStore(db)
    assert store.catalog.migrate_condicionantes() == 1
    assert store.catalog.get_sin("old").condicionantes == [STRESS]
    assert store.catalog.migrate_condicionantes() == 0


def test_health_status_counts_items(store) -> None:
    health = store.db.get_health_status()
    assert health["collections"]["sins"] == 1
    assert health["status"] == "healthy"


def test_rejected_add_leaves_the_callers_event_untouched(store) -> None:
    store.preferences.set_active_condicionantes([STRESS])
    session = store.sessions.create_exam_session(started_at=NOW)
    store.sessions.complete_exam_session(session.id, ended_at=NOW)

    event = sin_event("lie", NOW)
    deed = obra_event("alms", NOW)
    assert store.register_sin_event(session.id, event) is None
    assert store.register_buena_obra_event(session.id, deed) is None
    assert event.condicionantes is None
    assert deed.condicionantes is None


def test_accepted_add_returns_a_snapshotted_copy(store) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    event = sin_event("lie", NOW)
    added = store.sessions.add_sin_event(session.id, event, [STRESS])
    assert added.id == event.id
    assert added.condicionantes.k == 1
    assert event.condicionantes is None


def test_session_lifecycle_is_logged_per_session(store, session_records) -> None:
    store.catalog.save_sin(make_mortal_sin("murder"))
    session = store.sessions.create_exam_session(started_at=NOW)
    store.sessions.add_sin_event(session.id, sin_event("lie", NOW, count_increment=2))
    store.sessions.add_sin_event(session.id, sin_event("murder", NOW))
    store.sessions.add_sin_event(session.id, sin_event("ghost", NOW))
    store.sessions.add_buena_obra_event(session.id, obra_event("alms", NOW))
    store.sessions.complete_exam_session(session.id, ended_at=NOW + timedelta(minutes=5))

    assert {record["extra"]["session_id"] for record in session_records} == {session.id}
    messages = [record["message"] for record in session_records]
    assert any("Examen iniciado" in m for m in messages)
    assert any(m.startswith("• Pecado registrado: Pecado lie") for m in messages)
    assert any(m.startswith("⛔ Pecado registrado: Pecado murder") for m in messages)
    assert any("Evento rechazado para ghost" in m for m in messages)
    assert any("Buena obra registrada: Obra alms" in m for m in messages)
    assert "RESUMEN DEL EXAMEN:" in "\n".join(messages)
    assert any("Pecados registrados: 3" in m for m in messages)
    assert any("Duración: 300.0s" in m for m in messages)


def test_closed_session_rejection_is_logged(store, session_records) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    store.sessions.complete_exam_session(session.id, ended_at=NOW)
    session_records.clear()
    assert store.sessions.add_sin_event(session.id, sin_event("lie", NOW)) is None
    assert [r["level"].name for r in session_records] == ["WARNING"]
    assert "sesión cerrada" in session_records[0]["message"]


def test_freeform_good_deed_only_on_open_sessions(store) -> None:
    session = store.sessions.create_exam_session(started_at=NOW)
    entry = store.sessions.add_freeform_buena_obra(session.id, "Visitar a un enfermo", FreeformPillar.NEIGHBOR)
    assert entry.pillar is FreeformPillar.NEIGHBOR
    store.sessions.complete_exam_session(session.id, ended_at=NOW)
    assert store.sessions.add_freeform_buena_obra(session.id, "Otra") is None
    stored = store.sessions.get_exam_session(session.id)
    assert [e.text for e in stored.freeform_buenas_obras] == ["Visitar a un enfermo"]

# src/storage/repositories.py
# Repositorios sobre el almacén de colecciones
# ============================================

"""
Operaciones de consulta y de comando sobre cada colección.

Las consultas devuelven modelos validados; los elementos que no pasan la
validación se registran y se omiten. Los comandos devuelven el objeto
creado o actualizado, o ``None``/``False`` si el destino no existe o la
sesión ya está cerrada: nunca lanzan por esos motivos.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from src.contracts.catalog import Activity, BuenaObra, PersonType, Sin
from src.contracts.defaults import default_activities, default_person_types
from src.contracts.enums import FreeformPillar, NoteTargetType, Term
from src.contracts.events import (
    BuenaObraEvent,
    ExamSession,
    FreeformEntry,
    SessionContext,
    SinEvent,
)
from src.contracts.notes import Note
from src.contracts.preferences import UserPreferences, UserState
from src.scoring import get_default_scorer
from src.scoring.condicionantes import migrate_condicionantes
from src.utils.datetime_utils import ensure_utc, utc_now
from src.utils.logger import ExamSessionLogger

from .database import DatabaseManager, get_database_manager

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PILLAR_TERMS: Dict[FreeformPillar, Term] = {
    FreeformPillar.GOD: Term.CONTRA_DIOS,
    FreeformPillar.NEIGHBOR: Term.CONTRA_PROJIMO,
    FreeformPillar.SELF: Term.CONTRA_SI_MISMO,
}


class _CollectionRepository:
    """Base con lectura tolerante y escritura de colecciones completas."""

    def __init__(self, db: Optional[DatabaseManager] = None):
        self.db = db or get_database_manager()

    def _load(self, name: str, model: Type[M]) -> List[M]:
        items: List[M] = []
        for raw in self.db.read_collection(name):
            try:
                items.append(model.model_validate(raw))
            except ValidationError as exc:
                logger.warning(
                    f"⚠️ Elemento inválido omitido en '{name}' (id={raw.get('id')}): "
                    f"{exc.error_count()} errores"
                )
        return items

    def _upsert(self, name: str, item: Any) -> None:
        payload = item.model_dump_for_storage()
        with self.db.mutate_collection(name) as items:
            for index, raw in enumerate(items):
                if raw.get("id") == item.id:
                    items[index] = payload
                    break
            else:
                items.append(payload)

    def _delete(self, name: str, item_id: str) -> bool:
        with self.db.mutate_collection(name) as items:
            before = len(items)
            items[:] = [raw for raw in items if raw.get("id") != item_id]
            return len(items) < before


class CatalogRepository(_CollectionRepository):
    """Pecados y buenas obras."""

    SINS = "sins"
    BUENAS_OBRAS = "buenas_obras"

    def get_sins(self, include_disabled: bool = True) -> List[Sin]:
        sins = self._load(self.SINS, Sin)
        return sins if include_disabled else [s for s in sins if not s.is_disabled]

    def get_sin(self, sin_id: str) -> Optional[Sin]:
        return next((s for s in self.get_sins() if s.id == sin_id), None)

    def find_sin_by_name(self, name: str) -> Optional[Sin]:
        wanted = name.strip().casefold()
        return next((s for s in self.get_sins() if s.name.casefold() == wanted), None)

    def save_sin(self, sin: Sin) -> Sin:
        sin.updated_at = utc_now()
        self._upsert(self.SINS, sin)
        return sin

    def delete_sin(self, sin_id: str) -> bool:
        return self._delete(self.SINS, sin_id)

    def get_buenas_obras(self, include_disabled: bool = True) -> List[BuenaObra]:
        obras = self._load(self.BUENAS_OBRAS, BuenaObra)
        return obras if include_disabled else [o for o in obras if not o.is_disabled]

    def get_buena_obra(self, obra_id: str) -> Optional[BuenaObra]:
        return next((o for o in self.get_buenas_obras() if o.id == obra_id), None)

    def find_buena_obra_by_name(self, name: str) -> Optional[BuenaObra]:
        wanted = name.strip().casefold()
        return next(
            (o for o in self.get_buenas_obras() if o.name.casefold() == wanted), None
        )

    def save_buena_obra(self, obra: BuenaObra) -> BuenaObra:
        obra.updated_at = utc_now()
        self._upsert(self.BUENAS_OBRAS, obra)
        return obra

    def delete_buena_obra(self, obra_id: str) -> bool:
        return self._delete(self.BUENAS_OBRAS, obra_id)

    def migrate_condicionantes(self) -> int:
        """Lleva a su forma canónica los condicionantes del catálogo."""
        changed = 0
        for name in (self.SINS, self.BUENAS_OBRAS):
            with self.db.mutate_collection(name) as items:
                for raw in items:
                    current = list(raw.get("condicionantes") or [])
                    migrated = migrate_condicionantes(current)
                    if migrated != current:
                        raw["condicionantes"] = migrated
                        changed += 1
        if changed:
            logger.info(f"🔁 Condicionantes migrados en {changed} ítems del catálogo")
        return changed


class EntityRepository(_CollectionRepository):
    """Tipos de prójimo y actividades, sembrados con los valores por defecto."""

    PERSON_TYPES = "person_types"
    ACTIVITIES = "activities"

    def _seeded(self, name: str, model: Type[M], seed: Callable[[], List[M]]) -> List[M]:
        items = self._load(name, model)
        if items:
            return items
        defaults = seed()
        self.db.write_collection(name, [item.model_dump_for_storage() for item in defaults])
        return defaults

    def get_person_types(self) -> List[PersonType]:
        return self._seeded(self.PERSON_TYPES, PersonType, default_person_types)

    def get_activities(self) -> List[Activity]:
        return self._seeded(self.ACTIVITIES, Activity, default_activities)

    def save_person_type(self, item: PersonType) -> PersonType:
        self.get_person_types()
        self._upsert(self.PERSON_TYPES, item)
        return item

    def delete_person_type(self, item_id: str) -> bool:
        return self._delete(self.PERSON_TYPES, item_id)

    def save_activity(self, item: Activity) -> Activity:
        self.get_activities()
        self._upsert(self.ACTIVITIES, item)
        return item

    def delete_activity(self, item_id: str) -> bool:
        return self._delete(self.ACTIVITIES, item_id)


class PreferencesRepository(_CollectionRepository):
    """Preferencias del usuario, guardadas como lista de un elemento."""

    PREFERENCES = "preferences"

    def get_preferences(self) -> UserPreferences:
        stored = self._load(self.PREFERENCES, UserPreferences)
        return stored[0] if stored else UserPreferences()

    def save_preferences(self, preferences: UserPreferences) -> UserPreferences:
        self.db.write_collection(self.PREFERENCES, [preferences.model_dump_for_storage()])
        return preferences

    def set_active_condicionantes(self, names: Iterable[str]) -> UserPreferences:
        preferences = self.get_preferences()
        preferences.subject_profile.condicionantes_activos = migrate_condicionantes(names)
        return self.save_preferences(preferences)

    def update_calibration(self, **changes: Any) -> UserPreferences:
        preferences = self.get_preferences()
        merged = {**preferences.metrics_calibration.model_dump(), **changes}
        preferences.metrics_calibration = type(preferences.metrics_calibration).model_validate(
            merged
        )
        return self.save_preferences(preferences)


class UserStateRepository(_CollectionRepository):
    USER_STATE = "user_state"

    def get_state(self) -> UserState:
        stored = self._load(self.USER_STATE, UserState)
        return stored[0] if stored else UserState()

    def record_completed_exam(self, ended_at: datetime) -> UserState:
        state = self.get_state()
        state.total_exams += 1
        if state.last_exam_at is None or ensure_utc(ended_at) > state.last_exam_at:
            state.last_exam_at = ended_at
        self.db.write_collection(self.USER_STATE, [state.model_dump_for_storage()])
        return state


class NotesRepository(_CollectionRepository):
    NOTES = "notes"

    def get_all_notes(self) -> List[Note]:
        return self._load(self.NOTES, Note)

    def get_notes_for_target(
        self, target_type: NoteTargetType, target_id: str
    ) -> List[Note]:
        """Notas de un pecado o buena obra, de la más reciente a la más antigua."""
        notes = [
            note
            for note in self.get_all_notes()
            if note.target_type == target_type and note.target_id == target_id
        ]
        return sorted(notes, key=lambda note: note.created_at, reverse=True)

    def add_note(
        self,
        target_type: NoteTargetType,
        target_id: str,
        text: str,
        created_at: Optional[datetime] = None,
    ) -> Note:
        note = Note(
            target_type=target_type,
            target_id=target_id,
            text=text,
            created_at=created_at or utc_now(),
        )
        with self.db.mutate_collection(self.NOTES) as items:
            items.append(note.model_dump_for_storage())
        return note

    def delete_note(self, note_id: str) -> bool:
        return self._delete(self.NOTES, note_id)


class SessionRepository(_CollectionRepository):
    """
    Registro de sesiones de examen.

    Una sesión admite cambios mientras ``ended_at`` sea nulo; una vez
    completada queda congelada y los comandos sobre sus eventos devuelven
    ``None`` o ``False``.
    """

    SESSIONS = "exam_sessions"

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        catalog: Optional[CatalogRepository] = None,
        user_state: Optional[UserStateRepository] = None,
        scorer=None,
    ):
        super().__init__(db)
        self.catalog = catalog or CatalogRepository(self.db)
        self.user_state = user_state or UserStateRepository(self.db)
        self.scorer = scorer or get_default_scorer()
        self._session_loggers: Dict[str, ExamSessionLogger] = {}

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def get_exam_sessions(self) -> List[ExamSession]:
        return self._load(self.SESSIONS, ExamSession)

    def get_exam_session(self, session_id: str) -> Optional[ExamSession]:
        return next((s for s in self.get_exam_sessions() if s.id == session_id), None)

    def get_in_progress_session(self) -> Optional[ExamSession]:
        """La sesión abierta más reciente, si la hay."""
        open_sessions = [s for s in self.get_exam_sessions() if not s.is_completed]
        if not open_sessions:
            return None
        return max(open_sessions, key=lambda s: s.started_at)

    def session_stats(self, session_id: str) -> Optional[Dict[str, Any]]:
        session = self.get_exam_session(session_id)
        if session is None:
            return None
        by_attention: Dict[str, int] = {"deliberado": 0, "semideliberado": 0}
        for event in session.events:
            by_attention[event.attention.value] += event.count_increment
        return {
            "total_events": sum(e.count_increment for e in session.events),
            "total_buenas_obras": sum(e.count_increment for e in session.buena_obra_events),
            "by_attention": by_attention,
        }

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------

    def create_exam_session(
        self,
        context: Optional[SessionContext] = None,
        started_at: Optional[datetime] = None,
    ) -> ExamSession:
        session = ExamSession(
            context=context or SessionContext(), started_at=started_at or utc_now()
        )
        with self.db.mutate_collection(self.SESSIONS) as items:
            items.append(session.model_dump_for_storage())
        self._session_logger(session.id).log_session_start(len(session.context.sin_ids))
        return session

    def complete_exam_session(
        self, session_id: str, ended_at: Optional[datetime] = None
    ) -> Optional[ExamSession]:
        """Cierra la sesión, actualiza el estado del usuario y registra el resumen."""
        finished_at = ended_at or utc_now()
        completed = self._mutate_open_session(
            session_id, lambda session: setattr(session, "ended_at", finished_at) or session
        )
        if completed is None:
            return None
        self.user_state.record_completed_exam(completed.ended_at)

        session_log = self._session_loggers.pop(session_id, None) or ExamSessionLogger(session_id)
        score = self.scorer.session_score(self.catalog.get_sins(), completed.events)
        session_log.log_session_summary(
            {
                "sin_events": sum(e.count_increment for e in completed.events),
                "buena_obra_events": sum(e.count_increment for e in completed.buena_obra_events),
                "score": score.total_score,
                "duration_seconds": (completed.ended_at - completed.started_at).total_seconds(),
            }
        )
        return completed

    def _session_logger(self, session_id: str) -> ExamSessionLogger:
        if session_id not in self._session_loggers:
            self._session_loggers[session_id] = ExamSessionLogger(session_id)
        return self._session_loggers[session_id]

    def delete_exam_session(self, session_id: str) -> bool:
        return self._delete(self.SESSIONS, session_id)

    # ------------------------------------------------------------------
    # Eventos
    # ------------------------------------------------------------------

    def _mutate_open_session(self, session_id: str, change: Callable[[ExamSession], Any]) -> Any:
        """
        Aplica ``change`` a una sesión abierta y la guarda.

        Devuelve lo que devuelva ``change``; ``None`` si la sesión no existe,
        está cerrada o el cambio no produjo resultado (en cuyo caso no se
        escribe nada).
        """
        with self.db.mutate_collection(self.SESSIONS) as items:
            for index, raw in enumerate(items):
                if raw.get("id") != session_id:
                    continue
                try:
                    session = ExamSession.model_validate(raw)
                except ValidationError:
                    logger.warning(f"⚠️ Sesión ilegible: {session_id}")
                    return None
                if session.is_completed:
                    logger.debug(f"Sesión {session_id} cerrada, cambio ignorado")
                    return None
                result = change(session)
                if result is not None and result is not False:
                    items[index] = session.model_dump_for_storage()
                return result
        return None

    def add_sin_event(
        self,
        session_id: str,
        event: SinEvent,
        active_condicionantes: Optional[Iterable[str]] = None,
    ) -> Optional[SinEvent]:
        """
        Registra un evento de pecado en una sesión abierta.

        Si el evento no trae snapshot de condicionantes, se congela aquí con
        el perfil activo recibido. Se guarda y devuelve una copia: el evento
        recibido no se modifica.
        """
        session_log = self._session_logger(session_id)
        sin = self.catalog.get_sin(event.sin_id)
        if sin is None:
            session_log.log_rejected(event.sin_id, "pecado inexistente")
            return None

        def _append(session: ExamSession) -> SinEvent:
            stored = event.model_copy(deep=True)
            if stored.condicionantes is None:
                stored.condicionantes = self.scorer.snapshot_condicionantes(
                    sin, active_condicionantes or []
                )
            session.events = session.events + [stored]
            return stored

        added = self._mutate_open_session(session_id, _append)
        if added is None:
            session_log.log_rejected(event.sin_id, "sesión cerrada o inexistente")
            return None
        breakdown = self.scorer.score_event(sin, added)
        session_log.log_sin_event(
            sin.name, breakdown.normalized_score, breakdown.is_mortal_imputable
        )
        return added

    def update_sin_event(
        self, session_id: str, event_id: str, **changes: Any
    ) -> Optional[SinEvent]:
        def _update(session: ExamSession) -> Optional[SinEvent]:
            for index, current in enumerate(session.events):
                if current.id == event_id:
                    data = {**current.model_dump(), **changes, "id": current.id}
                    try:
                        updated = SinEvent.model_validate(data)
                    except ValidationError as exc:
                        logger.warning(f"⚠️ Cambio inválido en evento {event_id}: {exc}")
                        return None
                    events = list(session.events)
                    events[index] = updated
                    session.events = events
                    return updated
            return None

        return self._mutate_open_session(session_id, _update)

    def remove_sin_event(self, session_id: str, event_id: str) -> bool:
        def _remove(session: ExamSession) -> bool:
            remaining = [e for e in session.events if e.id != event_id]
            if len(remaining) == len(session.events):
                return False
            session.events = remaining
            return True

        return bool(self._mutate_open_session(session_id, _remove))

    def add_buena_obra_event(
        self,
        session_id: str,
        event: BuenaObraEvent,
        active_condicionantes: Optional[Iterable[str]] = None,
    ) -> Optional[BuenaObraEvent]:
        session_log = self._session_logger(session_id)
        obra = self.catalog.get_buena_obra(event.buena_obra_id)
        if obra is None:
            session_log.log_rejected(event.buena_obra_id, "buena obra inexistente")
            return None

        def _append(session: ExamSession) -> BuenaObraEvent:
            stored = event.model_copy(deep=True)
            if stored.condicionantes is None:
                stored.condicionantes = self.scorer.snapshot_condicionantes(
                    obra, active_condicionantes or []
                )
            session.buena_obra_events = session.buena_obra_events + [stored]
            return stored

        added = self._mutate_open_session(session_id, _append)
        if added is None:
            session_log.log_rejected(event.buena_obra_id, "sesión cerrada o inexistente")
            return None
        session_log.log_buena_obra_event(
            obra.name, self.scorer.score_buena_obra_event(obra, added).score
        )
        return added

    def remove_buena_obra_event(self, session_id: str, event_id: str) -> bool:
        def _remove(session: ExamSession) -> bool:
            remaining = [e for e in session.buena_obra_events if e.id != event_id]
            if len(remaining) == len(session.buena_obra_events):
                return False
            session.buena_obra_events = remaining
            return True

        return bool(self._mutate_open_session(session_id, _remove))

    # ------------------------------------------------------------------
    # Entradas libres
    # ------------------------------------------------------------------

    def add_freeform_sin(
        self, session_id: str, text: str, pillar: FreeformPillar = FreeformPillar.SELF
    ) -> Optional[FreeformEntry]:
        entry = FreeformEntry(text=text, pillar=pillar)

        def _append(session: ExamSession) -> FreeformEntry:
            session.freeform_sins = session.freeform_sins + [entry]
            return entry

        return self._mutate_open_session(session_id, _append)

    def add_freeform_buena_obra(
        self, session_id: str, text: str, pillar: FreeformPillar = FreeformPillar.SELF
    ) -> Optional[FreeformEntry]:
        entry = FreeformEntry(text=text, pillar=pillar)

        def _append(session: ExamSession) -> FreeformEntry:
            session.freeform_buenas_obras = session.freeform_buenas_obras + [entry]
            return entry

        return self._mutate_open_session(session_id, _append)

    def promote_freeform_sin(
        self, session_id: str, entry_id: str, **fields: Any
    ) -> Optional[Sin]:
        """
        Convierte una entrada libre de pecado en un pecado del catálogo.

        Funciona también sobre sesiones cerradas: solo se marca la entrada
        como promovida, los eventos no cambian.
        """
        session = self.get_exam_session(session_id)
        if session is None:
            return None
        entry = next(
            (e for e in session.freeform_sins if e.id == entry_id and not e.promoted_to),
            None,
        )
        if entry is None:
            return None

        data = {"name": entry.text, "terms": [PILLAR_TERMS[entry.pillar]], **fields}
        try:
            sin = Sin.model_validate(data)
        except ValidationError as exc:
            logger.warning(f"⚠️ No se pudo promover la entrada {entry_id}: {exc}")
            return None
        self.catalog.save_sin(sin)

        with self.db.mutate_collection(self.SESSIONS) as items:
            for raw in items:
                if raw.get("id") != session_id:
                    continue
                for stored in raw.get("freeform_sins") or []:
                    if stored.get("id") == entry_id:
                        stored["promoted_to"] = sin.id
        logger.info(f"⬆️ Entrada libre promovida al catálogo: {sin.name}")
        return sin


class MagisStore:
    """Agrupa todos los repositorios sobre un mismo ``DatabaseManager``."""

    def __init__(self, db: Optional[DatabaseManager] = None, scorer=None):
        self.db = db or get_database_manager()
        self.catalog = CatalogRepository(self.db)
        self.entities = EntityRepository(self.db)
        self.preferences = PreferencesRepository(self.db)
        self.user_state = UserStateRepository(self.db)
        self.notes = NotesRepository(self.db)
        self.sessions = SessionRepository(
            self.db, catalog=self.catalog, user_state=self.user_state, scorer=scorer
        )

    def register_sin_event(self, session_id: str, event: SinEvent) -> Optional[SinEvent]:
        """Registra un evento congelando los condicionantes del perfil actual."""
        active = self.preferences.get_preferences().active_condicionantes
        return self.sessions.add_sin_event(session_id, event, active)

    def register_buena_obra_event(
        self, session_id: str, event: BuenaObraEvent
    ) -> Optional[BuenaObraEvent]:
        active = self.preferences.get_preferences().active_condicionantes
        return self.sessions.add_buena_obra_event(session_id, event, active)


__all__ = [
    "CatalogRepository",
    "EntityRepository",
    "MagisStore",
    "NotesRepository",
    "PILLAR_TERMS",
    "PreferencesRepository",
    "SessionRepository",
    "UserStateRepository",
]

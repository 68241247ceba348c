# src/storage/backup.py
# Copias de seguridad de MAGIS
# ============================

"""
Exportación y restauración de todas las colecciones en un único bundle JSON.

La restauración es explícita: un archivo ilegible, un bundle inválido o una
versión de formato incompatible lanzan ``StorageError`` y no tocan el
almacén. Si todo es válido, las colecciones se reemplazan en una sola
transacción.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import ValidationError

from config.version import EXPORT_FORMAT_VERSION, is_compatible_export_version
from src.contracts.backup import BACKUP_COLLECTIONS, BackupBundle
from src.contracts.catalog import Activity, BuenaObra, PersonType, Sin
from src.contracts.common import DomainModel
from src.contracts.events import ExamSession
from src.contracts.notes import Note
from src.contracts.preferences import UserPreferences, UserState
from src.utils.datetime_utils import utc_now

from .database import DatabaseManager, StorageError, get_database_manager

logger = logging.getLogger(__name__)

BackupSource = Union[str, Path, Dict[str, Any]]

_SINGLETONS = ("preferences", "user_state")

_MODELS: Dict[str, Type[DomainModel]] = {
    "sins": Sin,
    "buenas_obras": BuenaObra,
    "exam_sessions": ExamSession,
    "notes": Note,
    "person_types": PersonType,
    "activities": Activity,
    "preferences": UserPreferences,
    "user_state": UserState,
}


def export_backup(
    db: Optional[DatabaseManager] = None, path: Optional[Union[str, Path]] = None
) -> BackupBundle:
    """
    Empaqueta todas las colecciones en un ``BackupBundle``.

    Los elementos que no validan se omiten con un aviso. Si se indica
    ``path``, el bundle se escribe además como JSON.
    """
    db = db or get_database_manager()
    data: Dict[str, Any] = {"version": EXPORT_FORMAT_VERSION, "exported_at": utc_now()}
    for name in BACKUP_COLLECTIONS:
        items = db.read_collection(name)
        if name in _SINGLETONS:
            data[name] = items[0] if items else None
        else:
            data[name] = items

    try:
        bundle = BackupBundle.model_validate(data)
    except ValidationError:
        bundle = _validate_leniently(data)

    if path is not None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(bundle.model_dump_for_storage(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.info(f"💾 Copia de seguridad escrita en {target}")
    return bundle


def _validate_leniently(data: Dict[str, Any]) -> BackupBundle:
    """Valida elemento a elemento descartando los inválidos."""
    clean: Dict[str, Any] = {"version": data["version"], "exported_at": data["exported_at"]}
    for name in BACKUP_COLLECTIONS:
        model = _MODELS[name]
        if name in _SINGLETONS:
            clean[name] = None
            if data[name] is not None:
                try:
                    clean[name] = model.model_validate(data[name])
                except ValidationError:
                    logger.warning(f"⚠️ '{name}' inválido, se exporta vacío")
            continue
        valid: List[Any] = []
        for raw in data[name]:
            try:
                valid.append(model.model_validate(raw))
            except ValidationError:
                logger.warning(f"⚠️ Elemento inválido omitido en '{name}' (id={raw.get('id')})")
        clean[name] = valid
    return BackupBundle(**clean)


def _read_source(source: BackupSource) -> Dict[str, Any]:
    if isinstance(source, dict):
        return source
    try:
        payload = json.loads(Path(source).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise StorageError(f"No se pudo leer la copia de seguridad: {exc}") from exc
    if not isinstance(payload, dict):
        raise StorageError("La copia de seguridad no es un objeto JSON")
    return payload


def restore_backup(source: BackupSource, db: Optional[DatabaseManager] = None) -> BackupBundle:
    """
    Restaura un bundle reemplazando todas las colecciones.

    Raises:
        StorageError: archivo ilegible, bundle inválido o versión incompatible.
    """
    db = db or get_database_manager()
    payload = _read_source(source)

    version = str(payload.get("version", ""))
    if not is_compatible_export_version(version):
        raise StorageError(
            f"Versión de copia incompatible: '{version}' (se espera {EXPORT_FORMAT_VERSION})"
        )
    try:
        bundle = BackupBundle.model_validate(payload)
    except ValidationError as exc:
        raise StorageError(
            f"Copia de seguridad inválida ({exc.error_count()} errores)"
        ) from exc

    collections: Dict[str, List[Dict[str, Any]]] = {}
    for name in BACKUP_COLLECTIONS:
        value = getattr(bundle, name)
        if name in _SINGLETONS:
            collections[name] = [value.model_dump_for_storage()] if value is not None else []
        else:
            collections[name] = [item.model_dump_for_storage() for item in value]
    db.replace_collections(collections)

    logger.info(
        f"♻️ Copia restaurada: {len(bundle.sins)} pecados, "
        f"{len(bundle.buenas_obras)} buenas obras, {len(bundle.exam_sessions)} sesiones"
    )
    return bundle


__all__ = ["export_backup", "restore_backup"]

"""
Paquete de storage de MAGIS.

Gestiona el almacén de colecciones, los repositorios por entidad, las copias
de seguridad y la importación desde CSV.
"""

from .backup import export_backup, restore_backup
from .csv_import import ImportResult, ImportRowError, import_buenas_obras_csv, import_sins_csv
from .database import DatabaseManager, StorageError, get_database_manager
from .models import COLLECTION_NAMES, Base, CollectionRecord, create_all_tables, get_model_info
from .repositories import (
    CatalogRepository,
    EntityRepository,
    MagisStore,
    NotesRepository,
    PreferencesRepository,
    SessionRepository,
    UserStateRepository,
)


def initialize_database():
    """Inicializa la base de datos creando tablas si es necesario."""
    db_manager = get_database_manager()
    return db_manager


def get_database_health():
    """Obtiene estadísticas de salud de la base de datos."""
    db_manager = get_database_manager()
    return db_manager.get_health_status()


__all__ = [
    "Base",
    "COLLECTION_NAMES",
    "CatalogRepository",
    "CollectionRecord",
    "DatabaseManager",
    "EntityRepository",
    "ImportResult",
    "ImportRowError",
    "MagisStore",
    "NotesRepository",
    "PreferencesRepository",
    "SessionRepository",
    "StorageError",
    "UserStateRepository",
    "create_all_tables",
    "export_backup",
    "get_database_health",
    "get_database_manager",
    "get_model_info",
    "import_buenas_obras_csv",
    "import_sins_csv",
    "initialize_database",
    "restore_backup",
]

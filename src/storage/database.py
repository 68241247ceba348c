# src/storage/database.py
# Manejador de base de datos para MAGIS
# =====================================

"""
Capa de acceso al almacén de colecciones.

Cada colección es una lista plana de diccionarios guardada en una fila de
``collections``. Toda mutación es un ciclo completo de lectura, cambio en
memoria y escritura dentro de una única transacción, de modo que nunca
queda escrita una colección a medias.

La capa funciona igual sobre SQLite (uso normal, un único usuario) o
PostgreSQL.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, func
from sqlalchemy.orm import Session, sessionmaker

from config.settings import DATABASE_CONFIG

from .models import COLLECTION_NAMES, Base, CollectionRecord

# Configurar logging para este módulo
logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Fallo explícito del almacén (restauración de copias de seguridad)."""


class DatabaseManager:
    """
    Clase principal que maneja las colecciones persistidas.

    Las lecturas nunca lanzan por datos corruptos: una colección ilegible se
    registra en el log y se lee como vacía.
    """

    def __init__(self, database_config: Dict[str, Any] = None):
        """
        Inicializa el manejador de base de datos.

        Args:
            database_config: Configuración de base de datos. Si no se
                proporciona, usa ``DATABASE_CONFIG`` de settings.
        """
        self.config = database_config or DATABASE_CONFIG
        self.engine = None
        self.SessionLocal = None
        self._setup_database()

    def _setup_database(self):
        """Crea el motor, la fábrica de sesiones y las tablas."""
        try:
            db_type = self.config.get("type", "sqlite")
            if db_type == "sqlite":
                db_path = Path(self.config["path"])
                db_path.parent.mkdir(parents=True, exist_ok=True)
                self.engine = create_engine(
                    f"sqlite:///{db_path}",
                    echo=False,
                    connect_args={
                        "check_same_thread": False,
                        "timeout": self.config.get("connect_timeout", 20),
                    },
                    pool_pre_ping=True,
                )

            elif db_type == "postgresql":
                database_url = (
                    f"postgresql://{self.config['user']}:{self.config.get('password') or ''}"
                    f"@{self.config['host']}:{self.config['port']}/{self.config['name']}"
                )
                self.engine = create_engine(
                    database_url,
                    echo=False,
                    pool_size=self.config.get("pool_size", 5),
                    max_overflow=self.config.get("max_overflow", 10),
                    pool_pre_ping=True,
                )

            else:
                raise ValueError(f"Tipo de base de datos no soportado: {db_type}")

            self.SessionLocal = sessionmaker(
                autocommit=False,
                autoflush=False,
                bind=self.engine,
                expire_on_commit=False,
            )
            Base.metadata.create_all(self.engine)
            logger.info(f"✅ Base de datos configurada exitosamente: {db_type}")

        except Exception as e:
            logger.error(f"❌ Error configurando base de datos: {e}")
            raise

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """
        Context manager para manejar sesiones de base de datos.

        Confirma la transacción al salir; ante cualquier error hace rollback,
        lo registra y vuelve a lanzarlo.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Error en operación de base de datos: {e}")
            raise
        finally:
            session.close()

    # =====================================
    # OPERACIONES CON COLECCIONES
    # =====================================

    @staticmethod
    def _decode(name: str, record: Optional[CollectionRecord]) -> List[Dict[str, Any]]:
        if record is None or not record.payload:
            return []
        try:
            items = json.loads(record.payload)
        except (TypeError, ValueError) as exc:
            logger.warning(f"⚠️ Colección '{name}' corrupta, se lee como vacía: {exc}")
            return []
        if not isinstance(items, list):
            logger.warning(f"⚠️ Colección '{name}' no es una lista, se lee como vacía")
            return []
        return [item for item in items if isinstance(item, dict)]

    @staticmethod
    def _store(session: Session, name: str, items: List[Dict[str, Any]]) -> None:
        payload = json.dumps(items, ensure_ascii=False, default=str)
        record = session.get(CollectionRecord, name)
        if record is None:
            record = CollectionRecord(name=name)
            session.add(record)
        record.payload = payload
        record.item_count = len(items)
        record.updated_at = datetime.now(timezone.utc)

    def read_collection(self, name: str) -> List[Dict[str, Any]]:
        """Lee una colección completa; vacía si no existe o está corrupta."""
        with self.get_session() as session:
            return self._decode(name, session.get(CollectionRecord, name))

    def write_collection(self, name: str, items: List[Dict[str, Any]]) -> None:
        """Reemplaza una colección completa."""
        with self.get_session() as session:
            self._store(session, name, list(items))
        logger.debug(f"💾 Colección '{name}' guardada ({len(items)} elementos)")

    @contextmanager
    def mutate_collection(self, name: str) -> Iterator[List[Dict[str, Any]]]:
        """
        Relee la colección, entrega una lista mutable y la escribe al salir.

        Todo ocurre en la misma transacción; si el bloque lanza, no se
        escribe nada.
        """
        with self.get_session() as session:
            items = self._decode(name, session.get(CollectionRecord, name))
            yield items
            self._store(session, name, items)

    def replace_collections(self, collections: Dict[str, List[Dict[str, Any]]]) -> None:
        """Reemplaza varias colecciones en una sola transacción."""
        with self.get_session() as session:
            for name, items in collections.items():
                self._store(session, name, list(items))
        logger.info(f"♻️ Colecciones reemplazadas: {', '.join(sorted(collections))}")

    def get_health_status(self) -> Dict[str, Any]:
        """Resumen del almacén: elementos por colección y última escritura."""
        with self.get_session() as session:
            records = session.query(CollectionRecord).all()
            last_write = session.query(func.max(CollectionRecord.updated_at)).scalar()
            counts = {record.name: record.item_count for record in records}

        return {
            "collections": {name: counts.get(name, 0) for name in COLLECTION_NAMES},
            "last_write": last_write.isoformat() if last_write else None,
            "database_type": self.config.get("type", "sqlite"),
            "status": "healthy",
        }


# Instancia global del manejador de base de datos
_db_manager = None


def get_database_manager() -> DatabaseManager:
    """Devuelve el ``DatabaseManager`` compartido, creándolo la primera vez."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


__all__ = ["DatabaseManager", "StorageError", "get_database_manager"]

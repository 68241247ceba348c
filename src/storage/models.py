# src/storage/models.py
# Modelos de datos de MAGIS
# =========================

"""
El almacenamiento es un almacén de colecciones con clave: cada tipo de
entidad (pecados, buenas obras, sesiones, notas...) se guarda como una
lista plana serializada en JSON dentro de una sola fila.

Las lecturas y escrituras son siempre de la colección completa; la
validación de cada elemento la hacen los contratos de ``src.contracts``.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

# Base para todos los modelos
Base = declarative_base()

COLLECTION_NAMES = (
    "sins",
    "buenas_obras",
    "exam_sessions",
    "notes",
    "person_types",
    "activities",
    "preferences",
    "user_state",
)


class CollectionRecord(Base):
    """Una colección completa serializada como lista JSON."""

    __tablename__ = "collections"

    name = Column(String(64), primary_key=True)
    payload = Column(Text, nullable=False, default="[]")
    item_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<CollectionRecord(name='{self.name}', items={self.item_count})>"


def create_all_tables(engine):
    """Crea las tablas del almacén si no existen."""
    Base.metadata.create_all(engine)


def get_model_info():
    """Información de tablas y columnas, útil para diagnóstico."""
    info = {}
    for model in (CollectionRecord,):
        info[model.__name__] = {
            "table_name": model.__tablename__,
            "columns": [col.name for col in model.__table__.columns],
        }
    return info


__all__ = [
    "Base",
    "COLLECTION_NAMES",
    "CollectionRecord",
    "create_all_tables",
    "get_model_info",
]

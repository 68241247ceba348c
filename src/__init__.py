"""
Paquete principal de MAGIS.

Contiene los módulos funcionales del sistema: contratos, scoring,
métricas, almacenamiento y utilidades.
"""

from config.version import PROJECT_VERSION, PYTHON_REQUIRES_SPECIFIER

from .metrics import calculate_metrics
from .scoring import EventScorer, create_scorer
from .storage import DatabaseManager, MagisStore, get_database_manager
from .utils import get_logger, setup_logging

__version__ = PROJECT_VERSION
__description__ = "Examen de conciencia con puntuación de eventos y métricas por período"

__package_info__ = {
    "name": "magis",
    "version": __version__,
    "description": __description__,
    "author": "MAGIS Team",
    "license": "MIT",
    "python_requires": PYTHON_REQUIRES_SPECIFIER,
}

__all__ = [
    "EventScorer",
    "create_scorer",
    "calculate_metrics",
    "MagisStore",
    "get_database_manager",
    "DatabaseManager",
    "get_logger",
    "setup_logging",
]

# src/utils/logger.py
# Sistema de logging de MAGIS
# ===========================

"""
Configuración central de loguru para MAGIS.

Un sink de consola y, si hay ruta configurada, un archivo rotado y
comprimido. Los módulos de librería siguen usando ``logging`` estándar;
este módulo es para los puntos de entrada (scripts, CLI) y para el
registro de las sesiones de examen.
"""

import functools
import sys
import time
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from config.settings import DEBUG, LOGGING_CONFIG


class MagisLogger:
    """
    Configurador centralizado de logging.

    Se configura una sola vez; las llamadas posteriores a
    ``configure_logging`` se ignoran salvo que se pida ``force``.
    """

    def __init__(self):
        self.is_configured = False
        self.log_file_path: Optional[Path] = None

    def configure_logging(self, config: Optional[Dict[str, Any]] = None, force: bool = False):
        """
        Configura los sinks de loguru.

        Args:
            config: Configuración de logging. Si no se proporciona, usa
                ``LOGGING_CONFIG`` de settings.
            force: Reconfigura aunque ya se haya configurado antes.
        """
        if self.is_configured and not force:
            logger.debug("Logger ya configurado, omitiendo reconfiguración")
            return

        config = config or LOGGING_CONFIG

        # Remover configuración por defecto de loguru
        logger.remove()

        self._configure_console_handler(config)

        if config.get("file_path"):
            self._configure_file_handler(config)

        self.is_configured = True
        logger.debug(f"Configuración de logging aplicada: {config}")

    def _configure_console_handler(self, config: Dict[str, Any]):
        """En desarrollo, formato colorido y detallado; si no, compacto."""
        if DEBUG:
            console_format = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level>"
            )
            console_level = "DEBUG"
        else:
            console_format = config.get(
                "format", "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"
            )
            console_level = config.get("level", "INFO")

        logger.add(
            sys.stderr,
            format=console_format,
            level=console_level,
            colorize=DEBUG,
            backtrace=DEBUG,
            diagnose=DEBUG,
        )

    def _configure_file_handler(self, config: Dict[str, Any]):
        """Archivo con rotación por tamaño, retención y compresión gz."""
        self.log_file_path = Path(config["file_path"])
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
            "{level: <8} | "
            "{name}:{function}:{line} | "
            "{extra} | "
            "{message}"
        )

        logger.add(
            str(self.log_file_path),
            format=file_format,
            level=config.get("level", "INFO"),
            rotation=config.get("max_file_size", "10 MB"),
            retention=config.get("retention", "30 days"),
            compression="gz",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )


class ExamSessionLogger:
    """
    Logger ligado a una sesión de examen.

    Registra el inicio, cada evento registrado y el resumen al completar.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.logger = logger.bind(session_id=session_id)
        self._started = time.monotonic()
        self.sin_events = 0
        self.buena_obra_events = 0

    def log_session_start(self, context_size: int = 0):
        self.logger.info(f"🎯 Examen iniciado ({context_size} ítems en el cuestionario)")

    def log_sin_event(self, sin_name: str, score: float, mortal: bool = False):
        self.sin_events += 1
        marker = "⛔" if mortal else "•"
        self.logger.info(f"{marker} Pecado registrado: {sin_name} ({score:.1f} pts)")

    def log_buena_obra_event(self, obra_name: str, score: float):
        self.buena_obra_events += 1
        self.logger.info(f"🌱 Buena obra registrada: {obra_name} ({score:.1f} pts)")

    def log_rejected(self, item_id: str, reason: str):
        self.logger.warning(f"❌ Evento rechazado para {item_id}: {reason}")

    def log_session_summary(self, summary: Optional[Dict[str, Any]] = None):
        """Resumen final de la sesión."""
        summary = summary or {}
        duration = time.monotonic() - self._started
        self.logger.info("📈 RESUMEN DEL EXAMEN:")
        self.logger.info(f"  • Pecados registrados: {summary.get('sin_events', self.sin_events)}")
        self.logger.info(
            f"  • Buenas obras registradas: "
            f"{summary.get('buena_obra_events', self.buena_obra_events)}"
        )
        if "score" in summary:
            self.logger.info(f"  • Puntaje de la sesión: {summary['score']:.1f}")
        self.logger.info(f"  • Duración: {summary.get('duration_seconds', duration):.1f}s")


# Instancia global del configurador de logging
_logger_instance = None


def get_logger() -> MagisLogger:
    """Devuelve el configurador compartido, configurándolo la primera vez."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = MagisLogger()
        _logger_instance.configure_logging()
    return _logger_instance


def setup_logging(config: Optional[Dict[str, Any]] = None) -> MagisLogger:
    """
    Configura logging al arrancar un punto de entrada.

    Args:
        config: Configuración opcional; si se da, reemplaza los sinks.
    """
    logger_instance = get_logger()
    if config:
        logger_instance.configure_logging(config, force=True)
    return logger_instance


def log_function_calls(logger_instance=None):
    """Decorador que registra la entrada, la duración y los fallos de una función."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            func_logger = logger_instance or logger
            func_logger.debug(f"🔄 Ejecutando {func.__name__}")

            start_time = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                func_logger.error(f"❌ {func.__name__} falló después de {duration:.3f}s: {e}")
                raise

            duration = time.perf_counter() - start_time
            func_logger.debug(f"✅ {func.__name__} completada en {duration:.3f}s")
            return result

        return wrapper

    return decorator


__all__ = [
    "ExamSessionLogger",
    "MagisLogger",
    "get_logger",
    "log_function_calls",
    "setup_logging",
]

"""Project configuration facade backed by magis.config_manager."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from magis.config_manager import Config, ConfigError, load_config

CONFIG: Config = load_config()

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = CONFIG.paths.data_dir
LOGS_DIR = CONFIG.paths.logs_dir
EXPORTS_DIR = CONFIG.paths.exports_dir

ENVIRONMENT = CONFIG.app.environment
DEBUG = CONFIG.app.debug
IS_PRODUCTION = ENVIRONMENT == "production"
DISPLAY_TIMEZONE: str = CONFIG.app.timezone

DATABASE_CONFIG: Dict[str, Any] = CONFIG.database.model_dump(mode="python")
DATABASE_CONFIG["type"] = DATABASE_CONFIG.pop("driver")

SCORING_CONFIG: Dict[str, Any] = CONFIG.scoring.model_dump(mode="python")
METRICS_CONFIG: Dict[str, Any] = CONFIG.metrics.model_dump(mode="python")
METRICS_CONFIG["timezone"] = DISPLAY_TIMEZONE
RESET_CONFIG: Dict[str, Any] = CONFIG.reset.model_dump(mode="python")
RESET_CONFIG["timezone"] = DISPLAY_TIMEZONE
IMPORT_CONFIG: Dict[str, Any] = CONFIG.importing.model_dump(mode="python")

LOGGING_CONFIG: Dict[str, Any] = {
    "level": CONFIG.logging.level,
    "file_path": str(CONFIG.logging.file_path),
    "max_file_size": f"{CONFIG.logging.max_file_size_mb} MB",
    "retention": f"{CONFIG.logging.retention_days} days",
    "format": CONFIG.logging.format,
}


def ensure_runtime_dirs(config: Config | None = None) -> None:
    """Create the data, logs and exports directories."""

    cfg = config or CONFIG
    for directory in (cfg.paths.data_dir, cfg.paths.logs_dir, cfg.paths.exports_dir):
        directory.mkdir(parents=True, exist_ok=True)


def validate_config(config: Config | None = None) -> None:
    """Execute domain specific consistency checks beyond the schema."""

    cfg = config or CONFIG
    scoring = cfg.scoring
    if scoring.special_factors.cap < max(
        scoring.special_factors.holy_spirit,
        scoring.special_factors.cries_to_heaven,
        scoring.special_factors.capital_sin,
    ):
        raise ConfigError("scoring.special_factors.cap is below a single special factor")
    if scoring.base_weights.mortal_ex_toto > scoring.max_raw:
        raise ConfigError("scoring.max_raw must be >= scoring.base_weights.mortal_ex_toto")
    if cfg.metrics.pass_grade <= cfg.metrics.mortal_ceiling:
        raise ConfigError("metrics.pass_grade must be above metrics.mortal_ceiling")
    if cfg.database.driver == "sqlite" and not cfg.database.path:
        raise ConfigError("sqlite driver requires database.path")


__all__ = [
    "BASE_DIR",
    "CONFIG",
    "DATA_DIR",
    "LOGS_DIR",
    "EXPORTS_DIR",
    "ENVIRONMENT",
    "DEBUG",
    "IS_PRODUCTION",
    "DISPLAY_TIMEZONE",
    "DATABASE_CONFIG",
    "SCORING_CONFIG",
    "METRICS_CONFIG",
    "RESET_CONFIG",
    "IMPORT_CONFIG",
    "LOGGING_CONFIG",
    "ensure_runtime_dirs",
    "validate_config",
]

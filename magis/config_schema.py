"""Declarative configuration schema for MAGIS."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveFloat,
    PositiveInt,
    PrivateAttr,
    field_validator,
    model_validator,
)


class StrictModel(BaseModel):
    """Base model enforcing strict validation rules."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
    )


class AppSettings(StrictModel):
    """Top-level runtime metadata."""

    environment: str = Field(
        default="development",
        description="Normalized deployment environment name.",
        examples=["production"],
    )
    debug: bool = Field(
        default=False,
        description="When true, enables verbose logging.",
    )
    timezone: str = Field(
        default="UTC",
        description="Timezone used for calendar-day logic and chart labels.",
        examples=["Europe/Madrid"],
    )

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"development", "production", "staging", "test"}:
            raise ValueError(
                "environment must be one of: development, staging, production, test"
            )
        return normalized

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone key: {value}") from exc
        return value


class PathsConfig(StrictModel):
    """Filesystem layout settings."""

    data_dir: Path = Field(
        default=Path("data"),
        description="Root directory for persistent runtime artefacts.",
        examples=["/var/lib/magis"],
    )
    logs_dir: Path = Field(
        default=Path("logs"),
        description="Directory where operational logs are written.",
    )
    exports_dir: Path = Field(
        default=Path("exports"),
        description="Directory where backup bundles are written by default.",
    )

    @model_validator(mode="after")
    def _ensure_child_paths(self) -> "PathsConfig":
        base = self.data_dir if self.data_dir.is_absolute() else self.data_dir.resolve()
        object.__setattr__(self, "data_dir", base)
        if not self.logs_dir.is_absolute():
            object.__setattr__(self, "logs_dir", (base / self.logs_dir).resolve())
        if not self.exports_dir.is_absolute():
            object.__setattr__(self, "exports_dir", (base / self.exports_dir).resolve())
        return self


class DatabaseConfig(StrictModel):
    """Keyed-record store connectivity parameters."""

    driver: str = Field(
        default="sqlite",
        description="Database backend driver to use.",
        examples=["postgresql"],
    )
    path: Optional[Path] = Field(
        default=Path("data/magis.db"),
        description="Filesystem path for SQLite database files.",
    )
    host: Optional[str] = Field(
        default=None,
        description="Hostname for the SQL server when using a network backend.",
        examples=["db.internal"],
    )
    port: Optional[int] = Field(
        default=None,
        description="TCP port for the SQL server backend.",
        examples=[5432],
    )
    name: str = Field(default="magis", description="Database name or schema.")
    user: Optional[str] = Field(
        default=None,
        description="Database username for authenticated connections.",
    )
    password: Optional[str] = Field(
        default=None,
        description="Database password; treated as secret.",
    )
    connect_timeout: PositiveInt = Field(
        default=20, description="Seconds to wait for a connection or a lock."
    )
    pool_size: PositiveInt = Field(
        default=5, description="Number of persistent connections (PostgreSQL)."
    )
    max_overflow: PositiveInt = Field(
        default=10,
        description="How many extra connections can be opened temporarily.",
    )

    @field_validator("port", mode="before")
    @classmethod
    def _blank_port(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    @model_validator(mode="after")
    def _validate_backend(self) -> "DatabaseConfig":
        driver = self.driver.lower()
        if driver not in {"sqlite", "postgresql"}:
            raise ValueError("driver must be either 'sqlite' or 'postgresql'")
        if driver == "sqlite":
            if not self.path:
                raise ValueError("SQLite configuration requires a file path")
        else:
            missing: list[str] = []
            for field_name in ("host", "port", "user"):
                if getattr(self, field_name) in (None, ""):
                    missing.append(field_name)
            if missing:
                raise ValueError(
                    "PostgreSQL configuration requires fields: " + ", ".join(missing)
                )
            if self.port is not None and self.port <= 0:
                raise ValueError("Database port must be a positive integer")
        return self


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class BaseWeightsConfig(StrictModel):
    """Gravity-derived base weight used when no manual override is set."""

    mortal_ex_toto: PositiveFloat = Field(
        default=80.0, description="Mortal sin whose matter is grave ex toto."
    )
    mortal_other: PositiveFloat = Field(
        default=60.0, description="Mortal sin of any other matter type."
    )
    venial: PositiveFloat = Field(default=10.0, description="Venial sin.")

    @model_validator(mode="after")
    def _check_order(self) -> "BaseWeightsConfig":
        if not (self.mortal_ex_toto >= self.mortal_other > self.venial):
            raise ValueError(
                "base weights must satisfy mortal_ex_toto >= mortal_other > venial"
            )
        return self


class TermFactorsConfig(StrictModel):
    """Multiplier per moral term; the highest present term applies."""

    contra_dios: PositiveFloat = Field(default=1.10)
    contra_projimo: PositiveFloat = Field(default=1.05)
    contra_si_mismo: PositiveFloat = Field(default=1.00)


class SpecialFactorsConfig(StrictModel):
    """Special-category aggravation detected from catalog tags."""

    holy_spirit: PositiveFloat = Field(
        default=1.50, description="Sin against the Holy Spirit."
    )
    cries_to_heaven: PositiveFloat = Field(
        default=1.35, description="Sin that cries to heaven."
    )
    capital_sin: PositiveFloat = Field(
        default=1.10, description="Sin linked to at least one capital sin."
    )
    cap: PositiveFloat = Field(
        default=2.0, description="Upper bound of the combined special factor."
    )
    holy_spirit_keywords: List[str] = Field(
        default_factory=lambda: [
            "espíritu santo",
            "impenitencia",
            "presunción",
            "desesperación",
        ],
        description="Lower-case tag fragments marking sins against the Holy Spirit.",
    )
    cries_to_heaven_keywords: List[str] = Field(
        default_factory=lambda: ["clama al cielo", "sangre inocente", "opresión"],
        description="Lower-case tag fragments marking sins that cry to heaven.",
    )

    @model_validator(mode="after")
    def _check_cap(self) -> "SpecialFactorsConfig":
        if self.cap < 1.0:
            raise ValueError("special factor cap must be >= 1.0")
        return self


class ManifestationFactorsConfig(StrictModel):
    """Multiplier per manifestation; the highest present value applies."""

    externo: PositiveFloat = Field(default=1.35)
    interno: PositiveFloat = Field(default=1.00)


class AttentionFactorsConfig(StrictModel):
    """Attention multiplier."""

    deliberado: PositiveFloat = Field(default=1.0)
    semideliberado: PositiveFloat = Field(default=0.6)

    @model_validator(mode="after")
    def _check_order(self) -> "AttentionFactorsConfig":
        if not self.deliberado > self.semideliberado:
            raise ValueError("attention factors require deliberado > semideliberado")
        return self


class MotiveFactorsConfig(StrictModel):
    """Motive multiplier."""

    malicia: PositiveFloat = Field(default=1.25)
    fragilidad: PositiveFloat = Field(default=1.0)
    ignorancia: PositiveFloat = Field(default=0.7)

    @model_validator(mode="after")
    def _check_order(self) -> "MotiveFactorsConfig":
        if not (self.malicia > self.fragilidad > self.ignorancia):
            raise ValueError(
                "motive factors require malicia > fragilidad > ignorancia"
            )
        return self


class ResponsibilityFactorsConfig(StrictModel):
    """Responsibility gate."""

    formal: PositiveFloat = Field(default=1.0)
    material: PositiveFloat = Field(default=0.25)

    @model_validator(mode="after")
    def _check_order(self) -> "ResponsibilityFactorsConfig":
        if not self.formal > self.material:
            raise ValueError("responsibility factors require formal > material")
        return self


class FlagFactorsConfig(StrictModel):
    """Optional aggravating circumstances recorded on an event."""

    escandalo_grave: float = Field(default=1.20, ge=1.0)
    fin_gravemente_malo: float = Field(default=1.30, ge=1.0)
    desprecio_formal_ley: float = Field(default=1.30, ge=1.0)
    peligro_proximo: float = Field(default=1.15, ge=1.0)


class CondicionantesConfig(StrictModel):
    """Exponential base applied per matching active condicionante."""

    sin_base: float = Field(
        default=0.80,
        gt=0.0,
        lt=1.0,
        description="Attenuation base for sins (factor = base ** k).",
    )
    good_work_base: float = Field(
        default=1.20,
        gt=1.0,
        description="Amplification base for good deeds (factor = base ** k).",
    )


class SacrificeFactorsConfig(StrictModel):
    """Relative-sacrifice modifier for good deeds."""

    alto: PositiveFloat = Field(default=1.5)
    normal: PositiveFloat = Field(default=1.0)
    bajo: PositiveFloat = Field(default=0.7)


class GoodWorksConfig(StrictModel):
    """Good-deed scoring parameters."""

    base: PositiveFloat = Field(
        default=10.0, description="Base score when no override is defined."
    )
    sacrifice: SacrificeFactorsConfig = Field(default_factory=SacrificeFactorsConfig)


class ScoringConfig(StrictModel):
    """Per-event weighting model."""

    base_weights: BaseWeightsConfig = Field(default_factory=BaseWeightsConfig)
    term_factors: TermFactorsConfig = Field(default_factory=TermFactorsConfig)
    special_factors: SpecialFactorsConfig = Field(default_factory=SpecialFactorsConfig)
    manifestation_factors: ManifestationFactorsConfig = Field(
        default_factory=ManifestationFactorsConfig
    )
    attention_factors: AttentionFactorsConfig = Field(
        default_factory=AttentionFactorsConfig
    )
    motive_factors: MotiveFactorsConfig = Field(default_factory=MotiveFactorsConfig)
    responsibility_factors: ResponsibilityFactorsConfig = Field(
        default_factory=ResponsibilityFactorsConfig
    )
    flag_factors: FlagFactorsConfig = Field(default_factory=FlagFactorsConfig)
    condicionantes: CondicionantesConfig = Field(default_factory=CondicionantesConfig)
    good_works: GoodWorksConfig = Field(default_factory=GoodWorksConfig)
    max_raw: PositiveFloat = Field(
        default=165.0,
        description="Raw objective x subjective product mapped to the top of the scale.",
    )
    normalization_scale: PositiveFloat = Field(
        default=100.0,
        description="Normalized score reached by a single capped occurrence.",
    )


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class MetricsConfig(StrictModel):
    """Period grade, variation and bucketing parameters."""

    full_mark: PositiveFloat = Field(
        default=10.0, description="Grade of a period without negative points."
    )
    mortal_ceiling: PositiveFloat = Field(
        default=4.9,
        description="Maximum grade when a mortal-imputable event or aggregation exists.",
    )
    pass_grade: PositiveFloat = Field(
        default=5.0, description="Minimum grade considered a pass."
    )
    grade_floor: float = Field(
        default=1.0, ge=0.0, description="Lowest reportable grade."
    )
    points_divisor: PositiveFloat = Field(
        default=10.0,
        description="Divisor turning summed scores into grade points.",
    )
    variation_band: float = Field(
        default=0.10,
        gt=0.0,
        lt=1.0,
        description="Relative change required to leave the 'stable' band.",
    )
    epsilon: PositiveFloat = Field(
        default=0.001, description="Lower bound for the variation denominator."
    )
    daily_bucket_max_days: PositiveInt = Field(
        default=14,
        description="Largest span (days) charted with daily buckets; weekly beyond.",
    )
    default_custom_days: PositiveInt = Field(
        default=7, description="Span of a custom period without explicit start."
    )

    @model_validator(mode="after")
    def _check_grades(self) -> "MetricsConfig":
        if not (self.grade_floor < self.mortal_ceiling < self.full_mark):
            raise ValueError(
                "metrics grades require grade_floor < mortal_ceiling < full_mark"
            )
        if self.pass_grade > self.full_mark:
            raise ValueError("pass_grade cannot exceed full_mark")
        return self


class ResetConfig(StrictModel):
    """Fixed-length approximations used by reset cycles."""

    weekly_days: PositiveInt = Field(default=7)
    monthly_days: PositiveInt = Field(default=30)
    yearly_days: PositiveInt = Field(default=365)
    custom_month_days: PositiveInt = Field(
        default=30, description="Days counted per month in custom reset rules."
    )


class ImportingConfig(StrictModel):
    """CSV import behaviour."""

    default_duplicate_strategy: str = Field(
        default="skip",
        description="How rows matching an existing name are handled.",
        examples=["merge"],
    )
    multi_value_separators: List[str] = Field(
        default_factory=lambda: [";", "|"],
        description="Separators splitting multi-valued cells.",
    )

    @field_validator("default_duplicate_strategy")
    @classmethod
    def _check_strategy(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"skip", "overwrite", "merge"}:
            raise ValueError("duplicate strategy must be skip, overwrite or merge")
        return normalized


class LoggingConfig(StrictModel):
    """Logging subsystem configuration."""

    level: str = Field(
        default="INFO",
        description="Minimum log level captured by the application logger.",
        examples=["DEBUG"],
    )
    file_path: Path = Field(
        default=Path("data/logs/magis.log"),
        description="Path of the rotating log file.",
    )
    max_file_size_mb: PositiveInt = Field(
        default=10,
        description="Maximum size per log file before rotation (MiB).",
    )
    retention_days: PositiveInt = Field(
        default=30,
        description="Number of days to keep rotated log files.",
    )
    format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {name}:{line} | {message}",
        description="Log formatting template compatible with loguru.",
    )

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unsupported log level: {value}")
        return normalized

    @model_validator(mode="after")
    def _resolve_path(self) -> "LoggingConfig":
        if not self.file_path.is_absolute():
            object.__setattr__(self, "file_path", self.file_path.resolve())
        return self


class Config(StrictModel):
    """Complete MAGIS configuration model."""

    app: AppSettings = Field(default_factory=AppSettings)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    reset: ResetConfig = Field(default_factory=ResetConfig)
    importing: ImportingConfig = Field(default_factory=ImportingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    _metadata: object = PrivateAttr(default=None)


DEFAULT_CONFIG = Config()


def iter_field_docs(
    model: BaseModel | type[BaseModel],
    prefix: str = "",
    *,
    include_defaults: bool = True,
) -> Iterable[dict[str, object]]:
    """Yield flattened schema documentation entries."""

    instance = DEFAULT_CONFIG if isinstance(model, type) else model
    target_model = type(instance)

    for name, field in target_model.model_fields.items():
        value = getattr(instance, name, field.default)
        key = f"{prefix}.{name}" if prefix else name
        is_nested = isinstance(value, BaseModel)
        yield {
            "name": key,
            "type": getattr(field.annotation, "__name__", str(field.annotation)),
            "description": field.description or "",
            "default": None if (is_nested or not include_defaults) else value,
            "examples": field.examples or [],
            "constraints": _describe_constraints(field),
            "is_nested": is_nested,
        }
        if is_nested:
            yield from iter_field_docs(value, key, include_defaults=include_defaults)


_COMPARATORS = {
    "ge": ">=",
    "gt": ">",
    "le": "<=",
    "lt": "<",
    "max_length": "len<=",
    "min_length": "len>=",
}


def _describe_constraints(field: Any) -> str:
    """Return a human readable description of field constraints."""

    parts: list[str] = []
    for item in getattr(field, "metadata", []) or []:
        for attr, comparator in _COMPARATORS.items():
            bound = getattr(item, attr, None)
            if bound is not None:
                parts.append(f"{comparator} {bound}")
    return ", ".join(parts)


__all__ = [
    "Config",
    "DEFAULT_CONFIG",
    "StrictModel",
    "iter_field_docs",
]

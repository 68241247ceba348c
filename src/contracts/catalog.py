"""Catalog definitions: sins, good deeds, person types and activities."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Tuple

from pydantic import Field, PositiveInt, field_validator, model_validator

from src.utils.datetime_utils import utc_now

from .common import DomainModel, coerce_timestamp, new_id, unique
from .enums import (
    BuenaObraTerm,
    CharityLevel,
    Circunstancias,
    CustomResetUnit,
    Gravity,
    Manifestation,
    MateriaTipo,
    Mode,
    ObjectType,
    PurityOfIntention,
    Quality,
    ResetCycle,
    SacrificioRelativo,
    Term,
)


COLOR_PALETTES: Tuple[str, ...] = ("standard", "cool", "warm", "muted")


class CustomResetRule(DomainModel):
    """Custom reset window, e.g. every 3 weeks."""

    unit: CustomResetUnit = CustomResetUnit.DAYS
    value: PositiveInt = 1


class _CatalogItem(DomainModel):
    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1)
    short_description: str = ""
    extra_info: str = ""
    involved_person_types: List[str] = Field(default_factory=list)
    associated_activities: List[str] = Field(default_factory=list)
    spiritual_aspects: List[str] = Field(default_factory=list)
    condicionantes: List[str] = Field(
        default_factory=list,
        description="Condicionantes this item is compatible with.",
    )
    tags: List[str] = Field(default_factory=list)
    reset_cycle: ResetCycle = ResetCycle.NO
    custom_reset_rule: Optional[CustomResetRule] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    is_default: bool = False
    is_disabled: bool = False

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _normalize_timestamps(cls, value: Any) -> Any:
        return coerce_timestamp(value)

    @field_validator(
        "involved_person_types",
        "associated_activities",
        "spiritual_aspects",
        "condicionantes",
        "tags",
    )
    @classmethod
    def _dedupe_strings(cls, value: List[str]) -> List[str]:
        return unique(value)

    @model_validator(mode="after")
    def _check_reset_rule(self) -> Any:
        if self.reset_cycle == ResetCycle.PERSONALIZADO and self.custom_reset_rule is None:
            raise ValueError("reset_cycle 'personalizado' requires custom_reset_rule")
        return self


class Sin(_CatalogItem):
    """Definition of a trackable transgression."""

    terms: List[Term] = Field(..., min_length=1)
    gravities: List[Gravity] = Field(default_factory=list)
    materia_tipo: List[MateriaTipo] = Field(default_factory=list)
    admite_parvedad: bool = False
    opposite_virtues: List[str] = Field(default_factory=list)
    capital_sins: List[str] = Field(default_factory=list)
    vows: List[str] = Field(default_factory=list)
    manifestations: List[Manifestation] = Field(default_factory=list)
    object_types: List[ObjectType] = Field(default_factory=list)
    modes: List[Mode] = Field(default_factory=list)
    color_palette_key: str = "standard"
    can_aggregate_to_mortal: bool = False
    mortal_threshold_units: float = Field(default=10.0, gt=0, allow_inf_nan=False)
    unit_per_tap: float = Field(default=1.0, gt=0, allow_inf_nan=False)
    manual_weight_override: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    @field_validator("color_palette_key")
    @classmethod
    def _check_palette(cls, value: str) -> str:
        if value not in COLOR_PALETTES:
            raise ValueError(f"unknown color palette: {value}")
        return value

    @field_validator(
        "terms",
        "gravities",
        "materia_tipo",
        "manifestations",
        "object_types",
        "modes",
        "opposite_virtues",
        "capital_sins",
        "vows",
    )
    @classmethod
    def _dedupe_enums(cls, value: List[Any]) -> List[Any]:
        return unique(value)

    @property
    def is_mortal(self) -> bool:
        return Gravity.MORTAL in self.gravities


class BuenaObra(_CatalogItem):
    """Definition of a trackable good deed."""

    terms: List[BuenaObraTerm] = Field(default_factory=list)
    purity_of_intentions: List[PurityOfIntention] = Field(default_factory=list)
    charity_levels: List[CharityLevel] = Field(default_factory=list)
    qualities: List[Quality] = Field(default_factory=list)
    circunstancias: List[Circunstancias] = Field(default_factory=list)
    virtues: List[str] = Field(default_factory=list)
    sacrificio_relativo: SacrificioRelativo = SacrificioRelativo.NORMAL
    base_good_override: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    @field_validator(
        "terms",
        "purity_of_intentions",
        "charity_levels",
        "qualities",
        "circunstancias",
        "virtues",
    )
    @classmethod
    def _dedupe_enums(cls, value: List[Any]) -> List[Any]:
        return unique(value)


class PersonType(DomainModel):
    """Kind of neighbor involved in an act."""

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1)
    is_default: bool = False


class Activity(DomainModel):
    """Activity during which an act happens."""

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1)
    is_default: bool = False


__all__ = [
    "COLOR_PALETTES",
    "Activity",
    "BuenaObra",
    "CustomResetRule",
    "PersonType",
    "Sin",
]

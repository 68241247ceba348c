"""Per-dimension breakdown tables with contribution percentages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from src.contracts.defaults import virtue_group
from src.contracts.enums import LabeledEnum

from .enrichment import EnrichedBuenaObraEvent, EnrichedSinEvent
from .trajectories import contribution

DIMENSION_ORDER: Tuple[str, ...] = (
    "term",
    "personType",
    "gravity",
    "capitalSin",
    "virtudeTeologal",
    "virtudeCardinal",
    "virtudeAnexa",
    "vow",
    "activity",
    "attention",
    "motive",
    "materiaTipo",
    "purityOfIntention",
    "manifestation",
    "mode",
    "charityLevel",
    "quality",
    "circunstancias",
    "condicionante",
    "spiritualMean",
)

DIMENSION_LABELS: Dict[str, str] = {
    "term": "Término",
    "personType": "Prójimo implicado",
    "gravity": "Gravedad",
    "capitalSin": "Pecado capital",
    "virtudeTeologal": "Virtud teologal",
    "virtudeCardinal": "Virtud moral cardinal",
    "virtudeAnexa": "Virtud moral anexa (principales)",
    "vow": "Voto",
    "activity": "Actividad",
    "attention": "Atención",
    "motive": "Motivo",
    "materiaTipo": "Tipo de materia",
    "purityOfIntention": "Intención de la buena obra",
    "manifestation": "Manifestación",
    "mode": "Modo",
    "charityLevel": "Caridad",
    "quality": "Calidad de la obra",
    "circunstancias": "Circunstancias de la buena obra",
    "condicionante": "Condicionantes",
    "spiritualMean": "Medios espirituales",
}


@dataclass
class DimensionRow:
    key: str
    label: str
    event_count: int = 0
    total_score: float = 0.0
    contribution_percent: float = 0.0


@dataclass
class DimensionTable:
    dimension: str
    label: str
    rows: Dict[str, DimensionRow] = field(default_factory=dict)

    @property
    def total_score(self) -> float:
        return sum(row.total_score for row in self.rows.values())

    def sorted_rows(self) -> List[DimensionRow]:
        return sorted(self.rows.values(), key=lambda row: row.total_score, reverse=True)


Extractor = Callable[[Any, Any], Iterable[Any]]


def _virtues(group: str) -> Extractor:
    def extract(item: Any, event: Any) -> List[str]:
        virtues = getattr(item, "opposite_virtues", None)
        if virtues is None:
            virtues = getattr(item, "virtues", [])
        return [virtue for virtue in virtues if virtue_group(virtue) == group]

    return extract


SIN_DIMENSIONS: Dict[str, Extractor] = {
    "term": lambda sin, event: sin.terms,
    "personType": lambda sin, event: sin.involved_person_types,
    "gravity": lambda sin, event: sin.gravities,
    "capitalSin": lambda sin, event: sin.capital_sins,
    "virtudeTeologal": _virtues("teologal"),
    "virtudeCardinal": _virtues("cardinal"),
    "virtudeAnexa": _virtues("anexa"),
    "vow": lambda sin, event: sin.vows,
    "activity": lambda sin, event: sin.associated_activities,
    "attention": lambda sin, event: [event.attention],
    "motive": lambda sin, event: [event.motive],
    "materiaTipo": lambda sin, event: sin.materia_tipo,
    "manifestation": lambda sin, event: sin.manifestations,
    "mode": lambda sin, event: sin.modes,
    "condicionante": lambda sin, event: sin.condicionantes,
    "spiritualMean": lambda sin, event: sin.spiritual_aspects,
}

BUENA_OBRA_DIMENSIONS: Dict[str, Extractor] = {
    "term": lambda obra, event: obra.terms,
    "personType": lambda obra, event: obra.involved_person_types,
    "virtudeTeologal": _virtues("teologal"),
    "virtudeCardinal": _virtues("cardinal"),
    "virtudeAnexa": _virtues("anexa"),
    "activity": lambda obra, event: obra.associated_activities,
    "purityOfIntention": lambda obra, event: [event.purity_of_intention],
    "charityLevel": lambda obra, event: obra.charity_levels,
    "quality": lambda obra, event: obra.qualities,
    "circunstancias": lambda obra, event: obra.circunstancias,
    "condicionante": lambda obra, event: obra.condicionantes,
    "spiritualMean": lambda obra, event: obra.spiritual_aspects,
}


def _key_and_label(
    dimension: str, value: Any, names: Mapping[str, Mapping[str, str]]
) -> Tuple[str, str]:
    if isinstance(value, LabeledEnum):
        return value.value, value.label
    if isinstance(value, Enum):
        return value.value, str(value.value)
    key = str(value)
    return key, names.get(dimension, {}).get(key, key)


def build_table(
    dimension: str,
    entries: Sequence[Tuple[Any, Any, float]],
    extractor: Extractor,
    names: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> DimensionTable:
    """
    Group ``(item, event, score)`` entries by the values of one dimension.

    An event with several values in the dimension counts once for each.
    Entity ids without a known name are shown as the id itself.
    """
    names = names or {}
    table = DimensionTable(dimension, DIMENSION_LABELS[dimension])
    for item, event, score in entries:
        for value in extractor(item, event):
            key, label = _key_and_label(dimension, value, names)
            row = table.rows.get(key)
            if row is None:
                row = table.rows[key] = DimensionRow(key, label)
            row.event_count += 1
            row.total_score += score

    total = table.total_score
    for row in table.rows.values():
        row.contribution_percent = contribution(row.total_score, total)
    return table


def build_sin_tables(
    events: Sequence[EnrichedSinEvent],
    names: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> Dict[str, DimensionTable]:
    entries = [(e.sin, e.event, e.score) for e in events]
    return {
        dimension: build_table(dimension, entries, SIN_DIMENSIONS[dimension], names)
        for dimension in DIMENSION_ORDER
        if dimension in SIN_DIMENSIONS
    }


def build_buena_obra_tables(
    events: Sequence[EnrichedBuenaObraEvent],
    names: Optional[Mapping[str, Mapping[str, str]]] = None,
) -> Dict[str, DimensionTable]:
    entries = [(e.buena_obra, e.event, e.score) for e in events]
    return {
        dimension: build_table(dimension, entries, BUENA_OBRA_DIMENSIONS[dimension], names)
        for dimension in DIMENSION_ORDER
        if dimension in BUENA_OBRA_DIMENSIONS
    }


__all__ = [
    "BUENA_OBRA_DIMENSIONS",
    "DIMENSION_LABELS",
    "DIMENSION_ORDER",
    "DimensionRow",
    "DimensionTable",
    "SIN_DIMENSIONS",
    "build_buena_obra_tables",
    "build_sin_tables",
    "build_table",
]

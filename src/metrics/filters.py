"""Conjunctive metric filter shared by every aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .enrichment import EnrichedBuenaObraEvent, EnrichedSinEvent


def _as_values(items: Iterable[Any]) -> Set[str]:
    return {item.value if isinstance(item, Enum) else str(item) for item in items}


def _overlaps(allowed: Set[str], present: Iterable[Any]) -> bool:
    return bool(allowed & _as_values(present))


@dataclass
class MetricFilter:
    """
    Inclusion lists keyed by dimension.

    An event passes when, for every populated key, at least one of its
    values is in the allowed list. Keys that have no counterpart on an
    event kind exclude that kind entirely.
    """

    sin_ids: List[str] = field(default_factory=list)
    buena_obra_ids: List[str] = field(default_factory=list)
    terms: List[str] = field(default_factory=list)
    person_type_ids: List[str] = field(default_factory=list)
    gravities: List[str] = field(default_factory=list)
    capital_sins: List[str] = field(default_factory=list)
    virtudes_teologales: List[str] = field(default_factory=list)
    virtudes_cardinales: List[str] = field(default_factory=list)
    virtudes_anexas: List[str] = field(default_factory=list)
    vows: List[str] = field(default_factory=list)
    activity_ids: List[str] = field(default_factory=list)
    attentions: List[str] = field(default_factory=list)
    motives: List[str] = field(default_factory=list)
    materia_tipos: List[str] = field(default_factory=list)
    purity_of_intentions: List[str] = field(default_factory=list)
    manifestations: List[str] = field(default_factory=list)
    modes: List[str] = field(default_factory=list)
    charity_levels: List[str] = field(default_factory=list)
    qualities: List[str] = field(default_factory=list)
    circunstancias: List[str] = field(default_factory=list)
    condicionantes: List[str] = field(default_factory=list)
    spiritual_means: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        for item in fields(self):
            values = getattr(self, item.name) or []
            setattr(self, item.name, sorted(_as_values(values)))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Iterable[Any]]]) -> "MetricFilter":
        if not data:
            return cls()
        known = {item.name for item in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"unknown filter keys: {', '.join(sorted(unknown))}")
        return cls(**{key: list(value or []) for key, value in data.items()})

    def populated(self) -> Dict[str, Set[str]]:
        return {
            item.name: set(getattr(self, item.name))
            for item in fields(self)
            if getattr(self, item.name)
        }

    def is_empty(self) -> bool:
        return not self.populated()

    def matches_sin(self, enriched: EnrichedSinEvent) -> bool:
        sin, event = enriched.sin, enriched.event
        for key, allowed in self.populated().items():
            extract = _SIN_VALUES.get(key)
            if extract is None:
                return False
            if not _overlaps(allowed, extract(sin, event)):
                return False
        return True

    def matches_buena_obra(self, enriched: EnrichedBuenaObraEvent) -> bool:
        obra, event = enriched.buena_obra, enriched.event
        for key, allowed in self.populated().items():
            extract = _BUENA_OBRA_VALUES.get(key)
            if extract is None:
                return False
            if not _overlaps(allowed, extract(obra, event)):
                return False
        return True

    def apply_sins(self, events: Iterable[EnrichedSinEvent]) -> List[EnrichedSinEvent]:
        return [event for event in events if self.matches_sin(event)]

    def apply_buenas_obras(
        self, events: Iterable[EnrichedBuenaObraEvent]
    ) -> List[EnrichedBuenaObraEvent]:
        return [event for event in events if self.matches_buena_obra(event)]


Extractor = Callable[[Any, Any], Iterable[Any]]

_SIN_VALUES: Dict[str, Extractor] = {
    "sin_ids": lambda sin, event: [sin.id],
    "terms": lambda sin, event: sin.terms,
    "person_type_ids": lambda sin, event: sin.involved_person_types,
    "gravities": lambda sin, event: sin.gravities,
    "capital_sins": lambda sin, event: sin.capital_sins,
    "virtudes_teologales": lambda sin, event: sin.opposite_virtues,
    "virtudes_cardinales": lambda sin, event: sin.opposite_virtues,
    "virtudes_anexas": lambda sin, event: sin.opposite_virtues,
    "vows": lambda sin, event: sin.vows,
    "activity_ids": lambda sin, event: sin.associated_activities,
    "attentions": lambda sin, event: [event.attention],
    "motives": lambda sin, event: [event.motive],
    "materia_tipos": lambda sin, event: sin.materia_tipo,
    "manifestations": lambda sin, event: sin.manifestations,
    "modes": lambda sin, event: sin.modes,
    "condicionantes": lambda sin, event: sin.condicionantes,
    "spiritual_means": lambda sin, event: sin.spiritual_aspects,
}

_BUENA_OBRA_VALUES: Dict[str, Extractor] = {
    "buena_obra_ids": lambda obra, event: [obra.id],
    "terms": lambda obra, event: [term.as_term() for term in obra.terms],
    "person_type_ids": lambda obra, event: obra.involved_person_types,
    "virtudes_teologales": lambda obra, event: obra.virtues,
    "virtudes_cardinales": lambda obra, event: obra.virtues,
    "virtudes_anexas": lambda obra, event: obra.virtues,
    "activity_ids": lambda obra, event: obra.associated_activities,
    "purity_of_intentions": lambda obra, event: [event.purity_of_intention],
    "charity_levels": lambda obra, event: obra.charity_levels,
    "qualities": lambda obra, event: obra.qualities,
    "circunstancias": lambda obra, event: obra.circunstancias,
    "condicionantes": lambda obra, event: obra.condicionantes,
    "spiritual_means": lambda obra, event: obra.spiritual_aspects,
}


__all__ = ["MetricFilter"]

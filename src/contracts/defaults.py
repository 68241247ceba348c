"""Built-in catalog vocabularies and seed entities."""

from __future__ import annotations

from typing import List, Tuple

from .catalog import COLOR_PALETTES, Activity, PersonType

DEFAULT_CAPITAL_SINS: Tuple[str, ...] = (
    "Vanagloria",
    "Avaricia",
    "Lujuria",
    "Ira",
    "Gula",
    "Envidia",
    "Acidia",
)

VIRTUES_TEOLOGALES: Tuple[str, ...] = ("Fe", "Esperanza", "Caridad")
VIRTUES_CARDINALES: Tuple[str, ...] = ("Prudencia", "Justicia", "Fortaleza", "Templanza")
VIRTUES_ANEXAS: Tuple[str, ...] = (
    "Religión",
    "Magnanimidad",
    "Paciencia",
    "Humildad",
    "Honestidad",
    "Piedad",
    "Mansedumbre",
    "Castidad",
    "Pobreza",
    "Obediencia",
    "Estudiosidad",
    "Modestia",
    "Abstinencia",
    "Sobriedad",
)

DEFAULT_VOWS: Tuple[str, ...] = ("Pobreza", "Castidad", "Obediencia")

DEFAULT_SPIRITUAL_MEANS: Tuple[str, ...] = (
    "Abnegación",
    "María",
    "Liturgia",
    "Oración",
    "Espíritu de Vigilancia",
    "Amigo del Saber",
    "Caridad fraterna",
    "Espíritu de Servicio",
    "Mortificación",
    "Silencio",
)

_PERSON_TYPE_NAMES = (
    "Superiores",
    "Hermanos de religión",
    "Familiares",
    "Laicos de la pastoral",
    "Necesitados",
    "Amigos",
    "Conocidos",
    "Desconocidos",
)

_ACTIVITY_NAMES = (
    "Estudio",
    "Trabajo individual",
    "Trabajo con equipo",
    "Clase",
    "Pastoral",
    "Misa",
    "Rosario",
    "Oración",
    "Deporte",
    "Traslados",
    "Comidas",
    "Planificación",
    "Cuidado personal",
    "Cargos de casa",
    "Gestiones extraordinarias",
)


def default_person_types() -> List[PersonType]:
    return [
        PersonType(id=f"pt-{index}", name=name, is_default=True)
        for index, name in enumerate(_PERSON_TYPE_NAMES, start=1)
    ]


def default_activities() -> List[Activity]:
    return [
        Activity(id=f"act-{index}", name=name, is_default=True)
        for index, name in enumerate(_ACTIVITY_NAMES, start=1)
    ]


def virtue_group(virtue: str) -> str:
    """Return ``teologal``, ``cardinal`` or ``anexa`` for an opposite virtue."""

    if virtue in VIRTUES_TEOLOGALES:
        return "teologal"
    if virtue in VIRTUES_CARDINALES:
        return "cardinal"
    return "anexa"


__all__ = [
    "COLOR_PALETTES",
    "DEFAULT_CAPITAL_SINS",
    "DEFAULT_SPIRITUAL_MEANS",
    "DEFAULT_VOWS",
    "VIRTUES_ANEXAS",
    "VIRTUES_CARDINALES",
    "VIRTUES_TEOLOGALES",
    "default_activities",
    "default_person_types",
    "virtue_group",
]

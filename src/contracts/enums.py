"""Closed categorical vocabularies and their Spanish display labels."""

from __future__ import annotations

import unicodedata
from enum import Enum
from typing import Dict, Optional, Type, TypeVar

E = TypeVar("E", bound="LabeledEnum")


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", str(text).strip().lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class LabeledEnum(str, Enum):
    """String enum whose members carry a Spanish label."""

    @property
    def label(self) -> str:
        return ENUM_LABELS.get(type(self), {}).get(self.value, self.value)

    @classmethod
    def from_text(cls: Type[E], text: str) -> Optional[E]:
        """Resolve a raw value or a label, ignoring case and accents."""
        folded = _fold(text).replace(" ", "_")
        labels = ENUM_LABELS.get(cls, {})
        for member in cls:
            if folded == _fold(member.value):
                return member
            label = labels.get(member.value)
            if label and folded == _fold(label).replace(" ", "_"):
                return member
        return None


class Term(LabeledEnum):
    CONTRA_DIOS = "contra_dios"
    CONTRA_PROJIMO = "contra_projimo"
    CONTRA_SI_MISMO = "contra_si_mismo"


class BuenaObraTerm(LabeledEnum):
    HACIA_DIOS = "hacia_dios"
    HACIA_PROJIMO = "hacia_projimo"
    HACIA_SI_MISMO = "hacia_si_mismo"

    def as_term(self) -> Term:
        """Sin term on the same pillar, used when filtering by term."""
        return _GOOD_TO_SIN_TERM[self]


class Gravity(LabeledEnum):
    MORTAL = "mortal"
    VENIAL = "venial"


class MateriaTipo(LabeledEnum):
    EX_TOTO = "ex_toto"
    EX_GENERE = "ex_genere"
    VENIAL_PROPIO_GENERO = "venial_propio_genero"


class Manifestation(LabeledEnum):
    EXTERNO = "externo"
    INTERNO = "interno"


class ObjectType(LabeledEnum):
    CARNAL = "carnal"
    ESPIRITUAL = "espiritual"


class Mode(LabeledEnum):
    COMISION = "comision"
    OMISION = "omision"


class AttentionLevel(LabeledEnum):
    DELIBERADO = "deliberado"
    SEMIDELIBERADO = "semideliberado"


class MotiveType(LabeledEnum):
    FRAGILIDAD = "fragilidad"
    MALICIA = "malicia"
    IGNORANCIA = "ignorancia"


class Responsibility(LabeledEnum):
    FORMAL = "formal"
    MATERIAL = "material"


class ResetCycle(LabeledEnum):
    NO = "no"
    DIARIO = "diario"
    SEMANAL = "semanal"
    MENSUAL = "mensual"
    ANUAL = "anual"
    PERSONALIZADO = "personalizado"


class CustomResetUnit(LabeledEnum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class PurityOfIntention(LabeledEnum):
    ACTUAL = "actual"
    VIRTUAL = "virtual"
    HABITUAL = "habitual"


class CharityLevel(LabeledEnum):
    ALTA = "alta"
    MEDIA = "media"
    BAJA = "baja"


class Quality(LabeledEnum):
    ORDINARIA = "ordinaria"
    EXTRAORDINARIA = "extraordinaria"
    HEROICA = "heroica"


class Circunstancias(LabeledEnum):
    FAVORABLES = "favorables"
    ORDINARIAS = "ordinarias"
    ADVERSAS = "adversas"


class SacrificioRelativo(LabeledEnum):
    ALTO = "alto"
    NORMAL = "normal"
    BAJO = "bajo"


class NoteTargetType(LabeledEnum):
    SIN = "sin"
    GOOD_WORK = "goodWork"


class FreeformPillar(LabeledEnum):
    GOD = "god"
    NEIGHBOR = "neighbor"
    SELF = "self"


class DuplicateStrategy(LabeledEnum):
    SKIP = "skip"
    OVERWRITE = "overwrite"
    MERGE = "merge"


_GOOD_TO_SIN_TERM: Dict[BuenaObraTerm, Term] = {
    BuenaObraTerm.HACIA_DIOS: Term.CONTRA_DIOS,
    BuenaObraTerm.HACIA_PROJIMO: Term.CONTRA_PROJIMO,
    BuenaObraTerm.HACIA_SI_MISMO: Term.CONTRA_SI_MISMO,
}

ENUM_LABELS: Dict[type, Dict[str, str]] = {
    Term: {
        "contra_dios": "Contra Dios",
        "contra_projimo": "Contra el Prójimo",
        "contra_si_mismo": "Contra uno mismo",
    },
    BuenaObraTerm: {
        "hacia_dios": "Hacia Dios",
        "hacia_projimo": "Hacia el Prójimo",
        "hacia_si_mismo": "Hacia uno mismo",
    },
    Gravity: {"mortal": "Mortal", "venial": "Venial"},
    MateriaTipo: {
        "ex_toto": "Grave ex toto",
        "ex_genere": "Grave ex genere",
        "venial_propio_genero": "Venial de propio género",
    },
    Manifestation: {"externo": "Externo", "interno": "Interno"},
    ObjectType: {"carnal": "Carnal", "espiritual": "Espiritual"},
    Mode: {"comision": "Comisión", "omision": "Omisión"},
    AttentionLevel: {"deliberado": "Deliberado", "semideliberado": "Semideliberado"},
    MotiveType: {
        "fragilidad": "Fragilidad",
        "malicia": "Malicia",
        "ignorancia": "Ignorancia",
    },
    Responsibility: {"formal": "Formal", "material": "Material"},
    ResetCycle: {
        "no": "No",
        "diario": "Diario",
        "semanal": "Semanal",
        "mensual": "Mensual",
        "anual": "Anual",
        "personalizado": "Personalizado",
    },
    CustomResetUnit: {"days": "Días", "weeks": "Semanas", "months": "Meses"},
    PurityOfIntention: {"actual": "Actual", "virtual": "Virtual", "habitual": "Habitual"},
    CharityLevel: {"alta": "Alta", "media": "Media", "baja": "Baja"},
    Quality: {
        "ordinaria": "Ordinaria",
        "extraordinaria": "Extraordinaria",
        "heroica": "Heroica",
    },
    Circunstancias: {
        "favorables": "Favorables",
        "ordinarias": "Ordinarias",
        "adversas": "Adversas",
    },
    SacrificioRelativo: {"alto": "Alto", "normal": "Normal", "bajo": "Bajo"},
    NoteTargetType: {"sin": "Pecado", "goodWork": "Buena obra"},
    FreeformPillar: {"god": "Dios", "neighbor": "Prójimo", "self": "Uno mismo"},
    DuplicateStrategy: {"skip": "Omitir", "overwrite": "Sobrescribir", "merge": "Combinar"},
}

__all__ = [
    "AttentionLevel",
    "BuenaObraTerm",
    "CharityLevel",
    "Circunstancias",
    "CustomResetUnit",
    "DuplicateStrategy",
    "ENUM_LABELS",
    "FreeformPillar",
    "Gravity",
    "LabeledEnum",
    "Manifestation",
    "MateriaTipo",
    "Mode",
    "MotiveType",
    "NoteTargetType",
    "ObjectType",
    "PurityOfIntention",
    "Quality",
    "ResetCycle",
    "Responsibility",
    "SacrificioRelativo",
    "Term",
]

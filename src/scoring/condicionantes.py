# src/scoring/condicionantes.py
# Condicionantes: atenuantes de pecados y amplificadores de buenas obras
# =====================================================================

"""
Los condicionantes son circunstancias del sujeto (salud, estrés, hábitos)
que atenúan la gravedad de un pecado o amplifican el mérito de una buena
obra. Solo cuentan los que están a la vez activos en el perfil del sujeto
y declarados como compatibles en el ítem del catálogo.

El factor se calcula una sola vez, al registrar el evento, y queda
guardado en el propio evento como ``CondicionantesSnapshot``.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from src.contracts.events import CondicionantesSnapshot

logger = logging.getLogger(__name__)

SIN_KIND = "sin"
BUENA_OBRA_KIND = "buenaObra"

DEFAULT_SIN_BASE = 0.80
DEFAULT_GOOD_WORK_BASE = 1.20

SEED_CONDICIONANTES: Tuple[str, ...] = (
    "Inmadurez afectiva",
    "Trastornos psíquicos",
    "Educación gravemente deficiente",
    "Contextos culturales deformados",
    "Estrés o sufrimiento prolongados",
    "Hábito arraigado o adicción",
    "Economía doméstica precaria",
    "Crisis económica",
    "Excesiva carga laboral justificada",
    "Salud crónica",
    "Temperamento desfavorable",
)

# Nombres heredados de versiones anteriores del catálogo
LEGACY_CONDICIONANTES: Dict[str, str] = {
    "Fatiga": "Estrés o sufrimiento prolongados",
    "Enfermedad": "Salud crónica",
    "Estrés": "Estrés o sufrimiento prolongados",
    "Falta de sueño": "Estrés o sufrimiento prolongados",
    "Hambre": "Economía doméstica precaria",
    "Prisa": "Excesiva carga laboral justificada",
    "Miedo": "Trastornos psíquicos",
    "Ira previa": "Temperamento desfavorable",
    "Tristeza": "Estrés o sufrimiento prolongados",
    "Soledad": "Estrés o sufrimiento prolongados",
    "Tentación fuerte": "Hábito arraigado o adicción",
    "Costumbre arraigada": "Hábito arraigado o adicción",
    "Dificultad externa": "Contextos culturales deformados",
    "Incomprensión": "Contextos culturales deformados",
    "Estados prolongados de estrés o sufrimiento": "Estrés o sufrimiento prolongados",
}


def migrate_condicionantes(names: Iterable[str]) -> List[str]:
    """
    Traduce nombres antiguos a su forma canónica.

    Los nombres desconocidos se conservan como condicionantes
    personalizados. El resultado no tiene duplicados y respeta el orden
    de primera aparición.
    """
    migrated: List[str] = []
    for name in names:
        canonical = name if name in SEED_CONDICIONANTES else LEGACY_CONDICIONANTES.get(name, name)
        if canonical != name:
            logger.debug(f"🔁 Condicionante migrado: {name} -> {canonical}")
        if canonical not in migrated:
            migrated.append(canonical)
    return migrated


def get_all_condicionantes(custom: Optional[Iterable[str]] = None) -> List[str]:
    """Semillas más los condicionantes personalizados que no las repiten."""
    everything = list(SEED_CONDICIONANTES)
    for name in custom or []:
        if name not in everything:
            everything.append(name)
    return everything


def calculate_condicionantes_factor(
    active: Iterable[str],
    compatible: Iterable[str],
    kind: str = SIN_KIND,
    *,
    sin_base: float = DEFAULT_SIN_BASE,
    good_work_base: float = DEFAULT_GOOD_WORK_BASE,
) -> CondicionantesSnapshot:
    """
    Calcula el factor ``base ** k`` para un ítem del catálogo.

    Args:
        active: Condicionantes activos en el perfil del sujeto.
        compatible: Condicionantes declarados en el pecado o la buena obra.
        kind: ``"sin"`` atenúa (0.80^k), ``"buenaObra"`` amplifica (1.20^k).

    Returns:
        Snapshot con los condicionantes aplicados, ``k`` y el factor.
    """
    if kind not in (SIN_KIND, BUENA_OBRA_KIND):
        raise ValueError(f"Tipo de ítem desconocido: {kind}")

    compatible_set = set(compatible)
    applied: List[str] = []
    for name in active:
        if name in compatible_set and name not in applied:
            applied.append(name)

    k = len(applied)
    base = sin_base if kind == SIN_KIND else good_work_base
    factor = base**k if k > 0 else 1.0
    return CondicionantesSnapshot(applied=applied, k=k, factor=factor)


__all__ = [
    "BUENA_OBRA_KIND",
    "LEGACY_CONDICIONANTES",
    "SEED_CONDICIONANTES",
    "SIN_KIND",
    "calculate_condicionantes_factor",
    "get_all_condicionantes",
    "migrate_condicionantes",
]

# src/storage/csv_import.py
# Importación de catálogos desde CSV
# ==================================

"""
Importa pecados y buenas obras desde texto CSV.

Cada fila se procesa por separado: los errores (falta el nombre, un valor
categórico desconocido, un número ilegible) se acumulan como
``{row, message}`` y nunca detienen el lote. El número de fila cuenta la
cabecera como fila 1.

Las columnas se reconocen por el nombre del campo (``short_description``)
o su forma camelCase (``shortDescription``); ``nombre`` también vale para
el nombre. Si no hay columna de nombre se usa la primera.
"""

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type, Union

from pydantic import ValidationError

from config.settings import IMPORT_CONFIG
from src.contracts.catalog import BuenaObra, CustomResetRule, Sin
from src.contracts.enums import (
    BuenaObraTerm,
    CharityLevel,
    Circunstancias,
    DuplicateStrategy,
    Gravity,
    LabeledEnum,
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

from .repositories import CatalogRepository

logger = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"true", "si", "sí", "1", "yes", "verdadero", "x"})

# Alias de texto libre para términos, además de valores y etiquetas
_TERM_ALIASES: Dict[str, Term] = {
    "dios": Term.CONTRA_DIOS,
    "projimo": Term.CONTRA_PROJIMO,
    "prójimo": Term.CONTRA_PROJIMO,
    "si mismo": Term.CONTRA_SI_MISMO,
    "uno mismo": Term.CONTRA_SI_MISMO,
}


class ImportRowError(ValueError):
    """Error de una fila concreta; se recoge en el resultado, no se propaga."""


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    updated: int = 0
    merged: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    def add_error(self, row: int, message: str) -> None:
        self.errors.append({"row": row, "message": message})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "updated": self.updated,
            "merged": self.merged,
            "errors": list(self.errors),
        }


# =====================================
# LECTURA DEL CSV
# =====================================


def detect_delimiter(first_line: str) -> str:
    """``;`` si aparece más veces que ``,`` en la cabecera; si no, ``,``."""
    return ";" if first_line.count(";") > first_line.count(",") else ","


def parse_csv(content: str) -> Tuple[List[str], List[Tuple[int, Dict[str, str]]]]:
    """
    Devuelve la cabecera y las filas como ``(número_de_fila, datos)``.

    Las líneas en blanco se ignoran; los campos entre comillas admiten el
    delimitador y comillas dobladas.
    """
    lines = [line for line in content.splitlines() if line.strip()]
    if not lines:
        return [], []
    reader = csv.reader(lines, delimiter=detect_delimiter(lines[0]), quotechar='"')
    headers = [header.strip() for header in next(reader)]
    rows = []
    for offset, values in enumerate(reader, start=2):
        data = {
            header: (values[index].strip() if index < len(values) else "")
            for index, header in enumerate(headers)
        }
        rows.append((offset, data))
    return headers, rows


def split_multi_value(value: str, separators: Optional[Sequence[str]] = None) -> List[str]:
    seps = separators or IMPORT_CONFIG.get("multi_value_separators", [";", "|"])
    pattern = "|".join(re.escape(sep) for sep in seps)
    return [part.strip() for part in re.split(pattern, value) if part.strip()]


def parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _parse_number(value: str, column: str) -> float:
    try:
        number = float(value.replace(",", "."))
    except ValueError as exc:
        raise ImportRowError(f"Valor numérico inválido en '{column}': {value}") from exc
    if not math.isfinite(number):
        raise ImportRowError(f"Valor numérico inválido en '{column}': {value}")
    return number


def _enum_parser(enum_cls: Type[LabeledEnum], aliases: Optional[Dict[str, Any]] = None):
    def _parse(value: str, column: str) -> List[Any]:
        members = []
        for part in split_multi_value(value):
            member = (aliases or {}).get(part.lower()) or enum_cls.from_text(part)
            if member is None:
                raise ImportRowError(f"Valor desconocido en '{column}': {part}")
            members.append(member)
        return members

    return _parse


def _single_enum(enum_cls: Type[LabeledEnum]):
    def _parse(value: str, column: str) -> Any:
        member = enum_cls.from_text(value)
        if member is None:
            raise ImportRowError(f"Valor desconocido en '{column}': {value}")
        return member

    return _parse


def _text(value: str, column: str) -> str:
    return value


def _text_list(value: str, column: str) -> List[str]:
    return split_multi_value(value)


def _bool(value: str, column: str) -> bool:
    return parse_bool(value)


def _positive_override(value: str, column: str) -> Optional[float]:
    number = _parse_number(value, column)
    return number if number > 0 else None


Parser = Callable[[str, str], Any]

_COMMON_FIELDS: Dict[str, Parser] = {
    "short_description": _text,
    "extra_info": _text,
    "spiritual_aspects": _text_list,
    "involved_person_types": _text_list,
    "associated_activities": _text_list,
    "condicionantes": _text_list,
    "tags": _text_list,
    "reset_cycle": _single_enum(ResetCycle),
}

SIN_FIELDS: Dict[str, Parser] = {
    **_COMMON_FIELDS,
    "terms": _enum_parser(Term, _TERM_ALIASES),
    "gravities": _enum_parser(Gravity),
    "materia_tipo": _enum_parser(MateriaTipo),
    "admite_parvedad": _bool,
    "opposite_virtues": _text_list,
    "capital_sins": _text_list,
    "vows": _text_list,
    "manifestations": _enum_parser(Manifestation),
    "object_types": _enum_parser(ObjectType),
    "modes": _enum_parser(Mode),
    "color_palette_key": _text,
    "can_aggregate_to_mortal": _bool,
    "mortal_threshold_units": _parse_number,
    "unit_per_tap": _parse_number,
    "manual_weight_override": _positive_override,
}

BUENA_OBRA_FIELDS: Dict[str, Parser] = {
    **_COMMON_FIELDS,
    "terms": _enum_parser(BuenaObraTerm),
    "purity_of_intentions": _enum_parser(PurityOfIntention),
    "charity_levels": _enum_parser(CharityLevel),
    "qualities": _enum_parser(Quality),
    "circunstancias": _enum_parser(Circunstancias),
    "virtues": _text_list,
    "sacrificio_relativo": _single_enum(SacrificioRelativo),
    "base_good_override": _positive_override,
}


def _column_map(headers: Sequence[str], fields: Dict[str, Parser]) -> Dict[str, str]:
    """Asocia cada campo conocido con la columna del CSV que lo trae."""
    by_key = {header.strip().lower(): header for header in headers}
    mapping = {}
    for name in ("name", "nombre"):
        if name in by_key:
            mapping["name"] = by_key[name]
            break
    else:
        if headers:
            mapping["name"] = headers[0]
    for name in fields:
        for candidate in (name, _camel(name).lower()):
            if candidate in by_key:
                mapping[name] = by_key[candidate]
                break
    return mapping


def row_to_fields(
    data: Dict[str, str], mapping: Dict[str, str], fields: Dict[str, Parser]
) -> Dict[str, Any]:
    """
    Convierte una fila en los campos del modelo.

    Las celdas vacías no aportan nada, para que ``merge`` pueda distinguir
    entre «sin dato» y «valor explícito».

    Raises:
        ImportRowError: falta el nombre o un valor no es válido.
    """
    name = data.get(mapping.get("name", ""), "").strip()
    if not name:
        raise ImportRowError("Falta el campo nombre")

    values: Dict[str, Any] = {"name": name}
    for field_name, parser in fields.items():
        column = mapping.get(field_name)
        raw = data.get(column, "") if column else ""
        if not raw:
            continue
        parsed = parser(raw, column)
        if parsed is None or parsed == []:
            continue
        values[field_name] = parsed

    if values.get("reset_cycle") == ResetCycle.PERSONALIZADO:
        values.setdefault("custom_reset_rule", CustomResetRule())
    return values


# =====================================
# IMPORTACIÓN
# =====================================


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _import_rows(
    content: str,
    fields: Dict[str, Parser],
    model: Type[Union[Sin, BuenaObra]],
    existing: List[Any],
    save: Callable[[Any], Any],
    strategy: DuplicateStrategy,
    defaults: Dict[str, Any],
) -> ImportResult:
    result = ImportResult()
    headers, rows = parse_csv(content)
    mapping = _column_map(headers, fields)
    by_name = {item.name.casefold(): item for item in existing}

    for row_number, data in rows:
        try:
            values = row_to_fields(data, mapping, fields)
            current = by_name.get(values["name"].casefold())

            if current is None:
                item = model.model_validate({**defaults, **values})
                save(item)
                by_name[item.name.casefold()] = item
                result.imported += 1
                continue

            if strategy == DuplicateStrategy.SKIP:
                result.skipped += 1
                continue

            if strategy == DuplicateStrategy.OVERWRITE:
                changes = values
            else:
                changes = {
                    key: value
                    for key, value in values.items()
                    if key != "name" and _is_empty(getattr(current, key, None))
                }
                if not changes:
                    result.skipped += 1
                    continue

            merged_data = {**current.model_dump(), **changes, "id": current.id}
            item = model.model_validate(merged_data)
            save(item)
            by_name[item.name.casefold()] = item
            if strategy == DuplicateStrategy.OVERWRITE:
                result.updated += 1
            else:
                result.merged += 1

        except ImportRowError as exc:
            result.add_error(row_number, str(exc))
        except ValidationError as exc:
            first = exc.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ()))
            result.add_error(row_number, f"{location}: {first.get('msg')}")

    logger.info(
        f"📥 Importación {model.__name__}: {result.imported} nuevos, "
        f"{result.updated} actualizados, {result.merged} combinados, "
        f"{result.skipped} omitidos, {len(result.errors)} errores"
    )
    return result


def _strategy(strategy: Optional[Union[DuplicateStrategy, str]]) -> DuplicateStrategy:
    if strategy is None:
        strategy = IMPORT_CONFIG.get("default_duplicate_strategy", "skip")
    return DuplicateStrategy(strategy)


def import_sins_csv(
    content: str,
    catalog: Optional[CatalogRepository] = None,
    strategy: Optional[Union[DuplicateStrategy, str]] = None,
) -> ImportResult:
    """Importa pecados; los nuevos sin términos quedan «contra uno mismo»."""
    catalog = catalog or CatalogRepository()
    return _import_rows(
        content,
        SIN_FIELDS,
        Sin,
        catalog.get_sins(),
        catalog.save_sin,
        _strategy(strategy),
        {"terms": [Term.CONTRA_SI_MISMO]},
    )


def import_buenas_obras_csv(
    content: str,
    catalog: Optional[CatalogRepository] = None,
    strategy: Optional[Union[DuplicateStrategy, str]] = None,
) -> ImportResult:
    catalog = catalog or CatalogRepository()
    return _import_rows(
        content,
        BUENA_OBRA_FIELDS,
        BuenaObra,
        catalog.get_buenas_obras(),
        catalog.save_buena_obra,
        _strategy(strategy),
        {},
    )


__all__ = [
    "BUENA_OBRA_FIELDS",
    "ImportResult",
    "ImportRowError",
    "SIN_FIELDS",
    "detect_delimiter",
    "import_buenas_obras_csv",
    "import_sins_csv",
    "parse_bool",
    "parse_csv",
    "row_to_fields",
    "split_multi_value",
]

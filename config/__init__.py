"""Config package with lazy attribute loading to avoid heavy imports during packaging."""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Iterable

_MODULE_ATTRS: Dict[str, Iterable[str]] = {
    "config.settings": [
        "DATABASE_CONFIG",
        "SCORING_CONFIG",
        "METRICS_CONFIG",
        "RESET_CONFIG",
        "IMPORT_CONFIG",
        "LOGGING_CONFIG",
        "DISPLAY_TIMEZONE",
        "ENVIRONMENT",
        "IS_PRODUCTION",
        "DEBUG",
        "ensure_runtime_dirs",
        "validate_config",
    ],
    "config.version": [
        "EXPORT_FORMAT_VERSION",
        "MIN_PYTHON_VERSION",
        "MIN_PYTHON_VERSION_STR",
        "PROJECT_VERSION",
        "PYTHON_REQUIRES_SPECIFIER",
        "__version__",
        "is_compatible_export_version",
    ],
}

__all__ = [attribute for attributes in _MODULE_ATTRS.values() for attribute in attributes]

_ATTR_TO_MODULE: Dict[str, str] = {
    attribute: module for module, attributes in _MODULE_ATTRS.items() for attribute in attributes
}


def __getattr__(name: str) -> Any:
    module_name = _ATTR_TO_MODULE.get(name)
    if module_name is None:
        raise AttributeError(f"module 'config' has no attribute {name!r}")
    module = import_module(module_name)
    for attribute in _MODULE_ATTRS[module_name]:
        globals()[attribute] = getattr(module, attribute)
    return globals()[name]


__author__ = "MAGIS Team"

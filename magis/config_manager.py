"""Layered configuration loader and CLI for MAGIS."""
from __future__ import annotations

import argparse
import json
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional, Sequence

import tomli_w
from dotenv import dotenv_values
from pydantic import ValidationError

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for Py <3.11
    import tomli as tomllib  # type: ignore[no-redef]

from magis.config_schema import Config, DEFAULT_CONFIG, iter_field_docs

DEFAULT_ENV_PREFIX = "MAGIS"
DEFAULT_CONFIG_FILENAME = "config.toml"
DEFAULT_ENV_FILENAME = ".env"
BACKUP_DIRNAME = "backups"
MASK = "***masked***"


@dataclass(frozen=True)
class ConfigValueOrigin:
    """Provenance metadata for a single configuration value."""

    layer: str
    source: str
    env_var: str | None = None

    def render(self) -> str:
        details = [item for item in (self.env_var, self.source) if item]
        if details:
            return f"{self.layer} ({', '.join(details)})"
        return self.layer


@dataclass
class ConfigMetadata:
    """Where the active configuration came from."""

    config_path: Path
    env_path: Optional[Path]
    env_prefix: str
    provenance: Dict[str, ConfigValueOrigin] = field(default_factory=dict)
    load_order: tuple[str, ...] = ("defaults", "file", "env-file", "env")

    def describe_sources(self) -> list[str]:
        env_line = f".env file: {self.env_path}" if self.env_path else ".env file: not found"
        return [
            "defaults: built into magis.config_schema",
            f"config file: {self.config_path}",
            env_line,
            f"environment prefix: {self.env_prefix}__*",
        ]


class ConfigError(RuntimeError):
    """Raised when configuration loading or validation fails."""


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _default_paths() -> tuple[Path, Path]:
    root = _project_root()
    return root / DEFAULT_CONFIG_FILENAME, root / DEFAULT_ENV_FILENAME


def _is_secret(path: str) -> bool:
    lowered = path.lower()
    return any(token in lowered for token in ("password", "secret", "token"))


def _merge_layer(
    target: MutableMapping[str, Any],
    updates: Mapping[str, Any],
    provenance: Dict[str, ConfigValueOrigin],
    *,
    origin: ConfigValueOrigin,
    prefix: str = "",
) -> None:
    for key, value in updates.items():
        composed = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, MutableMapping):
                existing = {}
                target[key] = existing
            _merge_layer(existing, value, provenance, origin=origin, prefix=composed)
        else:
            target[key] = value
            provenance[composed] = origin


def _env_key_to_path(raw_key: str, prefix: str) -> str:
    if not raw_key.startswith(prefix + "__"):
        raise ConfigError(
            f"Environment override '{raw_key}' does not start with prefix {prefix}__"
        )
    segments = [segment for segment in raw_key[len(prefix) + 2 :].split("__") if segment]
    if not segments:
        raise ConfigError(f"Environment override '{raw_key}' is missing key segments")
    return ".".join(segment.lower() for segment in segments)


def _coerce_text(value: str) -> Any:
    text = value.strip()
    if not text:
        return ""
    lowered = text.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        pass
    if text[0] in "[{" and text[-1] in "]}":
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return text


def _assign_path(target: MutableMapping[str, Any], path: str, value: Any) -> None:
    *parents, leaf = path.split(".")
    current: MutableMapping[str, Any] = target
    for segment in parents:
        next_value = current.get(segment)
        if not isinstance(next_value, MutableMapping):
            next_value = {}
            current[segment] = next_value
        current = next_value
    current[leaf] = value


def _apply_env_layer(
    merged: MutableMapping[str, Any],
    provenance: Dict[str, ConfigValueOrigin],
    variables: Mapping[str, str],
    *,
    prefix: str,
    layer: str,
    source: str,
    strict: bool,
) -> None:
    for key, value in variables.items():
        if not key.startswith(prefix + "__"):
            continue
        try:
            path_key = _env_key_to_path(key, prefix)
        except ConfigError:
            if strict:
                raise
            continue
        _assign_path(merged, path_key, _coerce_text(value))
        provenance[path_key] = ConfigValueOrigin(layer=layer, source=source, env_var=key)


def _to_toml_payload(value: Any) -> Any:
    if isinstance(value, Config):
        return _to_toml_payload(value.model_dump(mode="python"))
    if isinstance(value, Mapping):
        # TOML has no null; optional fields left unset are simply omitted
        return {
            key: _to_toml_payload(val) for key, val in value.items() if val is not None
        }
    if isinstance(value, list):
        return [_to_toml_payload(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    return value


def _write_atomic(path: Path, payload: Mapping[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        prefix=".magis-config-", dir=str(path.parent), delete=False
    ) as tmp_handle:
        tmp_path = Path(tmp_handle.name)
        tomli_w.dump(payload, tmp_handle)
    try:
        if path.exists():
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
            backup_dir = path.parent / BACKUP_DIRNAME
            backup_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(path, backup_dir / f"{path.name}.{timestamp}.bak")
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Failed to persist configuration: {exc}") from exc


def _load_toml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError:
        return {}
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _detect_env_path(config_path: Path) -> Path:
    env_candidate = config_path.parent / DEFAULT_ENV_FILENAME
    if env_candidate.exists():
        return env_candidate
    default_env_path = _default_paths()[1]
    if default_env_path.exists():
        return default_env_path
    return env_candidate


def _format_validation_error(
    error: ValidationError,
    provenance: Mapping[str, ConfigValueOrigin],
) -> ConfigError:
    messages: list[str] = []
    for record in error.errors():
        location = ".".join(str(part) for part in record.get("loc", ()))
        origin = provenance.get(location)
        detail = record.get("msg", "invalid value")
        input_value = record.get("input")
        if input_value is not None and not _is_secret(location):
            detail += f" (received={input_value!r})"
        suffix = f" [{origin.render()}]" if origin else ""
        messages.append(f"{location or '<root>'}: {detail}{suffix}")
    return ConfigError("Configuration validation failed:\n - " + "\n - ".join(messages))


def load_config(
    path: Path | None = None,
    *,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Merge defaults, ``config.toml``, ``.env`` and process environment."""

    config_path = path if path else _default_paths()[0]
    env_path = _detect_env_path(config_path)
    runtime_env = os.environ if environ is None else environ

    merged: Dict[str, Any] = {}
    provenance: Dict[str, ConfigValueOrigin] = {}
    _merge_layer(
        merged,
        DEFAULT_CONFIG.model_dump(mode="python"),
        provenance,
        origin=ConfigValueOrigin(layer="defaults", source="magis.config_schema.DEFAULT_CONFIG"),
    )

    file_data = _load_toml(config_path)
    if file_data:
        _merge_layer(
            merged,
            file_data,
            provenance,
            origin=ConfigValueOrigin(layer="file", source=str(config_path)),
        )

    if env_path.exists():
        env_file_data = {
            key: value
            for key, value in dotenv_values(env_path, verbose=False).items()
            if value is not None
        }
        _apply_env_layer(
            merged,
            provenance,
            env_file_data,
            prefix=env_prefix,
            layer="env-file",
            source=str(env_path),
            strict=False,
        )

    _apply_env_layer(
        merged,
        provenance,
        runtime_env,
        prefix=env_prefix,
        layer="env",
        source="process",
        strict=True,
    )

    try:
        config = Config.model_validate(merged)
    except ValidationError as exc:
        raise _format_validation_error(exc, provenance) from exc
    config._metadata = ConfigMetadata(
        config_path=config_path,
        env_path=env_path if env_path.exists() else None,
        env_prefix=env_prefix,
        provenance=provenance,
    )
    return config


def save_config(config: Config, path: Path | None = None) -> Path:
    """Persist the provided configuration to disk atomically."""

    metadata = getattr(config, "_metadata", None)
    target_path = path or (metadata.config_path if metadata else _default_paths()[0])
    _write_atomic(target_path, _to_toml_payload(config))
    return target_path


def _flatten_mapping(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        composed = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten_mapping(value, composed))
        else:
            flat[composed] = value
    return flat


def _resolve_value(mapping: Mapping[str, Any], path: str) -> Any:
    current: Any = mapping
    for segment in path.split("."):
        if not (isinstance(current, Mapping) and segment in current):
            raise ConfigError(f"Unknown configuration key: {path}")
        current = current[segment]
    return current


def _safe_repr(value: Any) -> str:
    if isinstance(value, Path):
        return str(value)
    try:
        return json.dumps(value, ensure_ascii=False)
    except TypeError:
        return repr(value)


def _diff_configs(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[str]:
    flat_before = _flatten_mapping(before)
    flat_after = _flatten_mapping(after)
    changes: list[str] = []
    for key in sorted(set(flat_before) | set(flat_after)):
        old = flat_before.get(key)
        new = flat_after.get(key)
        if old == new:
            continue
        if _is_secret(key):
            changes.append(f"{key}: {MASK} -> {MASK}")
        else:
            changes.append(f"{key}: {_safe_repr(old)} -> {_safe_repr(new)}")
    return changes


def _format_schema_table() -> str:
    headers = ["Field", "Type", "Default", "Description", "Constraints", "Example"]
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(["---"] * len(headers)) + " |",
    ]
    for entry in iter_field_docs(DEFAULT_CONFIG):
        default = "" if entry["default"] is None else _safe_repr(entry["default"])
        example = ", ".join(str(item) for item in entry.get("examples") or [])
        row = [
            str(entry["name"]),
            str(entry["type"]),
            default,
            str(entry.get("description", "")),
            str(entry.get("constraints", "")),
            example,
        ]
        lines.append("| " + " | ".join(row) + " |")
    return "\n".join(lines)


def _explain(config: Config, key: str) -> str:
    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    if metadata is None:
        raise ConfigError("Configuration metadata is unavailable")
    value = _resolve_value(config.model_dump(mode="python"), key)
    origin = metadata.provenance.get(key)
    formatted_value = MASK if _is_secret(key) else _safe_repr(value)
    return f"{key} = {formatted_value}\nsource: {origin.render() if origin else 'unknown'}"


def apply_updates(config: Config, updates: Mapping[str, str]) -> Config:
    """Return a validated copy of ``config`` with dotted-key text updates."""

    updated = config.model_dump(mode="python")
    known_paths = set(_flatten_mapping(updated))
    metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
    for key, raw_value in updates.items():
        if key not in known_paths:
            raise ConfigError(f"Unknown configuration key: {key}")
        _assign_path(updated, key, _coerce_text(raw_value))
        if metadata:
            metadata.provenance[key] = ConfigValueOrigin(layer="cli", source="runtime")
    try:
        new_config = Config.model_validate(updated)
    except ValidationError as exc:
        raise _format_validation_error(exc, metadata.provenance if metadata else {}) from exc
    new_config._metadata = metadata
    return new_config


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="MAGIS configuration utilities",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Path to the TOML configuration file")
    parser.add_argument(
        "--env-prefix",
        default=DEFAULT_ENV_PREFIX,
        help="Environment variable prefix (e.g. MAGIS__METRICS__PASS_GRADE)",
    )
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("--validate", action="store_true", help="Validate the active configuration")
    actions.add_argument("--dump-defaults", action="store_true", help="Print built-in defaults as TOML")
    actions.add_argument("--print-schema", action="store_true", help="Print Markdown table documenting all fields")
    actions.add_argument("--show-sources", action="store_true", help="Show configuration source precedence")
    actions.add_argument("--explain", metavar="KEY", help="Explain where a field value originates")
    actions.add_argument(
        "--set",
        nargs="+",
        metavar="KEY=VALUE",
        help="Apply one or more validated updates and persist them to the config file",
    )

    args = parser.parse_args(argv)

    try:
        if args.dump_defaults:
            sys.stdout.write(tomli_w.dumps(_to_toml_payload(DEFAULT_CONFIG)))
            return 0
        if args.print_schema:
            sys.stdout.write(_format_schema_table() + "\n")
            return 0

        config = load_config(args.config, env_prefix=args.env_prefix)
        metadata: ConfigMetadata | None = getattr(config, "_metadata", None)
        if args.validate:
            print("Configuration OK")
        elif args.show_sources:
            if metadata is None:
                raise ConfigError("Metadata unavailable for source display")
            details = "\n".join(f"- {item}" for item in metadata.describe_sources())
            print(f"Active configuration sources:\n{details}")
        elif args.explain:
            print(_explain(config, args.explain))
        elif args.set:
            updates: Dict[str, str] = {}
            for item in args.set:
                if "=" not in item:
                    raise ConfigError(f"Invalid --set argument: '{item}'")
                key, value = item.split("=", 1)
                updates[key.strip()] = value
            new_config = apply_updates(config, updates)
            save_path = save_config(new_config, args.config)
            for line in _diff_configs(
                config.model_dump(mode="python"), new_config.model_dump(mode="python")
            ):
                print(line)
            print(f"Saved configuration to {save_path}")
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI entry point
    raise SystemExit(main())

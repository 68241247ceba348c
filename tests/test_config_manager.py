from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from magis.config_manager import Config, ConfigError, apply_updates, load_config, save_config
from magis.config_schema import DEFAULT_CONFIG, iter_field_docs


def _flatten(mapping: dict[str, object], prefix: str = "") -> set[str]:
    keys: set[str] = set()
    for name, value in mapping.items():
        path = f"{prefix}.{name}" if prefix else name
        if isinstance(value, dict):
            keys.add(path)
            keys.update(_flatten(value, path))
        else:
            keys.add(path)
    return keys


def test_precedence_env_overrides(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[metrics]\npass_grade = 6.0\n", encoding="utf-8")
    env_file = tmp_path / ".env"
    env_file.write_text("MAGIS__METRICS__PASS_GRADE=6.5\n", encoding="utf-8")
    environ = {"MAGIS__METRICS__PASS_GRADE": "7"}
    config = load_config(config_file, environ=environ)
    assert config.metrics.pass_grade == 7.0
    provenance = config._metadata.provenance["metrics.pass_grade"]
    assert provenance.layer == "env"
    assert provenance.env_var == "MAGIS__METRICS__PASS_GRADE"


def test_dotenv_layer_applies_without_environment(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[scoring.term_factors]\ncontra_dios = 1.2\n", encoding="utf-8")
    (tmp_path / ".env").write_text("MAGIS__SCORING__MAX_RAW=200\n", encoding="utf-8")
    config = load_config(config_file, environ={})
    assert config.scoring.term_factors.contra_dios == 1.2
    assert config.scoring.max_raw == 200.0


def test_save_config_creates_backups(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[reset]\nweekly_days = 7\n", encoding="utf-8")
    config = load_config(config_file, environ={})
    data = config.model_dump(mode="python")
    data["reset"]["weekly_days"] = 8
    updated = Config.model_validate(data)
    updated._metadata = config._metadata
    save_config(updated)
    data["reset"]["weekly_days"] = 9
    updated = Config.model_validate(data)
    updated._metadata = config._metadata
    save_config(updated)
    backups = list((config_file.parent / "backups").glob("config.toml.*.bak"))
    assert backups, "second save should produce a timestamped backup"


def test_save_config_drops_optional_none(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[database]\nport = 5432\n", encoding="utf-8")
    config = load_config(config_file, environ={})
    data = config.model_dump(mode="python")
    data["database"]["port"] = None
    updated = Config.model_validate(data)
    updated._metadata = config._metadata
    save_config(updated)
    assert "port =" not in config_file.read_text(encoding="utf-8")


def test_blank_database_port_normalized(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[database]\nport = \"\"\n", encoding="utf-8")
    assert load_config(config_file, environ={}).database.port is None


def test_validation_errors_report_source(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[metrics]\npass_grade = 'abc'\n", encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(config_file, environ={})
    assert "metrics.pass_grade" in str(excinfo.value)
    assert "file" in str(excinfo.value)


def test_unknown_duplicate_strategy_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[importing]\ndefault_duplicate_strategy = 'replace'\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(config_file, environ={})


def test_apply_updates_validates_keys(tmp_path: Path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("", encoding="utf-8")
    config = load_config(config_file, environ={})
    updated = apply_updates(config, {"scoring.special_factors.cap": "2.5"})
    assert updated.scoring.special_factors.cap == 2.5
    with pytest.raises(ConfigError):
        apply_updates(config, {"scoring.unknown": "1"})


def test_schema_keys_cover_defaults() -> None:
    schema_keys = {
        entry["name"]
        for entry in iter_field_docs(DEFAULT_CONFIG)
        if not entry.get("is_nested")
    }
    default_keys = _flatten(DEFAULT_CONFIG.model_dump(mode="python"))
    assert schema_keys.issubset(default_keys)


@pytest.mark.parametrize(
    "path",
    [
        "scoring.base_weights.venial",
        "scoring.term_factors.contra_projimo",
        "scoring.condicionantes.sin_base",
        "scoring.good_works.sacrifice.alto",
        "metrics.mortal_ceiling",
        "reset.custom_month_days",
        "importing.multi_value_separators",
        "database.driver",
        "logging.level",
    ],
)
def test_implicit_keys_are_defined(path: str) -> None:
    schema_keys = {
        entry["name"]
        for entry in iter_field_docs(DEFAULT_CONFIG)
        if not entry.get("is_nested")
    }
    assert path in schema_keys

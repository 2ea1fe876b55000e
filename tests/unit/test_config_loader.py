from __future__ import annotations
import pytest
from pathlib import Path
from coursecat_import.config.loader import ConfigError, ImportConfig, load_config, resolve_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.mode == "createorupdate"
    assert cfg.update_mode == "dataonly"
    assert cfg.allow_deletes is True
    assert cfg.create_missing_parents is True
    assert cfg.delimiter == "comma"
    assert cfg.defaults == {"visible": True}
    assert cfg.database.port == 5432
    assert cfg.database.dsn is None


def test_load_config_defaults_for_omitted_keys(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("import:\n  mode: createnew\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.mode == "createnew"
    assert cfg.update_mode == "nothing"
    assert cfg.standardise is True
    assert cfg.root_alias == "Top"
    assert cfg.encoding == "UTF-8"


def test_load_config_empty_file(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == ImportConfig()


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError, match="config file not found"):
        load_config(missing)


def test_load_config_extra_field(write_config: Path):
    # additionalProperties: false
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_invalid_mode(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace("mode: createorupdate", "mode: replace")
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(write_config)


def test_load_config_invalid_yaml(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("import: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(path)


def test_load_config_top_level_list(temp_workdir: Path):
    path = temp_workdir / "config" / "import.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_resolve_config(temp_workdir: Path, write_config: Path):
    assert resolve_config(None).mode == "createorupdate"
    write_config.unlink()
    # 既定ファイルが無ければ組み込み既定値
    assert resolve_config(None) == ImportConfig()
    with pytest.raises(ConfigError):
        resolve_config(temp_workdir / "config" / "other.yml")

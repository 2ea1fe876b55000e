# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pytest

from coursecat_import.db.store import InMemoryCategoryStore
from coursecat_import.logging.init import reset_logging
from coursecat_import.models.category import CategoryEntity
from coursecat_import.models.import_policy import ImportMode, ImportPolicy, UpdateMode


@pytest.fixture(autouse=True)
def _fresh_logging():
    # ハンドラは setup 時の sys.stdout を掴むので capsys ごとに作り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """import:
  mode: createorupdate
  update_mode: dataonly
  allow_deletes: true
  allow_renames: true
  standardise: true
  create_missing_parents: true
csv:
  delimiter: comma
  encoding: UTF-8
root_alias: Top
defaults:
  visible: true
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_csv(temp_workdir: Path):
    def _write(text: str, name: str = "categories.csv") -> Path:
        path = temp_workdir / "data" / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture()
def store() -> InMemoryCategoryStore:
    """Science(5) > Physics(6), Arts(7) with idnumber 100."""
    return InMemoryCategoryStore([
        CategoryEntity(id=5, name="Science", parent=0, idnumber="010"),
        CategoryEntity(id=6, name="Physics", parent=5, description="Matter"),
        CategoryEntity(id=7, name="Arts", parent=0, idnumber="100"),
    ])


@pytest.fixture()
def make_policy():
    def _make(mode: ImportMode = ImportMode.CREATE_NEW, **kwargs) -> ImportPolicy:
        kwargs.setdefault("update_mode", UpdateMode.NOTHING)
        return ImportPolicy(mode=mode, **kwargs)
    return _make

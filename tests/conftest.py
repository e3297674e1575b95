from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
FIXTURES = Path(__file__).resolve().parent / "fixtures"
for entry in (ROOT, ROOT / "src", FIXTURES):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

collect_ignore = ["fixtures"]


@pytest.fixture
def sample_root() -> Path:
    return FIXTURES / "sample_app"


@pytest.fixture
def sample_registry_path(sample_root: Path) -> Path:
    return sample_root / "audit" / "registry.py"


@pytest.fixture
def sample_config_path() -> Path:
    return FIXTURES / "wiretag.toml"


@pytest.fixture
def write_source():
    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write

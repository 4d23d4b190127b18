import json
import sys
from pathlib import Path

import pytest

# Ensure `backend/` is on sys.path so tests can import local modules
# like `topology.*`, `scene.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))

DATA_DIR = Path(__file__).resolve().parent / "data"


@pytest.fixture
def india_doc() -> dict:
    return json.loads((DATA_DIR / "india.json").read_text(encoding="utf-8"))


@pytest.fixture
def kerala_doc() -> dict:
    return json.loads((DATA_DIR / "kerala.json").read_text(encoding="utf-8"))


@pytest.fixture
def geo_root(monkeypatch) -> Path:
    # Registry paths resolve against the test fixtures.
    monkeypatch.setenv("CHORO_GEO_ROOT", str(DATA_DIR))
    return DATA_DIR

# ensures the 'src' directory is on sys.path for imports like 'from app import ...'
import json
import sys
from pathlib import Path

import pytest

root = Path(__file__).resolve().parents[1]
src = root / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))


@pytest.fixture
def load_fixture():
    """Load a JSON fixture from fixtures/providers by file name."""
    def _load(name):
        with open(root / "fixtures" / "providers" / name, "r", encoding="utf-8") as f:
            return json.load(f)
    return _load


@pytest.fixture
def snapshot_schema():
    """JSON schema for serialized UV snapshots."""
    with open(root / "schemas" / "uv_snapshot.schema.json", "r", encoding="utf-8") as f:
        return json.load(f)

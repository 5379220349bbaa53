import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.study_service import StudyService  # noqa: E402
from core.study_store import StudyStore  # noqa: E402


@pytest.fixture
def store(tmp_path):
    return StudyStore(path=tmp_path / "study_store.json")


@pytest.fixture
def service(store):
    return StudyService(store=store)

import itertools

import pytest
import pytest_asyncio

from drift.cache.repository import CachedPatternRepository
from drift.patterns.models import Pattern, create_pattern
from drift.storage.file_store import FilePatternRepository
from drift.storage.memory import InMemoryPatternRepository
from drift.storage.unified_store import UnifiedFilePatternRepository

_counter = itertools.count(1)

BACKENDS = ["memory", "legacy", "unified", "cached"]


def make_pattern(pattern_id=None, **overrides) -> Pattern:
    """Build a valid pattern; any field (including status) can be overridden."""
    base = create_pattern({
        "id": pattern_id or f"test-pattern-{next(_counter)}",
        "category": "structural",
        "subcategory": "naming",
        "name": "Test Pattern",
        "description": "A test pattern for testing",
        "detector_id": "test-detector",
        "detector_name": "Test Detector",
        "detection_method": "ast",
        "confidence": 0.9,
        "locations": [{"file": "src/test.ts", "line": 10, "column": 1}],
    })
    return Pattern.model_validate({**base.model_dump(), **overrides})


@pytest.fixture
def pattern_factory():
    return make_pattern


def build_repository(kind: str, root):
    if kind == "memory":
        return InMemoryPatternRepository()
    if kind == "legacy":
        return FilePatternRepository(str(root))
    if kind == "unified":
        return UnifiedFilePatternRepository(str(root))
    if kind == "cached":
        return CachedPatternRepository(InMemoryPatternRepository())
    raise ValueError(kind)


@pytest_asyncio.fixture(params=BACKENDS)
async def repository(request, tmp_path):
    """Every repository backend, initialized over a fresh directory."""
    repo = build_repository(request.param, tmp_path)
    await repo.initialize()
    yield repo
    await repo.close()


@pytest_asyncio.fixture
async def memory_repository():
    repo = InMemoryPatternRepository()
    await repo.initialize()
    yield repo
    await repo.close()

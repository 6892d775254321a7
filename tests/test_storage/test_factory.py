import json
import os

import pytest

from drift.cache.repository import CachedPatternRepository
from drift.config import DriftConfig
from drift.storage.factory import create_pattern_repository, detect_storage_format
from drift.storage.file_store import FilePatternRepository, pattern_to_legacy_record
from drift.storage.memory import InMemoryPatternRepository
from drift.storage.unified_store import UnifiedFilePatternRepository
from drift.utils.errors import ConfigurationError

from conftest import make_pattern


def patterns_dir(root):
    return os.path.join(str(root), ".drift", "patterns")


def write_json(path, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)


def test_detect_none(tmp_path):
    assert detect_storage_format(str(tmp_path)) == "none"


def test_detect_legacy(tmp_path):
    os.makedirs(os.path.join(patterns_dir(tmp_path), "approved"))
    assert detect_storage_format(str(tmp_path)) == "legacy"


def test_detect_unified(tmp_path):
    write_json(os.path.join(patterns_dir(tmp_path), "api.json"), {"version": "2.0.0", "patterns": []})
    assert detect_storage_format(str(tmp_path)) == "unified"


def test_marker_wins_over_directory_contents(tmp_path):
    os.makedirs(os.path.join(patterns_dir(tmp_path), "approved"))
    write_json(os.path.join(patterns_dir(tmp_path), ".format"), {"format": "unified", "version": "2.0.0"})

    assert detect_storage_format(str(tmp_path)) == "unified"
    assert detect_storage_format(str(tmp_path), use_format_marker=False) == "legacy"


def no_cache_config(**storage):
    return DriftConfig(storage=storage, cache={"enabled": False})


@pytest.mark.asyncio
async def test_create_memory(tmp_path):
    repository = await create_pattern_repository(str(tmp_path), format="memory", config=no_cache_config())

    assert isinstance(repository, InMemoryPatternRepository)
    assert not isinstance(repository, UnifiedFilePatternRepository)
    await repository.close()


@pytest.mark.asyncio
async def test_create_auto_on_empty_directory_is_unified(tmp_path):
    repository = await create_pattern_repository(str(tmp_path), config=no_cache_config())

    assert isinstance(repository, UnifiedFilePatternRepository)
    assert os.path.isdir(patterns_dir(tmp_path))
    await repository.close()


@pytest.mark.asyncio
async def test_create_auto_migrates_legacy(tmp_path):
    write_json(os.path.join(patterns_dir(tmp_path), "approved", "api.json"), {
        "version": "1.0.0",
        "category": "api",
        "patterns": [pattern_to_legacy_record(make_pattern("a1", category="api"))],
    })
    # Migration is forced even when disabled in configuration
    config = no_cache_config(auto_migrate=False)

    repository = await create_pattern_repository(str(tmp_path), format="auto", config=config)

    assert isinstance(repository, UnifiedFilePatternRepository)
    assert (await repository.get("a1")).status.value == "approved"
    assert os.path.isfile(os.path.join(patterns_dir(tmp_path), "api.json"))
    await repository.close()


@pytest.mark.asyncio
async def test_create_legacy(tmp_path):
    repository = await create_pattern_repository(str(tmp_path), format="legacy", config=no_cache_config())

    assert isinstance(repository, FilePatternRepository)
    await repository.close()


@pytest.mark.asyncio
async def test_create_with_cache(tmp_path):
    repository = await create_pattern_repository(str(tmp_path), format="unified", cache=True)

    assert isinstance(repository, CachedPatternRepository)
    assert isinstance(repository.inner, UnifiedFilePatternRepository)
    await repository.close()


@pytest.mark.asyncio
async def test_config_supplies_defaults(tmp_path):
    config = DriftConfig(storage={"root_dir": str(tmp_path), "format": "legacy"}, cache={"enabled": False})

    repository = await create_pattern_repository(config=config)

    assert isinstance(repository, FilePatternRepository)
    assert repository.root_dir == os.path.abspath(str(tmp_path))
    await repository.close()


@pytest.mark.asyncio
async def test_unknown_format_raises(tmp_path):
    with pytest.raises(ConfigurationError):
        await create_pattern_repository(str(tmp_path), format="sqlite")

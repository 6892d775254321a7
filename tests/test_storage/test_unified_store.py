import asyncio
import json
import os

import pytest

from drift.patterns.models import PatternStatus
from drift.storage.base import RepositoryEvent
from drift.storage.file_store import FilePatternRepository, pattern_to_legacy_record
from drift.storage.unified_store import (
    UnifiedFilePatternRepository,
    create_unified_file_pattern_repository,
    read_format_marker,
)

from conftest import make_pattern


def patterns_dir(root):
    return os.path.join(str(root), ".drift", "patterns")


def read_json(path):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_legacy_file(root, status, category, patterns):
    directory = os.path.join(patterns_dir(root), status)
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, f"{category}.json"), "w", encoding="utf-8") as f:
        json.dump({
            "version": "1.0.0",
            "category": category,
            "patterns": [pattern_to_legacy_record(p) for p in patterns],
            "lastUpdated": "2024-01-01T00:00:00Z",
        }, f)


@pytest.mark.asyncio
async def test_initialize_creates_directory(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))

    assert os.path.isdir(patterns_dir(tmp_path))
    assert await repository.count() == 0
    await repository.close()


@pytest.mark.asyncio
async def test_save_writes_one_file_per_category(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("api-1", category="api"))
    await repository.add(make_pattern("api-2", category="api", status="approved"))
    await repository.add(make_pattern("sec-1", category="security"))

    await repository.save_all()

    api = read_json(os.path.join(patterns_dir(tmp_path), "api.json"))
    assert api["version"] == "2.0.0"
    assert api["category"] == "api"
    assert {p["id"]: p["status"] for p in api["patterns"]} == {"api-1": "discovered", "api-2": "approved"}
    assert os.path.isfile(os.path.join(patterns_dir(tmp_path), "security.json"))
    assert not os.path.exists(os.path.join(patterns_dir(tmp_path), "approved"))
    await repository.close()


@pytest.mark.asyncio
async def test_round_trip_through_fresh_instance(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    original = make_pattern("p1", category="errors", tags=["try-catch"], approved_by=None)
    await repository.add(original)
    await repository.approve("p1", "alice")
    await repository.close()

    reloaded = await create_unified_file_pattern_repository(str(tmp_path))
    pattern = await reloaded.get("p1")

    assert pattern.status == PatternStatus.APPROVED
    assert pattern.approved_by == "alice"
    assert pattern.tags == ["try-catch"]
    assert pattern.locations == original.locations
    await reloaded.close()


@pytest.mark.asyncio
async def test_empty_category_file_is_removed(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("p1", category="api"))
    await repository.save_all()
    api_file = os.path.join(patterns_dir(tmp_path), "api.json")
    assert os.path.isfile(api_file)

    await repository.delete("p1")
    await repository.save_all()

    assert not os.path.exists(api_file)
    await repository.close()


@pytest.mark.asyncio
async def test_category_change_rewrites_both_files(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("p1", category="api"))
    await repository.save_all()

    await repository.update("p1", {"category": "security"})
    await repository.save_all()

    assert not os.path.exists(os.path.join(patterns_dir(tmp_path), "api.json"))
    security = read_json(os.path.join(patterns_dir(tmp_path), "security.json"))
    assert [p["id"] for p in security["patterns"]] == ["p1"]
    await repository.close()


@pytest.mark.asyncio
async def test_format_marker_written_on_save(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("p1"))
    await repository.save_all()

    marker = read_format_marker(patterns_dir(tmp_path))

    assert marker["format"] == "unified"
    assert marker["version"] == "2.0.0"
    assert "updatedAt" in marker
    await repository.close()


@pytest.mark.asyncio
async def test_format_marker_can_be_disabled(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path), use_format_marker=False)
    await repository.add(make_pattern("p1"))
    await repository.save_all()

    assert read_format_marker(patterns_dir(tmp_path)) is None
    await repository.close()


@pytest.mark.asyncio
async def test_close_flushes_pending_changes(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("p1", category="api"))
    assert repository.has_pending_changes

    await repository.close()

    assert os.path.isfile(os.path.join(patterns_dir(tmp_path), "api.json"))


@pytest.mark.asyncio
async def test_auto_save_after_debounce(tmp_path):
    repository = await create_unified_file_pattern_repository(
        str(tmp_path), auto_save=True, auto_save_delay_ms=10
    )
    saved = []
    repository.on(RepositoryEvent.PATTERNS_SAVED, lambda pattern, metadata: saved.append(metadata))

    await repository.add(make_pattern("p1", category="api"))
    await repository.add(make_pattern("p2", category="api"))
    await asyncio.sleep(0.2)

    assert len(saved) == 1
    assert os.path.isfile(os.path.join(patterns_dir(tmp_path), "api.json"))
    assert not repository.has_pending_changes
    await repository.close()


@pytest.mark.asyncio
async def test_close_collects_pending_auto_save(tmp_path):
    repository = await create_unified_file_pattern_repository(
        str(tmp_path), auto_save=True, auto_save_delay_ms=60_000
    )
    await repository.add(make_pattern("p1", category="api"))
    pending = repository._save_task
    assert pending is not None and not pending.done()

    await repository.close()

    assert pending.done()
    assert repository._save_task is None
    assert os.path.isfile(os.path.join(patterns_dir(tmp_path), "api.json"))


@pytest.mark.asyncio
async def test_corrupt_file_does_not_block_others(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("good", category="api"))
    await repository.close()
    with open(os.path.join(patterns_dir(tmp_path), "security.json"), "w", encoding="utf-8") as f:
        f.write("{not json")

    reloaded = await create_unified_file_pattern_repository(str(tmp_path))

    assert await reloaded.exists("good")
    assert await reloaded.count() == 1
    await reloaded.close()


@pytest.mark.asyncio
async def test_invalid_record_is_skipped(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add(make_pattern("good", category="api"))
    await repository.close()
    api_file = os.path.join(patterns_dir(tmp_path), "api.json")
    data = read_json(api_file)
    data["patterns"].append({"id": "broken", "confidence": 7})
    with open(api_file, "w", encoding="utf-8") as f:
        json.dump(data, f)

    reloaded = await create_unified_file_pattern_repository(str(tmp_path))

    assert [p.id for p in await reloaded.get_all()] == ["good"]
    await reloaded.close()


@pytest.mark.asyncio
async def test_storage_stats(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add_many([
        make_pattern("p1", category="api"),
        make_pattern("p2", category="api", status="approved"),
        make_pattern("p3", category="security"),
    ])

    stats = repository.get_storage_stats()

    assert stats.total_patterns == 3
    assert stats.by_category == {"api": 2, "security": 1}
    assert stats.by_status == {"discovered": 2, "approved": 1, "ignored": 0}
    assert stats.file_count == 2
    await repository.close()


@pytest.mark.asyncio
async def test_loaded_event_reports_count(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add_many([make_pattern("p1"), make_pattern("p2")])
    await repository.close()

    reloaded = UnifiedFilePatternRepository(str(tmp_path))
    loaded = []
    reloaded.on("patterns:loaded", lambda pattern, metadata: loaded.append(metadata["count"]))
    await reloaded.initialize()

    assert loaded == [2]
    await reloaded.close()


@pytest.mark.asyncio
async def test_clear_removes_files(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))
    await repository.add_many([make_pattern("p1", category="api"), make_pattern("p2", category="errors")])
    await repository.save_all()

    await repository.clear()

    assert not os.path.exists(os.path.join(patterns_dir(tmp_path), "api.json"))
    assert not os.path.exists(os.path.join(patterns_dir(tmp_path), "errors.json"))
    await repository.close()


# ==================== Migration ====================

@pytest.mark.asyncio
async def test_migration_preserves_status(tmp_path):
    write_legacy_file(tmp_path, "discovered", "api", [make_pattern("d1", category="api")])
    write_legacy_file(tmp_path, "approved", "api", [make_pattern("a1", category="api", status="approved")])
    write_legacy_file(tmp_path, "ignored", "security", [make_pattern("i1", category="security")])

    repository = await create_unified_file_pattern_repository(str(tmp_path))

    assert (await repository.get("d1")).status == PatternStatus.DISCOVERED
    assert (await repository.get("a1")).status == PatternStatus.APPROVED
    assert (await repository.get("i1")).status == PatternStatus.IGNORED
    assert (await repository.get("i1")).category == "security"

    migration = repository.last_migration
    assert migration.migrated is True
    assert migration.pattern_count == 3
    assert migration.by_status == {"discovered": 1, "approved": 1, "ignored": 1}
    assert migration.legacy_files_removed is True

    for status in ("discovered", "approved", "ignored"):
        assert not os.path.exists(os.path.join(patterns_dir(tmp_path), status))
    api = read_json(os.path.join(patterns_dir(tmp_path), "api.json"))
    assert {p["id"] for p in api["patterns"]} == {"d1", "a1"}
    await repository.close()


@pytest.mark.asyncio
async def test_migration_can_keep_legacy_files(tmp_path):
    write_legacy_file(tmp_path, "approved", "api", [make_pattern("a1", category="api")])

    repository = await create_unified_file_pattern_repository(str(tmp_path), keep_legacy_files=True)
    await repository.close()

    assert os.path.isfile(os.path.join(patterns_dir(tmp_path), "approved", "api.json"))
    assert repository.last_migration.legacy_files_removed is False

    # Marker says unified, so the kept files are not migrated again
    reloaded = await create_unified_file_pattern_repository(str(tmp_path), keep_legacy_files=True)
    assert reloaded.last_migration is None
    assert await reloaded.count() == 1
    await reloaded.close()


@pytest.mark.asyncio
async def test_migration_is_idempotent(tmp_path):
    write_legacy_file(tmp_path, "discovered", "api", [make_pattern("d1", category="api")])
    repository = UnifiedFilePatternRepository(str(tmp_path), auto_migrate=False, keep_legacy_files=True)
    await repository.initialize()

    first = await repository.migrate_from_legacy()
    await repository.approve("d1", "carol")
    await repository.save_all()
    second = await repository.migrate_from_legacy()

    assert first.migrated is True
    assert second.migrated is False
    assert second.already_migrated is True
    assert await repository.count() == 1
    assert (await repository.get("d1")).status == PatternStatus.APPROVED
    await repository.close()

    reloaded = await create_unified_file_pattern_repository(str(tmp_path), keep_legacy_files=True)
    assert (await reloaded.get("d1")).status == PatternStatus.APPROVED
    await reloaded.close()


@pytest.mark.asyncio
async def test_forced_migration_only_adds_new_ids(tmp_path):
    write_legacy_file(tmp_path, "discovered", "api", [
        make_pattern("d1", category="api"),
        make_pattern("d2", category="api"),
    ])
    repository = UnifiedFilePatternRepository(str(tmp_path), auto_migrate=False, keep_legacy_files=True)
    await repository.initialize()
    await repository.add(make_pattern("d1", category="api", status="approved"))
    await repository.save_all()

    result = await repository.migrate_from_legacy(force=True)

    assert result.migrated is True
    assert result.pattern_count == 1
    assert result.skipped_existing == 1
    assert (await repository.get("d1")).status == PatternStatus.APPROVED
    assert (await repository.get("d2")).status == PatternStatus.DISCOVERED
    await repository.close()


@pytest.mark.asyncio
async def test_migration_without_legacy_files(tmp_path):
    repository = await create_unified_file_pattern_repository(str(tmp_path))

    result = await repository.migrate_from_legacy()

    assert result.migrated is False
    assert result.pattern_count == 0
    await repository.close()


@pytest.mark.asyncio
async def test_migration_from_legacy_repository(tmp_path):
    legacy = FilePatternRepository(str(tmp_path))
    await legacy.initialize()
    await legacy.add(make_pattern("p1", category="api"))
    await legacy.approve("p1", "bob")
    await legacy.close()

    repository = await create_unified_file_pattern_repository(str(tmp_path))
    pattern = await repository.get("p1")

    assert pattern.status == PatternStatus.APPROVED
    assert pattern.approved_by == "bob"
    await repository.close()


@pytest.mark.asyncio
async def test_unreadable_legacy_file_keeps_legacy_tree(tmp_path):
    write_legacy_file(tmp_path, "discovered", "api", [make_pattern("d1", category="api")])
    broken = os.path.join(patterns_dir(tmp_path), "approved")
    os.makedirs(broken, exist_ok=True)
    with open(os.path.join(broken, "security.json"), "w", encoding="utf-8") as f:
        f.write("[")

    repository = await create_unified_file_pattern_repository(str(tmp_path))

    assert await repository.exists("d1")
    assert repository.last_migration.files_failed
    assert repository.last_migration.legacy_files_removed is False
    assert os.path.isdir(broken)
    await repository.close()

"""
Legacy status/category pattern storage.

Patterns are stored in one JSON file per (status, category) pair:

    <root>/.drift/patterns/<status>/<category>.json
    {"version": "1.0.0", "category": ..., "patterns": [...], "lastUpdated": ...}

Records omit ``category`` and ``status``; both are re-attached from the
file's position in the tree on load. This layout is superseded by the
unified per-category layout but remains readable for migration.
"""
import asyncio
import os
import shutil
from typing import Any, Dict, List, Tuple

from drift.constants import DEFAULT_AUTO_SAVE_DELAY_MS
from drift.patterns.models import Pattern, PatternStatus, utc_now_iso
from drift.storage.persistent import PersistentPatternRepository, pattern_from_record
from drift.utils.errors import DriftError, StorageError
from drift.utils.filesystem import (
    ensure_dir_async,
    list_json_files_async,
    read_json_async,
    remove_file_async,
    write_json_async,
)
from drift.utils.logging import logger
from drift.version import LEGACY_FORMAT_VERSION

LegacyKey = Tuple[str, str]


def legacy_status_dirs(patterns_dir: str) -> Dict[PatternStatus, str]:
    """Paths of the per-status directories of the legacy layout."""
    return {status: os.path.join(patterns_dir, status.value) for status in PatternStatus}


def has_legacy_layout(patterns_dir: str) -> bool:
    """Whether any legacy status directory exists."""
    return any(os.path.isdir(path) for path in legacy_status_dirs(patterns_dir).values())


def pattern_to_legacy_record(pattern: Pattern) -> Dict[str, Any]:
    record = pattern.to_json_dict()
    record.pop("category", None)
    record.pop("status", None)
    return record


async def read_legacy_file(path: str, status: PatternStatus) -> List[Pattern]:
    """Read one legacy file, re-attaching category and status.

    Raises:
        StorageError: If the file cannot be read or parsed
    """
    try:
        data = await read_json_async(path)
    except (OSError, ValueError) as e:
        raise StorageError(f"Failed to read pattern file: {e}", path=path)
    if not isinstance(data, dict) or not isinstance(data.get("patterns"), list):
        raise StorageError("Malformed legacy pattern file", path=path)

    category = data.get("category") or os.path.splitext(os.path.basename(path))[0]
    patterns = []
    for record in data["patterns"]:
        try:
            patterns.append(pattern_from_record(record, category=category, status=status))
        except DriftError as e:
            logger.error(
                f"Skipping invalid pattern record in {path}: {e.message}",
                component="storage",
                operation="load",
                context={"path": path},
            )
    return patterns


async def read_legacy_layout(patterns_dir: str) -> Tuple[List[Pattern], List[str], List[str]]:
    """Read every legacy file under a patterns directory.

    Unreadable files are logged and skipped.

    Returns:
        Tuple of (patterns, files read, files that failed)
    """
    patterns: List[Pattern] = []
    read: List[str] = []
    failed: List[str] = []
    for status, status_dir in legacy_status_dirs(patterns_dir).items():
        for name in await list_json_files_async(status_dir):
            path = os.path.join(status_dir, name)
            try:
                patterns.extend(await read_legacy_file(path, status))
                read.append(path)
            except StorageError as e:
                failed.append(path)
                logger.error(
                    f"Failed to load legacy pattern file: {e.message}",
                    component="storage",
                    operation="load",
                    context={"path": path},
                )
    return patterns, read, failed


async def remove_legacy_layout(patterns_dir: str) -> int:
    """Delete the legacy status directories; returns how many were removed."""
    removed = 0
    for status_dir in legacy_status_dirs(patterns_dir).values():
        if os.path.isdir(status_dir):
            await asyncio.to_thread(shutil.rmtree, status_dir)
            removed += 1
    return removed


class FilePatternRepository(PersistentPatternRepository):
    """Pattern repository using the legacy status/category layout."""

    def __init__(
        self,
        root_dir: str,
        auto_save: bool = False,
        auto_save_delay_ms: int = DEFAULT_AUTO_SAVE_DELAY_MS,
    ):
        super().__init__(root_dir, auto_save=auto_save, auto_save_delay_ms=auto_save_delay_ms)

    def _file_key(self, pattern: Pattern) -> LegacyKey:
        return (pattern.status.value, pattern.category)

    def _file_path(self, key: LegacyKey) -> str:
        status, category = key
        return os.path.join(self.patterns_dir, status, f"{category}.json")

    async def _load(self) -> int:
        for status_dir in legacy_status_dirs(self.patterns_dir).values():
            await ensure_dir_async(status_dir)

        patterns, _, _ = await read_legacy_layout(self.patterns_dir)
        for pattern in patterns:
            if pattern.id in self._patterns:
                logger.warning(
                    f"Duplicate pattern id {pattern.id} in legacy files; keeping the last one",
                    component="storage",
                    operation="load",
                )
            self._patterns[pattern.id] = pattern
        return len(self._patterns)

    async def _write_file(self, key: LegacyKey) -> None:
        path = self._file_path(key)
        patterns = self._patterns_for_key(key)
        try:
            if not patterns:
                await remove_file_async(path)
                return
            await write_json_async(path, {
                "version": LEGACY_FORMAT_VERSION,
                "category": key[1],
                "patterns": [pattern_to_legacy_record(p) for p in patterns],
                "lastUpdated": utc_now_iso(),
            })
        except OSError as e:
            raise StorageError(f"Failed to write pattern file: {e}", path=path)

    async def _remove_all_files(self) -> None:
        for status_dir in legacy_status_dirs(self.patterns_dir).values():
            for name in await list_json_files_async(status_dir):
                await remove_file_async(os.path.join(status_dir, name))


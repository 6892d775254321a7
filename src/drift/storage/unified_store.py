"""
Unified per-category pattern storage.

One JSON file per category, each record carrying its own status:

    <root>/.drift/patterns/<category>.json
    {"version": "2.0.0", "category": ..., "patterns": [{..., "status": ...}]}

A category file is removed when its last pattern goes away. A small
``.format`` marker next to the category files records the layout version and
is preferred over directory sniffing when detecting the storage format.

Legacy status/category files found on initialize are migrated in place when
``auto_migrate`` is set. Migration is keyed by pattern id, so re-running it
never duplicates patterns.
"""
import json
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from drift.constants import DEFAULT_AUTO_SAVE_DELAY_MS, FORMAT_MARKER_FILE
from drift.patterns.models import Pattern, utc_now_iso
from drift.storage.file_store import has_legacy_layout, read_legacy_layout, remove_legacy_layout
from drift.storage.persistent import PersistentPatternRepository, pattern_from_record
from drift.utils.errors import DriftError, StorageError
from drift.utils.filesystem import (
    list_json_files_async,
    read_json_async,
    remove_file_async,
    write_json_async,
)
from drift.utils.logging import logger
from drift.version import STORAGE_FORMAT_VERSION


class MigrationResult(BaseModel):
    """Outcome of a legacy-to-unified migration."""

    migrated: bool = False
    pattern_count: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    files_read: List[str] = Field(default_factory=list)
    files_failed: List[str] = Field(default_factory=list)
    legacy_files_removed: bool = False
    already_migrated: bool = False
    skipped_existing: int = 0


def read_format_marker(patterns_dir: str) -> Optional[Dict[str, Any]]:
    """Read the format marker, or None if it is missing or unreadable."""
    path = os.path.join(patterns_dir, FORMAT_MARKER_FILE)
    if not os.path.isfile(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            marker = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(
            f"Ignoring unreadable format marker: {e}",
            component="storage",
            operation="detect_format",
            context={"path": path},
        )
        return None
    return marker if isinstance(marker, dict) else None


def list_unified_files(patterns_dir: str) -> List[str]:
    """Category file names present directly under the patterns directory."""
    if not os.path.isdir(patterns_dir):
        return []
    return sorted(
        name for name in os.listdir(patterns_dir)
        if name.endswith(".json") and os.path.isfile(os.path.join(patterns_dir, name))
    )


class UnifiedFilePatternRepository(PersistentPatternRepository):
    """Pattern repository storing one file per category."""

    def __init__(
        self,
        root_dir: str,
        auto_save: bool = False,
        auto_save_delay_ms: int = DEFAULT_AUTO_SAVE_DELAY_MS,
        auto_migrate: bool = True,
        keep_legacy_files: bool = False,
        use_format_marker: bool = True,
    ):
        """
        Initialize the unified repository.

        Args:
            root_dir: Project root; files live under ``<root>/.drift/patterns``
            auto_save: Persist automatically after mutations
            auto_save_delay_ms: Debounce delay for auto-save
            auto_migrate: Migrate legacy status/category files on initialize
            keep_legacy_files: Leave legacy files in place after migration
            use_format_marker: Write the ``.format`` marker on save and honour it
        """
        super().__init__(root_dir, auto_save=auto_save, auto_save_delay_ms=auto_save_delay_ms)
        self.auto_migrate = auto_migrate
        self.keep_legacy_files = keep_legacy_files
        self.use_format_marker = use_format_marker
        self.last_migration: Optional[MigrationResult] = None

    @property
    def marker_path(self) -> str:
        return os.path.join(self.patterns_dir, FORMAT_MARKER_FILE)

    def _file_key(self, pattern: Pattern) -> str:
        return pattern.category

    def _file_path(self, category: str) -> str:
        return os.path.join(self.patterns_dir, f"{category}.json")

    # Loading

    async def _load(self) -> int:
        for name in await list_json_files_async(self.patterns_dir):
            path = os.path.join(self.patterns_dir, name)
            try:
                patterns = await self._read_category_file(path)
            except StorageError as e:
                logger.error(
                    f"Failed to load pattern file: {e.message}",
                    component="storage",
                    operation="load",
                    context={"path": path},
                )
                continue
            for pattern in patterns:
                self._patterns[pattern.id] = pattern

        if self.auto_migrate and has_legacy_layout(self.patterns_dir) and not self.is_migrated():
            await self.migrate_from_legacy()
        return len(self._patterns)

    async def _read_category_file(self, path: str) -> List[Pattern]:
        try:
            data = await read_json_async(path)
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read pattern file: {e}", path=path)
        if not isinstance(data, dict) or not isinstance(data.get("patterns"), list):
            raise StorageError("Malformed pattern file", path=path)

        category = data.get("category") or os.path.splitext(os.path.basename(path))[0]
        patterns = []
        for record in data["patterns"]:
            try:
                patterns.append(pattern_from_record(record, category=category))
            except DriftError as e:
                logger.error(
                    f"Skipping invalid pattern record in {path}: {e.message}",
                    component="storage",
                    operation="load",
                    context={"path": path},
                )
        return patterns

    # Migration

    def is_migrated(self) -> bool:
        """Whether the directory already holds unified data.

        The format marker decides when present; otherwise any category file
        directly under the patterns directory counts as unified data.
        """
        if self.use_format_marker:
            marker = read_format_marker(self.patterns_dir)
            if marker is not None:
                return marker.get("format") == "unified"
        return bool(list_unified_files(self.patterns_dir))

    async def migrate_from_legacy(self, force: bool = False) -> MigrationResult:
        """Move legacy status/category files into the unified layout.

        Legacy records are added to the working set with their status taken
        from the legacy directory. Ids already in the working set are left
        untouched. The result is written immediately; legacy directories are
        removed unless ``keep_legacy_files`` is set.

        Args:
            force: Import even when the directory already holds unified data

        Returns:
            MigrationResult describing what was migrated
        """
        if not has_legacy_layout(self.patterns_dir):
            return MigrationResult()
        if not force and self.is_migrated():
            logger.info(
                f"Patterns in {self.patterns_dir} are already migrated",
                component="migration",
                operation="migrate",
            )
            return MigrationResult(already_migrated=True)

        logger.info(
            f"Migrating legacy pattern files in {self.patterns_dir}",
            component="migration",
            operation="migrate",
        )
        legacy, files_read, files_failed = await read_legacy_layout(self.patterns_dir)
        patterns: List[Pattern] = []
        by_status: Dict[str, int] = {}
        for pattern in legacy:
            if pattern.id in self._patterns:
                continue
            patterns.append(pattern)
            self._patterns[pattern.id] = pattern
            self._mark_dirty(None, pattern)
            by_status[pattern.status.value] = by_status.get(pattern.status.value, 0) + 1

        await self.save_all()

        removed = False
        if not self.keep_legacy_files and not files_failed:
            await remove_legacy_layout(self.patterns_dir)
            removed = True
            logger.info(
                "Removed legacy pattern directories",
                component="migration",
                operation="cleanup",
            )
        elif files_failed:
            logger.warning(
                f"Keeping legacy files: {len(files_failed)} could not be read",
                component="migration",
                operation="cleanup",
                context={"failed": files_failed},
            )

        result = MigrationResult(
            migrated=True,
            pattern_count=len(patterns),
            by_status=by_status,
            files_read=files_read,
            files_failed=files_failed,
            legacy_files_removed=removed,
            skipped_existing=len(legacy) - len(patterns),
        )
        self.last_migration = result
        logger.success(
            f"Migrated {len(patterns)} patterns from {len(files_read)} legacy files",
            component="migration",
            operation="migrate",
            context={"by_status": by_status},
        )
        return result

    # Writing

    async def _write_file(self, category: str) -> None:
        path = self._file_path(category)
        patterns = self._patterns_for_key(category)
        try:
            if not patterns:
                if await remove_file_async(path):
                    logger.debug(
                        f"Removed empty category file {category}.json",
                        component="storage",
                        operation="save",
                    )
                return
            await write_json_async(path, {
                "version": STORAGE_FORMAT_VERSION,
                "category": category,
                "patterns": [p.to_json_dict() for p in patterns],
            })
        except OSError as e:
            raise StorageError(f"Failed to write pattern file: {e}", path=path)

    async def _after_save(self) -> None:
        if self.use_format_marker:
            await self._write_marker()

    async def _write_marker(self) -> None:
        marker = {"format": "unified", "version": STORAGE_FORMAT_VERSION, "updatedAt": utc_now_iso()}
        try:
            await write_json_async(self.marker_path, marker)
        except OSError as e:
            raise StorageError(f"Failed to write format marker: {e}", path=self.marker_path)

    async def _remove_all_files(self) -> None:
        for name in await list_json_files_async(self.patterns_dir):
            await remove_file_async(os.path.join(self.patterns_dir, name))


async def create_unified_file_pattern_repository(root_dir: str, **options: Any) -> UnifiedFilePatternRepository:
    """Create and initialize a unified repository."""
    repository = UnifiedFilePatternRepository(root_dir, **options)
    await repository.initialize()
    return repository

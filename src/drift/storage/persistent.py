"""
Shared machinery for file-backed pattern repositories.

Both on-disk layouts keep the full working set in memory (inherited from the
in-memory repository), track which files are dirty, and flush them on
``save_all``. An optional debounced auto-save writes shortly after a burst of
mutations. The directory is assumed to be owned by a single repository
instance; concurrent writers from other processes are not coordinated.
"""
import asyncio
import os
from abc import abstractmethod
from typing import Any, Dict, Hashable, Optional, Set

from pydantic import BaseModel, Field, ValidationError

from drift.constants import PATTERNS_DIR, DEFAULT_AUTO_SAVE_DELAY_MS
from drift.patterns.models import DetectorInfo, Pattern, PatternStatus
from drift.storage.base import RepositoryEvent
from drift.storage.memory import InMemoryPatternRepository
from drift.utils.errors import PatternValidationError
from drift.utils.filesystem import ensure_dir_async
from drift.utils.logging import logger


class StorageStats(BaseModel):
    """Counts describing a file-backed repository."""

    total_patterns: int = 0
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_status: Dict[str, int] = Field(default_factory=dict)
    file_count: int = Field(0, description="Files the current working set occupies on disk")


def pattern_from_record(
    record: Dict[str, Any],
    category: Optional[str] = None,
    status: Optional[PatternStatus] = None,
) -> Pattern:
    """Rebuild a Pattern from a stored JSON record.

    ``category`` and ``status`` override the record's own values; they are
    how the legacy layout re-attaches fields implied by the file location.

    Raises:
        PatternValidationError: If the record is not a valid pattern
    """
    data = dict(record)
    if category is not None:
        data["category"] = category
    if status is not None:
        data["status"] = status
    if "detector" not in data and "detectorId" in data:
        data["detector"] = DetectorInfo(id=data["detectorId"], name=data.get("detectorName", data["detectorId"])).to_json_dict()
    try:
        return Pattern.model_validate(data)
    except ValidationError as e:
        raise PatternValidationError(f"Invalid stored pattern {data.get('id', '<no id>')}: {e}")


class PersistentPatternRepository(InMemoryPatternRepository):
    """In-memory working set with dirty tracking and file persistence.

    With ``auto_save`` enabled, writes schedule a debounced save task on the
    running loop. Call ``close()`` before dropping the repository so that
    task is flushed and collected.
    """

    def __init__(
        self,
        root_dir: str,
        auto_save: bool = False,
        auto_save_delay_ms: int = DEFAULT_AUTO_SAVE_DELAY_MS,
    ):
        """
        Initialize a file-backed repository.

        Args:
            root_dir: Project root; files live under ``<root>/.drift/patterns``
            auto_save: Persist automatically after mutations
            auto_save_delay_ms: Debounce delay for auto-save
        """
        super().__init__()
        self.root_dir = os.path.abspath(root_dir)
        self.patterns_dir = os.path.join(self.root_dir, PATTERNS_DIR)
        self.auto_save = auto_save
        self.auto_save_delay_ms = auto_save_delay_ms
        self._dirty: Set[Hashable] = set()
        self._save_task: Optional[asyncio.Task] = None

    # Layout-specific parts

    @abstractmethod
    def _file_key(self, pattern: Pattern) -> Hashable:
        """Identify the file a pattern is stored in."""

    @abstractmethod
    async def _load(self) -> int:
        """Load all files into the working set; returns patterns loaded."""

    @abstractmethod
    async def _write_file(self, key: Hashable) -> None:
        """Write (or remove, when empty) the file identified by key."""

    @abstractmethod
    async def _remove_all_files(self) -> None:
        """Delete every pattern file of this layout."""

    # Dirty tracking

    def _mark_dirty(self, previous: Optional[Pattern], current: Optional[Pattern]) -> None:
        if previous is not None:
            self._dirty.add(self._file_key(previous))
        if current is not None:
            self._dirty.add(self._file_key(current))

    def _after_mutation(self) -> None:
        if self.auto_save and self._dirty:
            self._schedule_save()

    @property
    def has_pending_changes(self) -> bool:
        return bool(self._dirty)

    def _patterns_for_key(self, key: Hashable):
        return [p for p in self._patterns.values() if self._file_key(p) == key]

    def get_storage_stats(self) -> StorageStats:
        """Counts by category and status plus the number of pattern files."""
        by_status = {status.value: 0 for status in PatternStatus}
        by_category: Dict[str, int] = {}
        for pattern in self._patterns.values():
            by_status[pattern.status.value] += 1
            by_category[pattern.category] = by_category.get(pattern.category, 0) + 1
        return StorageStats(
            total_patterns=len(self._patterns),
            by_category=by_category,
            by_status=by_status,
            file_count=len({self._file_key(p) for p in self._patterns.values()}),
        )

    # Auto-save

    def _schedule_save(self) -> None:
        if self._save_task is not None and not self._save_task.done():
            self._save_task.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._save_task = loop.create_task(self._delayed_save())

    async def _delayed_save(self) -> None:
        await asyncio.sleep(self.auto_save_delay_ms / 1000)
        try:
            await self.save_all()
        except Exception as e:
            logger.error(
                f"Auto-save failed: {e}",
                component="storage",
                operation="save",
                context={"patterns_dir": self.patterns_dir},
                exception=e,
            )

    async def _cancel_pending_save(self) -> None:
        task, self._save_task = self._save_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # Lifecycle

    async def initialize(self) -> None:
        if self._initialized:
            return
        await ensure_dir_async(self.patterns_dir)
        loaded = await self._load()
        self._initialized = True
        logger.debug(
            f"Loaded {loaded} patterns from {self.patterns_dir}",
            component="storage",
            operation="load",
        )
        self._events.emit(RepositoryEvent.PATTERNS_LOADED, None, {"count": loaded})

    async def close(self) -> None:
        await self._cancel_pending_save()
        if self._initialized and self._dirty:
            await self.save_all()
        self._initialized = False

    async def save_all(self) -> None:
        await self._cancel_pending_save()
        await ensure_dir_async(self.patterns_dir)
        written = sorted(self._dirty, key=str)
        for key in written:
            await self._write_file(key)
            self._dirty.discard(key)
        await self._after_save()
        logger.debug(
            f"Saved {len(written)} pattern files",
            component="storage",
            operation="save_all",
            context={"files": [str(k) for k in written]},
        )
        self._events.emit(
            RepositoryEvent.PATTERNS_SAVED,
            None,
            {"count": len(self._patterns), "files_written": len(written)},
        )

    async def _after_save(self) -> None:
        """Hook run after dirty files have been flushed."""

    async def clear(self) -> None:
        await self._cancel_pending_save()
        self._patterns.clear()
        await self._remove_all_files()
        self._dirty.clear()

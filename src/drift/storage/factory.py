"""
Repository construction and storage format detection.
"""
import os
from typing import Optional

from drift.config import DriftConfig
from drift.constants import PATTERNS_DIR
from drift.storage.base import PatternRepository
from drift.storage.file_store import FilePatternRepository, has_legacy_layout
from drift.storage.memory import InMemoryPatternRepository
from drift.storage.unified_store import (
    UnifiedFilePatternRepository,
    list_unified_files,
    read_format_marker,
)
from drift.utils.errors import ConfigurationError
from drift.utils.logging import logger

STORAGE_FORMATS = ("auto", "unified", "legacy", "memory")


def detect_storage_format(root_dir: str, use_format_marker: bool = True) -> str:
    """Work out which layout a project's pattern directory uses.

    The ``.format`` marker wins when present. Otherwise category files
    directly under the patterns directory mean unified, and any of the
    per-status directories mean legacy.

    Args:
        root_dir: Project root
        use_format_marker: Consult the marker file first

    Returns:
        "unified", "legacy" or "none"
    """
    patterns_dir = os.path.join(os.path.abspath(root_dir), PATTERNS_DIR)
    if use_format_marker:
        marker = read_format_marker(patterns_dir)
        if marker is not None and marker.get("format") in ("unified", "legacy"):
            return marker["format"]
    if list_unified_files(patterns_dir):
        return "unified"
    if has_legacy_layout(patterns_dir):
        return "legacy"
    return "none"


async def create_pattern_repository(
    root_dir: Optional[str] = None,
    format: Optional[str] = None,
    config: Optional[DriftConfig] = None,
    cache: Optional[bool] = None,
    auto_save: Optional[bool] = None,
) -> PatternRepository:
    """Build and initialize a pattern repository.

    With format "auto" the unified backend is always used: legacy data is
    migrated into it and a missing directory starts fresh in unified form.

    Args:
        root_dir: Project root (defaults to the configured root)
        format: "auto", "unified", "legacy" or "memory" (defaults to configured)
        config: Settings supplying defaults for every other option
        cache: Wrap the backend in the caching decorator
        auto_save: Persist automatically after mutations

    Returns:
        Initialized repository

    Raises:
        ConfigurationError: If the format is unknown
    """
    config = config or DriftConfig()
    storage = config.storage
    root_dir = root_dir if root_dir is not None else storage.root_dir
    format = (format or storage.format).lower()
    auto_save = storage.auto_save if auto_save is None else auto_save
    use_cache = config.cache.enabled if cache is None else cache

    if format not in STORAGE_FORMATS:
        raise ConfigurationError(
            f"Unknown storage format '{format}'; expected one of {list(STORAGE_FORMATS)}",
            {"format": format},
        )

    auto_migrate = storage.auto_migrate
    if format == "auto":
        detected = detect_storage_format(root_dir, storage.use_format_marker)
        logger.debug(
            f"Detected storage format '{detected}' in {root_dir}",
            component="storage",
            operation="detect_format",
        )
        if detected == "legacy":
            auto_migrate = True
        format = "unified"

    if format == "memory":
        repository: PatternRepository = InMemoryPatternRepository()
    elif format == "legacy":
        repository = FilePatternRepository(
            root_dir,
            auto_save=auto_save,
            auto_save_delay_ms=storage.auto_save_delay_ms,
        )
    else:
        repository = UnifiedFilePatternRepository(
            root_dir,
            auto_save=auto_save,
            auto_save_delay_ms=storage.auto_save_delay_ms,
            auto_migrate=auto_migrate,
            keep_legacy_files=storage.keep_legacy_files,
            use_format_marker=storage.use_format_marker,
        )

    if use_cache:
        from drift.cache.repository import CachedPatternRepository

        repository = CachedPatternRepository(
            repository,
            pattern_ttl_ms=config.cache.pattern_ttl_ms,
            query_ttl_ms=config.cache.query_ttl_ms,
            max_entries=config.cache.max_entries,
        )

    await repository.initialize()
    return repository

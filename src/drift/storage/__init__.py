"""
Drift Storage Package.

The pattern repository contract and its backends: in-memory, legacy
status/category files and unified per-category files.
"""

from drift.storage.base import (
    PatternFilter,
    PatternSort,
    PatternPagination,
    PatternQueryOptions,
    PatternQueryResult,
    RepositoryEvent,
    PatternEventEmitter,
    PatternRepository,
    matches_filter,
    sort_patterns,
    execute_query,
)
from drift.storage.memory import InMemoryPatternRepository
from drift.storage.persistent import PersistentPatternRepository, StorageStats
from drift.storage.file_store import FilePatternRepository
from drift.storage.unified_store import (
    MigrationResult,
    UnifiedFilePatternRepository,
    create_unified_file_pattern_repository,
)
from drift.storage.factory import create_pattern_repository, detect_storage_format

__all__ = [
    "PatternFilter",
    "PatternSort",
    "PatternPagination",
    "PatternQueryOptions",
    "PatternQueryResult",
    "RepositoryEvent",
    "PatternEventEmitter",
    "PatternRepository",
    "matches_filter",
    "sort_patterns",
    "execute_query",
    "InMemoryPatternRepository",
    "PersistentPatternRepository",
    "StorageStats",
    "FilePatternRepository",
    "MigrationResult",
    "UnifiedFilePatternRepository",
    "create_unified_file_pattern_repository",
    "create_pattern_repository",
    "detect_storage_format",
]

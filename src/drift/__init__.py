"""
Drift - pattern repository and service.

Stores detected code patterns, tracks their approval status and answers
queries about them for CLI and tooling consumers.
"""

from drift.version import __version__
from drift.patterns.models import (
    Pattern,
    PatternStatus,
    ConfidenceLevel,
    Severity,
    PatternPatch,
    create_pattern,
)
from drift.storage import (
    PatternRepository,
    InMemoryPatternRepository,
    FilePatternRepository,
    UnifiedFilePatternRepository,
    RepositoryEvent,
    create_pattern_repository,
    detect_storage_format,
)
from drift.cache import CachedPatternRepository
from drift.service import PatternService, create_pattern_service
from drift.utils.errors import (
    DriftError,
    PatternNotFoundError,
    PatternAlreadyExistsError,
    InvalidStatusTransitionError,
    StorageError,
)

__all__ = [
    "__version__",
    "Pattern",
    "PatternStatus",
    "ConfidenceLevel",
    "Severity",
    "PatternPatch",
    "create_pattern",
    "PatternRepository",
    "InMemoryPatternRepository",
    "FilePatternRepository",
    "UnifiedFilePatternRepository",
    "RepositoryEvent",
    "create_pattern_repository",
    "detect_storage_format",
    "CachedPatternRepository",
    "PatternService",
    "create_pattern_service",
    "DriftError",
    "PatternNotFoundError",
    "PatternAlreadyExistsError",
    "InvalidStatusTransitionError",
    "StorageError",
]

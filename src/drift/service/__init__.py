"""
Drift Service Package.

The pattern service consumed by tools, plus code example extraction.
"""

from drift.service.examples import CodeExample, extract_code_examples
from drift.service.pattern_service import (
    PatternSystemStatus,
    CategorySummary,
    ListOptions,
    PaginatedResult,
    SearchOptions,
    PatternWithExamples,
    BatchFailure,
    BatchResult,
    PatternService,
    compute_health_score,
    create_pattern_service,
)

__all__ = [
    "CodeExample",
    "extract_code_examples",
    "PatternSystemStatus",
    "CategorySummary",
    "ListOptions",
    "PaginatedResult",
    "SearchOptions",
    "PatternWithExamples",
    "BatchFailure",
    "BatchResult",
    "PatternService",
    "compute_health_score",
    "create_pattern_service",
]

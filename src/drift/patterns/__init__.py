"""
Drift Patterns Package.

The Pattern data model, its status state machine and confidence levels.
"""

from drift.patterns.models import (
    PatternStatus,
    ConfidenceLevel,
    Severity,
    DetectionMethod,
    VALID_STATUS_TRANSITIONS,
    CONFIDENCE_THRESHOLDS,
    SEVERITY_ORDER,
    PatternLocation,
    OutlierLocation,
    DetectorInfo,
    Pattern,
    PatternSummary,
    CreatePatternInput,
    PatternPatch,
    compute_confidence_level,
    is_valid_transition,
    apply_patch,
    revalidate_pattern,
    to_pattern_summary,
    create_pattern,
)
from drift.constants import PATTERN_CATEGORIES

__all__ = [
    "PatternStatus",
    "ConfidenceLevel",
    "Severity",
    "DetectionMethod",
    "VALID_STATUS_TRANSITIONS",
    "CONFIDENCE_THRESHOLDS",
    "SEVERITY_ORDER",
    "PATTERN_CATEGORIES",
    "PatternLocation",
    "OutlierLocation",
    "DetectorInfo",
    "Pattern",
    "PatternSummary",
    "CreatePatternInput",
    "PatternPatch",
    "compute_confidence_level",
    "is_valid_transition",
    "apply_patch",
    "revalidate_pattern",
    "to_pattern_summary",
    "create_pattern",
]

"""
Pattern data model for Drift.

A Pattern is one detected code convention together with its provenance,
confidence and the locations where it was observed. Field names are
snake_case in Python and camelCase on disk (``detectorId``, ``firstSeen``,
...), so records round-trip through the JSON pattern files unchanged.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from drift.constants import (
    PATTERN_CATEGORIES,
    CONFIDENCE_HIGH_THRESHOLD,
    CONFIDENCE_MEDIUM_THRESHOLD,
)
from drift.utils.errors import PatternValidationError


class PatternStatus(str, Enum):
    """Lifecycle state of a pattern."""

    DISCOVERED = "discovered"
    APPROVED = "approved"
    IGNORED = "ignored"


class ConfidenceLevel(str, Enum):
    """Coarse confidence bucket derived from the numeric score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Severity(str, Enum):
    """How serious a violation of the pattern is."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DetectionMethod(str, Enum):
    """How the detector recognised the pattern."""

    AST = "ast"
    SEMANTIC = "semantic"
    HEURISTIC = "heuristic"


# Allowed status transitions. Same-state transitions are never allowed, and
# an approved pattern cannot be moved to ignored.
VALID_STATUS_TRANSITIONS: Dict[PatternStatus, FrozenSet[PatternStatus]] = {
    PatternStatus.DISCOVERED: frozenset({PatternStatus.APPROVED, PatternStatus.IGNORED}),
    PatternStatus.APPROVED: frozenset(),
    PatternStatus.IGNORED: frozenset({PatternStatus.APPROVED}),
}

CONFIDENCE_THRESHOLDS: Dict[ConfidenceLevel, float] = {
    ConfidenceLevel.HIGH: CONFIDENCE_HIGH_THRESHOLD,
    ConfidenceLevel.MEDIUM: CONFIDENCE_MEDIUM_THRESHOLD,
    ConfidenceLevel.LOW: 0.0,
}

SEVERITY_ORDER: Dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


def parse_timestamp(value: Union[str, datetime]) -> datetime:
    """Parse an ISO timestamp into an aware datetime (naive values are UTC)."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_confidence_level(confidence: float) -> ConfidenceLevel:
    """Map a confidence score in [0, 1] to its confidence level.

    Args:
        confidence: Numeric confidence

    Returns:
        HIGH at or above 0.85, MEDIUM at or above 0.70, LOW otherwise
    """
    if confidence >= CONFIDENCE_THRESHOLDS[ConfidenceLevel.HIGH]:
        return ConfidenceLevel.HIGH
    if confidence >= CONFIDENCE_THRESHOLDS[ConfidenceLevel.MEDIUM]:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def is_valid_transition(from_status: PatternStatus, to_status: PatternStatus) -> bool:
    """Check a status change against the transition table."""
    return PatternStatus(to_status) in VALID_STATUS_TRANSITIONS[PatternStatus(from_status)]


class DriftModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PatternLocation(DriftModel):
    """A place in the codebase where a pattern was observed."""

    file: str
    line: int = Field(..., ge=1)
    column: int = Field(1, ge=0)
    end_line: Optional[int] = None
    end_column: Optional[int] = None
    snippet: Optional[str] = None


class OutlierLocation(PatternLocation):
    """A location that deviates from the pattern."""

    reason: Optional[str] = None
    deviation_score: Optional[float] = None


class DetectorInfo(DriftModel):
    """Descriptor of the detector that produced a pattern."""

    id: str
    name: str
    version: str = "1.0.0"
    config: Dict[str, Any] = Field(default_factory=dict)


def _validate_category(value: str) -> str:
    if value not in PATTERN_CATEGORIES:
        raise ValueError(f"Unknown pattern category '{value}'; expected one of {list(PATTERN_CATEGORIES)}")
    return value


def _dedupe_tags(tags: List[str]) -> List[str]:
    return list(dict.fromkeys(tags))


class Pattern(DriftModel):
    """A detected recurring code convention."""

    id: str = Field(..., min_length=1)
    category: str
    subcategory: str = ""
    name: str
    description: str = ""
    status: PatternStatus = PatternStatus.DISCOVERED

    detector_id: str
    detector_name: str
    detection_method: DetectionMethod = DetectionMethod.AST
    detector: DetectorInfo

    confidence: float = Field(..., ge=0.0, le=1.0)
    confidence_level: ConfidenceLevel = ConfidenceLevel.LOW

    locations: List[PatternLocation] = Field(default_factory=list)
    outliers: List[OutlierLocation] = Field(default_factory=list)

    severity: Severity = Severity.INFO
    first_seen: str = Field(default_factory=utc_now_iso)
    last_seen: str = Field(default_factory=utc_now_iso)
    approved_at: Optional[str] = None
    approved_by: Optional[str] = None

    tags: List[str] = Field(default_factory=list)
    auto_fixable: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _validate_category(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v):
        return _dedupe_tags(v)

    @model_validator(mode="after")
    def derive_confidence_level(self):
        # Never trust a stored level; it is always a function of confidence.
        self.confidence_level = compute_confidence_level(self.confidence)
        return self

    @property
    def location_count(self) -> int:
        return len(self.locations)

    def has_location_in(self, files) -> bool:
        """Whether any location lies in one of the given files."""
        wanted = set(files)
        return any(location.file in wanted for location in self.locations)


class PatternSummary(DriftModel):
    """Lightweight projection of a pattern for listings."""

    id: str
    name: str
    category: str
    subcategory: str = ""
    status: PatternStatus
    confidence: float
    confidence_level: ConfidenceLevel
    severity: Severity
    location_count: int
    outlier_count: int


class CreatePatternInput(DriftModel):
    """What a detector supplies to create a pattern.

    Status and timestamps are assigned by ``create_pattern``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    id: str = Field(..., min_length=1)
    category: str
    subcategory: str = ""
    name: str
    description: str = ""
    detector_id: str
    detector_name: str
    detection_method: DetectionMethod = DetectionMethod.AST
    detector: Optional[DetectorInfo] = None
    confidence: float = Field(..., ge=0.0, le=1.0)
    locations: List[PatternLocation] = Field(default_factory=list)
    outliers: List[OutlierLocation] = Field(default_factory=list)
    severity: Severity = Severity.INFO
    tags: List[str] = Field(default_factory=list)
    auto_fixable: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return _validate_category(v)


class PatternPatch(DriftModel):
    """Partial update for an existing pattern.

    Only fields explicitly set are applied. ``id`` is immutable, ``status``
    changes go through approve/ignore, and ``confidence_level`` is derived.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    category: Optional[str] = None
    subcategory: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    detector_id: Optional[str] = None
    detector_name: Optional[str] = None
    detection_method: Optional[DetectionMethod] = None
    detector: Optional[DetectorInfo] = None
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    locations: Optional[List[PatternLocation]] = None
    outliers: Optional[List[OutlierLocation]] = None
    severity: Optional[Severity] = None
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    tags: Optional[List[str]] = None
    auto_fixable: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None

    @field_validator("category")
    @classmethod
    def validate_category(cls, v):
        return v if v is None else _validate_category(v)

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly set on this patch."""
        return {name: getattr(self, name) for name in self.model_fields_set}


PatchLike = Union[PatternPatch, Mapping[str, Any]]


def coerce_patch(updates: PatchLike) -> PatternPatch:
    """Turn a mapping of updates into a validated PatternPatch.

    Raises:
        PatternValidationError: For unknown or invalid fields
    """
    if isinstance(updates, PatternPatch):
        return updates
    try:
        return PatternPatch.model_validate(dict(updates))
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise PatternValidationError(f"Invalid pattern update: {first.get('msg')}", field=field or None)


def apply_patch(pattern: Pattern, updates: PatchLike) -> Pattern:
    """Return a new Pattern with the patch merged in.

    The result is re-validated, so ``confidence_level`` follows ``confidence``.
    """
    patch = coerce_patch(updates)
    merged = pattern.model_dump()
    for name, value in patch.changes().items():
        merged[name] = value.model_dump() if isinstance(value, BaseModel) else value
    try:
        return Pattern.model_validate(merged)
    except ValidationError as e:
        raise PatternValidationError(f"Invalid pattern update for {pattern.id}: {e}")


def revalidate_pattern(pattern: Pattern) -> Pattern:
    """Return a validated deep copy of a pattern.

    Fields assigned on the instance after construction skip validation, so
    this re-derives ``confidence_level`` before the pattern is stored.
    """
    try:
        return Pattern.model_validate(pattern.model_dump())
    except ValidationError as e:
        raise PatternValidationError(f"Invalid pattern {pattern.id}: {e}")


def to_pattern_summary(pattern: Pattern) -> PatternSummary:
    """Project a pattern onto its summary."""
    return PatternSummary(
        id=pattern.id,
        name=pattern.name,
        category=pattern.category,
        subcategory=pattern.subcategory,
        status=pattern.status,
        confidence=pattern.confidence,
        confidence_level=pattern.confidence_level,
        severity=pattern.severity,
        location_count=len(pattern.locations),
        outlier_count=len(pattern.outliers),
    )


def create_pattern(data: Union[CreatePatternInput, Mapping[str, Any]]) -> Pattern:
    """Create a new pattern from detector input.

    The pattern always starts out ``discovered`` with first/last seen set to
    now; a detector descriptor is derived from detector id/name if missing.

    Args:
        data: Detector input (model or mapping)

    Returns:
        New Pattern

    Raises:
        PatternValidationError: If the input is invalid (including any
            attempt to set server-assigned fields such as ``status``)
    """
    try:
        source = data if isinstance(data, CreatePatternInput) else CreatePatternInput.model_validate(dict(data))
    except ValidationError as e:
        raise PatternValidationError(f"Invalid pattern input: {e}")

    now = utc_now_iso()
    detector = source.detector or DetectorInfo(id=source.detector_id, name=source.detector_name)
    fields = source.model_dump(exclude={"detector"})
    return Pattern.model_validate({
        **fields,
        "detector": detector.model_dump(),
        "status": PatternStatus.DISCOVERED,
        "first_seen": now,
        "last_seen": now,
    })

"""
Framework wrapper clusters as Drift patterns.

A wrapper is a project function that wraps framework primitives (a custom
``useAuth`` hook around ``useState``/``useEffect``, a ``@cache_result``
decorator, ...). Wrapper detection groups wrappers with the same primitive
signature into clusters; this module turns each cluster into a Pattern so it
can be stored, approved and queried like any other convention.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from drift.patterns.models import (
    DetectionMethod,
    DetectorInfo,
    Pattern,
    PatternLocation,
    PatternStatus,
    Severity,
    utc_now_iso,
)

WRAPPER_DETECTOR_ID = "wrapper-detector"
WRAPPER_DETECTOR_NAME = "Framework Wrapper Detector"
WRAPPER_ID_PREFIX = "wrapper-"
MAX_PATTERN_ID_LENGTH = 64

# Wrapper category -> pattern category
WRAPPER_CATEGORY_MAP = {
    "state-management": "components",
    "data-fetching": "api",
    "side-effects": "structural",
    "authentication": "auth",
    "authorization": "auth",
    "validation": "security",
    "dependency-injection": "structural",
    "middleware": "api",
    "testing": "testing",
    "logging": "logging",
    "caching": "performance",
    "error-handling": "errors",
    "async-utilities": "structural",
    "form-handling": "components",
    "routing": "structural",
    "factory": "structural",
    "decorator": "structural",
    "utility": "structural",
    "other": "structural",
}


@dataclass
class WrapperFunction:
    """A function that wraps one or more framework primitives."""

    name: str
    file: str
    line: int
    qualified_name: str = ""
    language: str = "typescript"
    direct_primitives: List[str] = field(default_factory=list)
    transitive_primitives: List[str] = field(default_factory=list)
    primitive_signature: List[str] = field(default_factory=list)
    depth: int = 1
    calls_wrappers: List[str] = field(default_factory=list)
    called_by: List[str] = field(default_factory=list)
    is_factory: bool = False
    is_higher_order: bool = False
    is_decorator: bool = False
    is_async: bool = False


@dataclass
class WrapperCluster:
    """Wrappers sharing a primitive signature."""

    id: str
    name: str
    description: str
    category: str
    confidence: float
    primitive_signature: List[str] = field(default_factory=list)
    wrappers: List[WrapperFunction] = field(default_factory=list)
    avg_depth: float = 1.0
    max_depth: int = 1
    total_usages: int = 0
    file_spread: int = 0
    suggested_names: List[str] = field(default_factory=list)


@dataclass
class WrapperPatternOptions:
    """How clusters are turned into patterns."""

    id_prefix: str = WRAPPER_ID_PREFIX
    include_details: bool = True
    default_severity: Severity = Severity.INFO
    min_confidence: float = 0.5


@dataclass
class WrapperInfo:
    """Wrapper details recovered from a stored pattern."""

    primitive_signature: List[str]
    wrapper_category: str
    avg_depth: float
    max_depth: int
    total_usages: int = 0
    file_spread: int = 0


def map_wrapper_category(category: str) -> str:
    return WRAPPER_CATEGORY_MAP.get(category, "structural")


def wrapper_to_location(wrapper: WrapperFunction) -> PatternLocation:
    """Location of a wrapper, with a one-line summary as its snippet."""
    primitives = ", ".join(wrapper.primitive_signature)
    return PatternLocation(
        file=wrapper.file,
        line=max(1, wrapper.line),
        column=1,
        snippet=f"{wrapper.name}() wraps {primitives} (depth {wrapper.depth})",
    )


def extract_pattern_metadata(cluster: WrapperCluster) -> Dict[str, Any]:
    return {
        "wrapperCategory": cluster.category,
        "primitiveSignature": list(cluster.primitive_signature),
        "wrapperCount": len(cluster.wrappers),
        "avgDepth": cluster.avg_depth,
        "maxDepth": cluster.max_depth,
        "totalUsages": cluster.total_usages,
        "fileSpread": cluster.file_spread,
        "suggestedNames": list(cluster.suggested_names),
        "wrapperNames": [w.name for w in cluster.wrappers],
    }


def _describe(cluster: WrapperCluster, include_details: bool) -> str:
    if not include_details:
        return cluster.description
    details = [
        f"Wraps: {', '.join(cluster.primitive_signature)}",
        f"Wrappers: {len(cluster.wrappers)}",
        f"Avg depth: {cluster.avg_depth:.1f}",
    ]
    return "\n".join([cluster.description, ""] + details)


def cluster_to_pattern(cluster: WrapperCluster, options: Optional[WrapperPatternOptions] = None) -> Pattern:
    """Convert a wrapper cluster into a discovered Pattern.

    Args:
        cluster: Cluster to convert
        options: Id prefix, description detail and severity

    Returns:
        New Pattern with status ``discovered``
    """
    options = options or WrapperPatternOptions()
    category = map_wrapper_category(cluster.category)
    now = utc_now_iso()

    tags = ["wrapper", f"wrapper-{cluster.category}"]
    tags.extend(f"wraps-{primitive}" for primitive in cluster.primitive_signature)

    return Pattern(
        id=f"{options.id_prefix}{cluster.id}",
        category=category,
        subcategory=f"{category}-wrapper",
        name=cluster.name,
        description=_describe(cluster, options.include_details),
        status=PatternStatus.DISCOVERED,
        detector_id=WRAPPER_DETECTOR_ID,
        detector_name=WRAPPER_DETECTOR_NAME,
        detection_method=DetectionMethod.SEMANTIC,
        detector=DetectorInfo(
            id=WRAPPER_DETECTOR_ID,
            name=WRAPPER_DETECTOR_NAME,
            config={
                "wrapperCategory": cluster.category,
                "primitiveSignature": list(cluster.primitive_signature),
                "avgDepth": cluster.avg_depth,
                "maxDepth": cluster.max_depth,
                "totalUsages": cluster.total_usages,
                "fileSpread": cluster.file_spread,
            },
        ),
        confidence=min(1.0, max(0.0, cluster.confidence)),
        locations=[wrapper_to_location(w) for w in cluster.wrappers],
        severity=options.default_severity,
        first_seen=now,
        last_seen=now,
        tags=tags,
        metadata=extract_pattern_metadata(cluster),
    )


def clusters_to_patterns(
    clusters: List[WrapperCluster],
    options: Optional[WrapperPatternOptions] = None,
) -> List[Pattern]:
    """Convert every cluster at or above ``options.min_confidence``."""
    options = options or WrapperPatternOptions()
    return [
        cluster_to_pattern(cluster, options)
        for cluster in clusters
        if cluster.confidence >= options.min_confidence
    ]


def generate_pattern_id(cluster: WrapperCluster) -> str:
    """Deterministic id from the wrapper category and primitive signature.

    Primitives are lower-cased, stripped of anything but letters, digits and
    dashes, and sorted, so the same signature always yields the same id.
    """
    primitives = sorted(
        cleaned
        for cleaned in (re.sub(r"[^a-z0-9-]", "", p.lower()) for p in cluster.primitive_signature)
        if cleaned
    )
    base = f"{WRAPPER_ID_PREFIX}{cluster.category}"
    pattern_id = "-".join([base] + primitives)
    return pattern_id[:MAX_PATTERN_ID_LENGTH].rstrip("-")


def is_wrapper_pattern(pattern: Pattern) -> bool:
    return (
        pattern.detector_id == WRAPPER_DETECTOR_ID
        or pattern.id.startswith(WRAPPER_ID_PREFIX)
        or "wrapper" in pattern.tags
    )


def extract_wrapper_info(pattern: Pattern) -> Optional[WrapperInfo]:
    """Recover wrapper details from a pattern, or None if it is not one."""
    if not is_wrapper_pattern(pattern):
        return None
    config = pattern.detector.config if pattern.detector else {}
    return WrapperInfo(
        primitive_signature=list(config.get("primitiveSignature", [])),
        wrapper_category=config.get("wrapperCategory", pattern.subcategory),
        avg_depth=config.get("avgDepth", 1),
        max_depth=config.get("maxDepth", 1),
        total_usages=config.get("totalUsages", 0),
        file_spread=config.get("fileSpread", 0),
    )

import pytest

from drift.patterns.models import (
    ConfidenceLevel,
    Pattern,
    PatternPatch,
    PatternStatus,
    apply_patch,
    compute_confidence_level,
    create_pattern,
    is_valid_transition,
    to_pattern_summary,
)
from drift.utils.errors import PatternValidationError

from conftest import make_pattern


@pytest.mark.parametrize("confidence,expected", [
    (0.0, ConfidenceLevel.LOW),
    (0.69, ConfidenceLevel.LOW),
    (0.70, ConfidenceLevel.MEDIUM),
    (0.84, ConfidenceLevel.MEDIUM),
    (0.85, ConfidenceLevel.HIGH),
    (1.0, ConfidenceLevel.HIGH),
])
def test_confidence_level_thresholds(confidence, expected):
    assert compute_confidence_level(confidence) == expected


def test_stored_confidence_level_is_ignored():
    """A record claiming the wrong level gets the derived one."""
    data = make_pattern("p1", confidence=0.9).to_json_dict()
    data["confidenceLevel"] = "low"

    pattern = Pattern.model_validate(data)

    assert pattern.confidence_level == ConfidenceLevel.HIGH


@pytest.mark.parametrize("from_status,to_status,allowed", [
    (PatternStatus.DISCOVERED, PatternStatus.APPROVED, True),
    (PatternStatus.DISCOVERED, PatternStatus.IGNORED, True),
    (PatternStatus.IGNORED, PatternStatus.APPROVED, True),
    (PatternStatus.APPROVED, PatternStatus.IGNORED, False),
    (PatternStatus.APPROVED, PatternStatus.APPROVED, False),
    (PatternStatus.IGNORED, PatternStatus.IGNORED, False),
    (PatternStatus.DISCOVERED, PatternStatus.DISCOVERED, False),
])
def test_transition_table(from_status, to_status, allowed):
    assert is_valid_transition(from_status, to_status) is allowed


def test_create_pattern_assigns_status_and_timestamps():
    pattern = create_pattern({
        "id": "p1",
        "category": "api",
        "name": "Route handlers",
        "detectorId": "api-detector",
        "detectorName": "API Detector",
        "confidence": 0.75,
        "locations": [{"file": "src/routes.ts", "line": 3}],
    })

    assert pattern.status == PatternStatus.DISCOVERED
    assert pattern.confidence_level == ConfidenceLevel.MEDIUM
    assert pattern.first_seen == pattern.last_seen
    assert pattern.detector.id == "api-detector"
    assert pattern.detector.name == "API Detector"
    assert pattern.locations[0].column == 1


def test_create_pattern_rejects_status():
    with pytest.raises(PatternValidationError):
        create_pattern({
            "id": "p1",
            "category": "api",
            "name": "x",
            "detector_id": "d",
            "detector_name": "D",
            "confidence": 0.5,
            "status": "approved",
        })


def test_unknown_category_rejected():
    with pytest.raises(PatternValidationError):
        create_pattern({
            "id": "p1",
            "category": "not-a-category",
            "name": "x",
            "detector_id": "d",
            "detector_name": "D",
            "confidence": 0.5,
        })


def test_apply_patch_recomputes_confidence_level():
    pattern = make_pattern("p1", confidence=0.9)

    updated = apply_patch(pattern, {"confidence": 0.5, "name": "Renamed"})

    assert updated.confidence_level == ConfidenceLevel.LOW
    assert updated.name == "Renamed"
    # The original is untouched
    assert pattern.name == "Test Pattern"


def test_patch_accepts_camel_case_keys():
    updated = apply_patch(make_pattern("p1"), {"autoFixable": True})
    assert updated.auto_fixable is True


@pytest.mark.parametrize("field", ["id", "status", "confidence_level", "bogus"])
def test_patch_rejects_protected_and_unknown_fields(field):
    with pytest.raises(PatternValidationError):
        apply_patch(make_pattern("p1"), {field: "x"})


def test_patch_only_applies_set_fields():
    patch = PatternPatch(description="new")
    assert patch.changes() == {"description": "new"}


def test_tags_are_deduplicated():
    pattern = make_pattern("p1", tags=["a", "b", "a"])
    assert pattern.tags == ["a", "b"]


def test_json_round_trip_uses_camel_case():
    pattern = make_pattern("p1", approved_by="alice")

    data = pattern.to_json_dict()

    assert "detectorId" in data
    assert "firstSeen" in data
    assert data["approvedBy"] == "alice"
    assert "approvedAt" not in data
    assert Pattern.model_validate(data) == pattern


def test_summary_projection():
    pattern = make_pattern("p1", outliers=[{"file": "a.ts", "line": 2, "reason": "differs"}])

    summary = to_pattern_summary(pattern)

    assert summary.id == "p1"
    assert summary.location_count == 1
    assert summary.outlier_count == 1
    assert summary.confidence_level == ConfidenceLevel.HIGH

"""
Drift Error Definitions.

This module defines the error types raised by the pattern repositories and
the pattern service. Not-found and duplicate errors are expected, recoverable
conditions; transition and storage errors indicate programming or data errors.
"""

from typing import Optional, Dict, Any

from drift.constants import (
    ERROR_PATTERN_NOT_FOUND,
    ERROR_PATTERN_ALREADY_EXISTS,
    ERROR_INVALID_STATUS_TRANSITION,
    ERROR_STORAGE,
    ERROR_CONFIGURATION,
    ERROR_VALIDATION,
)


class DriftError(Exception):
    """Base exception class for all Drift-related errors."""

    def __init__(
        self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None
    ):
        """Initialize a DriftError with optional error code and details.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error context and details
        """
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class PatternNotFoundError(DriftError):
    """Error raised when a pattern id is not present in a repository."""

    def __init__(self, pattern_id: str):
        self.pattern_id = pattern_id
        super().__init__(
            f"Pattern not found: {pattern_id}",
            ERROR_PATTERN_NOT_FOUND,
            {"pattern_id": pattern_id},
        )


class PatternAlreadyExistsError(DriftError):
    """Error raised when adding a pattern whose id is already stored."""

    def __init__(self, pattern_id: str):
        self.pattern_id = pattern_id
        super().__init__(
            f"Pattern already exists: {pattern_id}",
            ERROR_PATTERN_ALREADY_EXISTS,
            {"pattern_id": pattern_id},
        )


class InvalidStatusTransitionError(DriftError):
    """Error raised when a status change is not in the transition table."""

    def __init__(self, pattern_id: str, from_status: str, to_status: str):
        self.pattern_id = pattern_id
        self.from_status = str(from_status)
        self.to_status = str(to_status)
        super().__init__(
            f"Invalid status transition for pattern {pattern_id}: "
            f"{self.from_status} -> {self.to_status}",
            ERROR_INVALID_STATUS_TRANSITION,
            {
                "pattern_id": pattern_id,
                "from_status": self.from_status,
                "to_status": self.to_status,
            },
        )


class StorageError(DriftError):
    """Error raised when reading, writing or migrating pattern files fails."""

    def __init__(
        self, message: str, path: Optional[str] = None, details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if path:
            error_details["path"] = path
        self.path = path
        super().__init__(message, ERROR_STORAGE, error_details)


class ConfigurationError(DriftError):
    """Error raised when there's an issue with Drift configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ERROR_CONFIGURATION, details)


class PatternValidationError(DriftError):
    """Error raised when a pattern record or patch fails validation."""

    def __init__(
        self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(message, ERROR_VALIDATION, error_details)

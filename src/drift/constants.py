"""
Global constants for Drift.
"""

# Pattern categories (extensible; detectors may only emit these)
PATTERN_CATEGORIES = (
    "api",
    "auth",
    "security",
    "errors",
    "data-access",
    "testing",
    "logging",
    "config",
    "types",
    "performance",
    "accessibility",
    "documentation",
    "structural",
    "components",
    "styling",
)

# Pattern statuses
STATUS_DISCOVERED = "discovered"
STATUS_APPROVED = "approved"
STATUS_IGNORED = "ignored"
PATTERN_STATUSES = (STATUS_DISCOVERED, STATUS_APPROVED, STATUS_IGNORED)

# Confidence level thresholds (inclusive lower bounds)
CONFIDENCE_HIGH_THRESHOLD = 0.85
CONFIDENCE_MEDIUM_THRESHOLD = 0.70

# Path constants (relative to the project root)
DRIFT_DIR = ".drift"
PATTERNS_DIR = ".drift/patterns"
FORMAT_MARKER_FILE = ".format"

# Repository defaults
DEFAULT_AUTO_SAVE_DELAY_MS = 1000
DEFAULT_PATTERN_TTL_MS = 60_000
DEFAULT_QUERY_TTL_MS = 30_000
DEFAULT_CACHE_MAX_ENTRIES = 1000

# Service defaults
DEFAULT_STATUS_CACHE_TTL_MS = 30_000
DEFAULT_EXAMPLE_CONTEXT_LINES = 2
DEFAULT_MAX_EXAMPLES = 3
DEFAULT_MAX_RELATED_PATTERNS = 10
DEFAULT_PAGE_SIZE = 50

# Health score weights
HEALTH_APPROVAL_WEIGHT = 60
HEALTH_CONFIDENCE_WEIGHT = 40

# Common error codes
ERROR_PATTERN_NOT_FOUND = "PATTERN_NOT_FOUND"
ERROR_PATTERN_ALREADY_EXISTS = "PATTERN_ALREADY_EXISTS"
ERROR_INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
ERROR_STORAGE = "STORAGE_ERROR"
ERROR_CONFIGURATION = "CONFIGURATION_ERROR"
ERROR_VALIDATION = "VALIDATION_ERROR"

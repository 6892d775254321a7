"""
Version information for Drift.
"""

# Version of the Drift package
__version__ = "0.1.0"

# Version written into unified (per-category) pattern files
STORAGE_FORMAT_VERSION = "2.0.0"

# Version written into legacy (per-status) pattern files
LEGACY_FORMAT_VERSION = "1.0.0"

# Minimum supported Python version
MINIMUM_PYTHON_VERSION = "3.11"


def get_version_info():
    """Get comprehensive version information.
    
    Returns:
        dict: Dictionary with version details
    """
    return {
        "version": __version__,
        "storage_format_version": STORAGE_FORMAT_VERSION,
        "legacy_format_version": LEGACY_FORMAT_VERSION,
        "minimum_python_version": MINIMUM_PYTHON_VERSION,
    }

"""
Drift Utilities Package.

Filesystem helpers, error types and logging used throughout Drift.
"""

from drift.utils.filesystem import (
    detect_language,
    read_file_async,
    write_file_async,
    read_json_async,
    write_json_async,
    remove_file_async,
    ensure_dir_async,
    list_json_files_async,
)

from drift.utils.logging import logger

__all__ = [
    "detect_language",
    "read_file_async",
    "write_file_async",
    "read_json_async",
    "write_json_async",
    "remove_file_async",
    "ensure_dir_async",
    "list_json_files_async",
    "logger",
]

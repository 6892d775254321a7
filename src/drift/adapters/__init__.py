"""
Drift Adapters Package.

Converters from other detection results into Drift patterns.
"""

from drift.adapters.wrappers import (
    WRAPPER_CATEGORY_MAP,
    WrapperFunction,
    WrapperCluster,
    WrapperPatternOptions,
    WrapperInfo,
    map_wrapper_category,
    wrapper_to_location,
    cluster_to_pattern,
    clusters_to_patterns,
    generate_pattern_id,
    extract_pattern_metadata,
    is_wrapper_pattern,
    extract_wrapper_info,
)

__all__ = [
    "WRAPPER_CATEGORY_MAP",
    "WrapperFunction",
    "WrapperCluster",
    "WrapperPatternOptions",
    "WrapperInfo",
    "map_wrapper_category",
    "wrapper_to_location",
    "cluster_to_pattern",
    "clusters_to_patterns",
    "generate_pattern_id",
    "extract_pattern_metadata",
    "is_wrapper_pattern",
    "extract_wrapper_info",
]

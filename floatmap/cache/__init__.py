"""
FloatMap aggregate cache.

Exports:
    AggregateCache: Single-flight cache around one ingestion pass
    AggregateUnavailableError: Raised when the ingestion pass failed
    get_aggregate_cache: Process-wide cache instance
"""

from floatmap.cache.aggregate_cache import (
    AggregateCache,
    AggregateUnavailableError,
    CacheState,
    get_aggregate_cache,
    record_to_dict,
)

__all__ = [
    "AggregateCache",
    "AggregateUnavailableError",
    "CacheState",
    "get_aggregate_cache",
    "record_to_dict",
]

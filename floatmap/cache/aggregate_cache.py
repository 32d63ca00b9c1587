"""
FloatMap Aggregate Cache

Process-wide, lazily built, single-flight cache for the float aggregate.

States:
    empty    — nothing built yet, or the last attempt failed
    building — one ingestion pass is running; callers share its result
    ready    — aggregate stored; returned immediately, never rebuilt

Rules:
    - At most one ingestion pass runs at a time.
    - Every caller waiting on a failed attempt receives the failure;
      the cache reverts to empty so a later call can retry.
    - The stored aggregate is never mutated.
    - aclose() cancels an in-flight build on shutdown and leaves the cache empty.
    - All state transitions are logged via structlog.
"""

import asyncio
from enum import Enum
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional

import structlog

from floatmap.ingestion.normalizer import Entry
from floatmap.ingestion.pipeline import build_aggregate
from floatmap.ingestion.segmenter import FloatRecord

logger = structlog.get_logger(__name__)

AggregateBuilder = Callable[[], Awaitable[list[FloatRecord]]]


class CacheState(str, Enum):
    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


class AggregateUnavailableError(RuntimeError):
    """Raised when the ingestion pass backing the cache failed."""


class AggregateCache:
    """
    Single-flight cache around one ingestion pass.

    Args:
        builder: Coroutine function producing the list of FloatRecords
    """

    def __init__(self, builder: AggregateBuilder):
        self._builder = builder
        self._state = CacheState.EMPTY
        self._records: Optional[tuple[FloatRecord, ...]] = None
        self._by_id: dict[str, FloatRecord] = {}
        self._inflight: Optional[asyncio.Future] = None
        self._lock = asyncio.Lock()
        self.build_attempts = 0

    @property
    def state(self) -> CacheState:
        return self._state

    async def get_all(self) -> tuple[FloatRecord, ...]:
        """
        Return the aggregate, building it on first use.

        Raises:
            AggregateUnavailableError: If the build attempt this call joined failed
        """
        if self._state is CacheState.READY:
            return self._records

        async with self._lock:
            if self._state is CacheState.READY:
                return self._records
            if self._inflight is None:
                self._state = CacheState.BUILDING
                self.build_attempts += 1
                self._inflight = asyncio.ensure_future(self._build(self.build_attempts))
            inflight = self._inflight

        return await asyncio.shield(inflight)

    async def get_one(self, float_id: str) -> Optional[FloatRecord]:
        """Return one record by platform id, or None if unknown."""
        await self.get_all()
        return self._by_id.get(float_id)

    async def aclose(self) -> None:
        """
        Cancel an in-flight build, if any, and wait for it to unwind.

        A ready aggregate is kept; an interrupted build leaves the cache empty.
        """
        inflight = self._inflight
        if inflight is None or inflight.done():
            return

        inflight.cancel()
        try:
            await inflight
        except (asyncio.CancelledError, AggregateUnavailableError):
            pass
        # A build cancelled before it started never reaches its own handler
        self._state = CacheState.EMPTY
        self._inflight = None
        logger.info("aggregate_cache_closed", attempt=self.build_attempts)

    async def _build(self, attempt: int) -> tuple[FloatRecord, ...]:
        log = logger.bind(attempt=attempt)
        log.info("aggregate_build_started")
        try:
            records = tuple(await self._builder())
        except asyncio.CancelledError:
            self._state = CacheState.EMPTY
            self._inflight = None
            log.warning("aggregate_build_cancelled")
            raise
        except Exception as e:
            self._state = CacheState.EMPTY
            self._inflight = None
            log.error("aggregate_build_failed", error=str(e), exc_info=True)
            raise AggregateUnavailableError(f"Failed to build float aggregate: {e}") from e

        self._records = records
        self._by_id = {record.id: record for record in records}
        self._state = CacheState.READY
        self._inflight = None
        log.info(
            "aggregate_build_complete",
            floats=len(records),
            example_floats=[r.id for r in records[:5]],
        )
        return records


@lru_cache
def get_aggregate_cache() -> AggregateCache:
    """
    Get the process-wide aggregate cache.

    Uses lru_cache to ensure one cache instance per process.
    """
    return AggregateCache(builder=build_aggregate)


# =============================================================================
# Serialization
# =============================================================================
_PROFILE_FIELDS = (
    "latitude",
    "longitude",
    "pressure",
    "time_value",
    "temperature",
    "salinity",
    "dissolved_oxygen",
    "nitrate",
    "ph",
)
_ENTRY_FIELDS = _PROFILE_FIELDS + ("organization", "date_iso")


def entry_to_dict(entry: Entry, profile_only: bool = False) -> dict[str, Any]:
    """
    Convert an Entry to a plain dict.

    Args:
        entry: The entry to convert
        profile_only: Omit organization and date_iso (cycle charting view)
    """
    fields = _PROFILE_FIELDS if profile_only else _ENTRY_FIELDS
    return {name: getattr(entry, name) for name in fields}


def record_to_dict(
    record: FloatRecord,
    history_limit: Optional[int] = None,
    cycles_limit: Optional[int] = None,
    cycle_points_limit: Optional[int] = None,
) -> dict[str, Any]:
    """
    Convert a FloatRecord to a plain dict, optionally capped for transport.

    Limits keep the trailing (most recent) items. The record itself is not
    modified.
    """
    history = record.history
    if history_limit is not None:
        history = history[-history_limit:] if history_limit > 0 else ()

    cycles = record.cycles
    if cycles_limit is not None:
        cycles = cycles[-cycles_limit:] if cycles_limit > 0 else ()

    def _cap_cycle(cycle):
        if cycle_points_limit is None:
            return cycle
        return cycle[-cycle_points_limit:] if cycle_points_limit > 0 else ()

    return {
        "id": record.id,
        "kind": record.kind,
        "latest": entry_to_dict(record.latest),
        "history": [entry_to_dict(e) for e in history],
        "cycles": [
            [entry_to_dict(e, profile_only=True) for e in _cap_cycle(cycle)]
            for cycle in cycles
        ],
    }

"""
FloatMap Cycle Segmenter

Turns a platform bucket into a FloatRecord: entries are sorted by time and
partitioned into deployment cycles.

A new cycle starts when:
- the time gap to the previous entry exceeds CYCLE_TIME_GAP_DAYS, or
- the pressure gap exceeds CYCLE_PRESSURE_GAP_DBAR and pressure went down
  (the float restarted its ascent).

A gap is only evaluated when both the previous and the current value are
known. A previous value of 0 counts as known.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from floatmap.ingestion.aggregator import Bucket
from floatmap.ingestion.normalizer import Entry

DEFAULT_TIME_GAP_DAYS = 1.0
DEFAULT_PRESSURE_GAP_DBAR = 50.0

Cycle = tuple[Entry, ...]


@dataclass(frozen=True)
class FloatRecord:
    """Finalized, read-only view of one float."""
    id: str
    kind: str  # 'core' or 'bgc'
    latest: Entry
    history: tuple[Entry, ...]
    cycles: tuple[Cycle, ...]


def _sort_key(entry: Entry) -> float:
    return entry.time_value if entry.time_value is not None else float("-inf")


def sort_entries(entries: Sequence[Entry]) -> list[Entry]:
    """Stable ascending sort by time; entries without time come first."""
    return sorted(entries, key=_sort_key)


def _gap_exceeds(previous: Optional[float], current: Optional[float], threshold: float) -> bool:
    if previous is None or current is None:
        return False
    return abs(current - previous) > threshold


def segment_cycles(
    entries: Sequence[Entry],
    time_gap_days: float = DEFAULT_TIME_GAP_DAYS,
    pressure_gap_dbar: float = DEFAULT_PRESSURE_GAP_DBAR,
) -> list[Cycle]:
    """
    Partition time-sorted entries into cycles.

    Args:
        entries: Entries already sorted by time
        time_gap_days: Time gap (days) that starts a new cycle
        pressure_gap_dbar: Pressure drop that starts a new cycle

    Returns:
        Cycles in order; concatenated they equal ``entries``
    """
    cycles: list[Cycle] = []
    current: list[Entry] = []
    previous: Optional[Entry] = None

    for entry in entries:
        starts_cycle = previous is None
        if previous is not None:
            time_break = _gap_exceeds(previous.time_value, entry.time_value, time_gap_days)
            ascent_restart = (
                _gap_exceeds(previous.pressure, entry.pressure, pressure_gap_dbar)
                and entry.pressure < previous.pressure
            )
            starts_cycle = time_break or ascent_restart

        if starts_cycle and current:
            cycles.append(tuple(current))
            current = []
        current.append(entry)
        previous = entry

    if current:
        cycles.append(tuple(current))

    return cycles


def finalize_bucket(
    platform_id: str,
    bucket: Bucket,
    time_gap_days: float = DEFAULT_TIME_GAP_DAYS,
    pressure_gap_dbar: float = DEFAULT_PRESSURE_GAP_DBAR,
) -> FloatRecord:
    """
    Build the FloatRecord for one platform.

    Raises:
        ValueError: If the bucket holds no entries
    """
    if not bucket.entries:
        raise ValueError(f"Bucket for platform {platform_id} has no entries")

    history = sort_entries(bucket.entries)
    cycles = segment_cycles(history, time_gap_days, pressure_gap_dbar)

    return FloatRecord(
        id=platform_id,
        kind=bucket.source_kind,
        latest=cycles[-1][-1],
        history=tuple(history),
        cycles=tuple(cycles),
    )

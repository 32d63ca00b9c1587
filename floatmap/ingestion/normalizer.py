"""
FloatMap Field Normalizer

Maps heterogeneous CSV rows onto the canonical ``Entry`` shape.

Column lookup is driven by FIELD_ALIASES: each logical field lists the
column names it accepts, in priority order. Matching is case-insensitive,
and an alias that matches a column with its exact case is preferred over a
case-folded match. Empty values are skipped.

Time reconstruction (first success wins):
1. JULD-style column: days since 1950-01-01T00:00:00Z
2. Calendar date column: digits read as YYYYMMDD[HH[MM[SS]]]
3. Cycle number, used as an ordering surrogate (no ISO date)
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence


ARGO_EPOCH = datetime(1950, 1, 1, tzinfo=timezone.utc)
SECONDS_PER_DAY = 86400.0

_NON_DIGITS = re.compile(r"[^0-9]")
_LEADING_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

# Logical field -> accepted column names, highest priority first
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "platform": ("PLATFORM_NUMBER", "platform_number", "argo_id", "platformid"),
    "latitude": ("LATITUDE", "latitude", "lat"),
    "longitude": ("LONGITUDE", "longitude", "lon", "lng"),
    "pressure": ("PRES", "pres", "pressure"),
    "temperature": ("TEMP", "temp", "temperature"),
    "salinity": ("PSAL", "psal", "salinity"),
    "dissolved_oxygen": ("DOXY", "doxy", "oxygen"),
    "nitrate": ("NITRATE", "nitrate", "NITRATE_ADJUSTED", "nitrate_adjusted"),
    "ph": ("PH_IN_SITU_TOTAL", "ph_in_situ_total", "PH_IN_SITU_TOTAL_ADJUSTED", "ph"),
    "organization": ("DATA_CENTRE", "data_centre", "ORGANIZATION", "organization", "ORG", "org"),
    "juld": ("JULD", "juld", "JULD_ADJUSTED"),
    "date": ("DATE_CREATION", "date_creation", "DATE", "date", "DATE_UPDATE"),
    "cycle": ("CYCLE_NUMBER", "cycle_number", "cycle"),
}


@dataclass(frozen=True)
class Entry:
    """A single normalized measurement."""
    latitude: float
    longitude: float
    pressure: Optional[float] = None
    temperature: Optional[float] = None
    salinity: Optional[float] = None
    dissolved_oxygen: Optional[float] = None
    nitrate: Optional[float] = None
    ph: Optional[float] = None
    organization: str = ""
    time_value: Optional[float] = None  # Julian-day surrogate
    date_iso: Optional[str] = None


@dataclass(frozen=True)
class NormalizedRow:
    """Outcome of normalizing one raw row."""
    platform_id: Optional[str]
    entry: Optional[Entry]
    drop_reason: Optional[str] = None  # 'missing_platform' | 'missing_position'


class RowView:
    """Case-insensitive read access to a raw CSV row."""

    def __init__(self, row: dict[str, str]):
        self._row = row
        self._folded: dict[str, list[str]] = {}
        for key in row:
            self._folded.setdefault(key.lower(), []).append(key)

    def get(self, aliases: Sequence[str]) -> Optional[str]:
        """
        Return the value of the first alias present with a non-empty value.

        Args:
            aliases: Column names in priority order

        Returns:
            The raw string value, or None if no alias matched
        """
        for alias in aliases:
            candidates = self._folded.get(alias.lower())
            if not candidates:
                continue
            # Exact-case column first, then the rest in header order
            ordered = sorted(candidates, key=lambda k: k != alias)
            for key in ordered:
                value = self._row.get(key)
                if value is not None and value != "":
                    return value
        return None


def resolve_field(row: dict[str, str], field: str) -> Optional[str]:
    """Look up a logical field in a raw row using FIELD_ALIASES."""
    return RowView(row).get(FIELD_ALIASES[field])


def to_number(value: Optional[str]) -> Optional[float]:
    """
    Coerce a raw value to a finite float.

    Only the leading number is read, so "12.5 dbar" gives 12.5 and
    "1_000" gives 1.0. Values without a leading number and values that
    overflow to infinity are treated as absent.
    """
    if value is None:
        return None
    match = _LEADING_NUMBER.match(value.strip())
    if match is None:
        return None
    number = float(match.group(0))
    if not math.isfinite(number):
        return None
    return number


def format_iso(instant: datetime) -> str:
    """Render a UTC instant as ISO-8601 with millisecond precision and 'Z'."""
    return instant.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def julian_to_datetime(julian_day: float) -> datetime:
    """
    Convert days since 1950-01-01 to a UTC datetime.

    Raises:
        OverflowError: If the result falls outside the datetime range
    """
    return ARGO_EPOCH + timedelta(milliseconds=round(julian_day * SECONDS_PER_DAY * 1000))


def datetime_to_julian(instant: datetime) -> float:
    """Convert a UTC datetime to days since 1950-01-01."""
    return (instant - ARGO_EPOCH).total_seconds() / SECONDS_PER_DAY


def parse_compact_date(value: str) -> Optional[datetime]:
    """
    Parse a calendar-like string by its digits as YYYYMMDD[HH[MM[SS]]].

    Non-digit characters are ignored, so "2024-05-15 12:30" and
    "20240515123000" are equivalent. Hour/minute/second default to zero.
    Out-of-range fields roll over into the next unit, so "20230229" is
    2023-03-01 and month 13 is January of the following year.

    Returns:
        UTC datetime, or None if fewer than 8 digits or outside the datetime range
    """
    digits = _NON_DIGITS.sub("", value)
    if len(digits) < 8:
        return None

    year = int(digits[0:4])
    month = int(digits[4:6])
    day = int(digits[6:8])
    hour = int(digits[8:10]) if len(digits) >= 10 else 0
    minute = int(digits[10:12]) if len(digits) >= 12 else 0
    second = int(digits[12:14]) if len(digits) >= 14 else 0

    year += (month - 1) // 12
    month = (month - 1) % 12 + 1

    try:
        base = datetime(year, month, 1, tzinfo=timezone.utc)
        return base + timedelta(days=day - 1, hours=hour, minutes=minute, seconds=second)
    except (ValueError, OverflowError):
        # Year outside 1..9999
        return None


def resolve_time(view: RowView) -> tuple[Optional[float], Optional[str]]:
    """
    Reconstruct (time_value, date_iso) for a row.

    Returns:
        Tuple of julian-day surrogate and ISO string; either may be None
    """
    julian_day = to_number(view.get(FIELD_ALIASES["juld"]))
    if julian_day is not None:
        try:
            return julian_day, format_iso(julian_to_datetime(julian_day))
        except OverflowError:
            return julian_day, None

    raw_date = view.get(FIELD_ALIASES["date"])
    if raw_date is not None:
        instant = parse_compact_date(raw_date)
        if instant is not None:
            return datetime_to_julian(instant), format_iso(instant)

    cycle = to_number(view.get(FIELD_ALIASES["cycle"]))
    if cycle is not None:
        return cycle, None

    return None, None


def normalize_row(row: dict[str, str]) -> NormalizedRow:
    """
    Normalize one raw CSV row into a platform id and Entry.

    Rows without a platform identifier or a numeric latitude/longitude are
    dropped; the drop reason is reported so the caller can count omissions.

    Args:
        row: Raw row dict from the CSV reader

    Returns:
        NormalizedRow with either an entry or a drop_reason
    """
    view = RowView(row)

    platform_id = (view.get(FIELD_ALIASES["platform"]) or "").strip()
    if not platform_id:
        return NormalizedRow(platform_id=None, entry=None, drop_reason="missing_platform")

    latitude = to_number(view.get(FIELD_ALIASES["latitude"]))
    longitude = to_number(view.get(FIELD_ALIASES["longitude"]))
    if latitude is None or longitude is None:
        return NormalizedRow(platform_id=platform_id, entry=None, drop_reason="missing_position")

    time_value, date_iso = resolve_time(view)

    entry = Entry(
        latitude=latitude,
        longitude=longitude,
        pressure=to_number(view.get(FIELD_ALIASES["pressure"])),
        temperature=to_number(view.get(FIELD_ALIASES["temperature"])),
        salinity=to_number(view.get(FIELD_ALIASES["salinity"])),
        dissolved_oxygen=to_number(view.get(FIELD_ALIASES["dissolved_oxygen"])),
        nitrate=to_number(view.get(FIELD_ALIASES["nitrate"])),
        ph=to_number(view.get(FIELD_ALIASES["ph"])),
        organization=(view.get(FIELD_ALIASES["organization"]) or "").strip(),
        time_value=time_value,
        date_iso=date_iso,
    )
    return NormalizedRow(platform_id=platform_id, entry=entry)

"""
FloatMap Ingestion Pipeline

Runs one full ingestion pass over the configured data roots:
discover → read CSV → normalize rows → aggregate by platform → segment cycles.

Pipeline Steps (ingest_data_roots):
    1. Discover data files under every root (bgc first, then core)
    2. Stream each file, one at a time, normalizing every row
    3. Merge the file's entries into the aggregator once the file is fully read
    4. Finalize every bucket into a FloatRecord

Failure handling:
    - A file that cannot be read is logged and contributes zero rows.
    - Invalid rows are dropped and counted, never raised.
    - Anything else aborts the pass and propagates to the caller.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

import structlog

from floatmap.config import Settings, get_settings
from floatmap.ingestion.aggregator import PlatformAggregator
from floatmap.ingestion.csv_reader import read_csv_file
from floatmap.ingestion.discovery import (
    DEFAULT_EXTENSIONS,
    DataFile,
    DataRoot,
    data_roots_from_settings,
    discover_data_files,
)
from floatmap.ingestion.normalizer import Entry, normalize_row
from floatmap.ingestion.segmenter import (
    DEFAULT_PRESSURE_GAP_DBAR,
    DEFAULT_TIME_GAP_DAYS,
    FloatRecord,
    finalize_bucket,
)

logger = structlog.get_logger(__name__)


@dataclass
class IngestionStats:
    """Counters collected over one ingestion pass."""
    files_found: int = 0
    files_read: int = 0
    files_failed: int = 0
    rows_read: int = 0
    rows_accepted: int = 0
    rows_missing_platform: int = 0
    rows_missing_position: int = 0
    failed_files: list[str] = field(default_factory=list)

    @property
    def rows_dropped(self) -> int:
        """Rows omitted for a missing platform id or position."""
        return self.rows_missing_platform + self.rows_missing_position


@dataclass
class IngestionResult:
    """Records produced by an ingestion pass plus its statistics."""
    records: list[FloatRecord]
    stats: IngestionStats


def _read_file_entries(
    data_file: DataFile,
    stats: IngestionStats,
) -> list[tuple[str, Entry]]:
    """
    Read and normalize every row of one file.

    Returns:
        (platform_id, entry) pairs for accepted rows

    Raises:
        OSError: If the file cannot be read
    """
    accepted: list[tuple[str, Entry]] = []
    counts = {"read": 0, "missing_platform": 0, "missing_position": 0}

    def _on_row(row: dict[str, str]) -> None:
        counts["read"] += 1
        result = normalize_row(row)
        if result.entry is None:
            counts[result.drop_reason] += 1
            return
        accepted.append((result.platform_id, result.entry))

    read_csv_file(data_file.path, _on_row)

    # Counted only once the whole file was read
    stats.rows_read += counts["read"]
    stats.rows_missing_platform += counts["missing_platform"]
    stats.rows_missing_position += counts["missing_position"]
    stats.rows_accepted += len(accepted)
    return accepted


def ingest_files(
    files: Sequence[DataFile],
    stats: Optional[IngestionStats] = None,
    time_gap_days: float = DEFAULT_TIME_GAP_DAYS,
    pressure_gap_dbar: float = DEFAULT_PRESSURE_GAP_DBAR,
) -> IngestionResult:
    """
    Aggregate a list of data files into FloatRecords.

    Args:
        files: Files to read, in order
        stats: Optional stats object to fill in
        time_gap_days: Cycle time-gap threshold
        pressure_gap_dbar: Cycle pressure-gap threshold

    Returns:
        IngestionResult with one record per platform, in first-seen order
    """
    stats = stats or IngestionStats()
    aggregator = PlatformAggregator()

    for data_file in files:
        log = logger.bind(file_path=str(data_file.path), source_kind=data_file.source_kind)
        log.info("file_read_started")
        try:
            entries = _read_file_entries(data_file, stats)
        except (OSError, UnicodeDecodeError) as e:
            stats.files_failed += 1
            stats.failed_files.append(str(data_file.path))
            log.error("file_read_failed", error=str(e))
            continue

        aggregator.add_many(entries, data_file.source_kind)
        stats.files_read += 1
        log.info("file_read_complete", accepted_rows=len(entries))

    records = [
        finalize_bucket(platform_id, bucket, time_gap_days, pressure_gap_dbar)
        for platform_id, bucket in aggregator.buckets()
    ]
    return IngestionResult(records=records, stats=stats)


def ingest_data_roots(
    roots: Sequence[DataRoot],
    extensions=DEFAULT_EXTENSIONS,
    time_gap_days: float = DEFAULT_TIME_GAP_DAYS,
    pressure_gap_dbar: float = DEFAULT_PRESSURE_GAP_DBAR,
) -> IngestionResult:
    """
    Run a full ingestion pass over the given data roots.

    Args:
        roots: Data roots to scan
        extensions: Accepted file extensions
        time_gap_days: Cycle time-gap threshold
        pressure_gap_dbar: Cycle pressure-gap threshold

    Returns:
        IngestionResult with records and statistics
    """
    start_time = time.time()
    log = logger.bind(roots=[str(r.path) for r in roots])
    log.info("ingestion_started")

    files = discover_data_files(roots, extensions)
    stats = IngestionStats(files_found=len(files))

    if not files:
        log.warning("no_data_files_found")
        return IngestionResult(records=[], stats=stats)

    result = ingest_files(files, stats, time_gap_days, pressure_gap_dbar)

    log.info(
        "ingestion_complete",
        floats=len(result.records),
        files_found=stats.files_found,
        files_read=stats.files_read,
        files_failed=stats.files_failed,
        rows_read=stats.rows_read,
        rows_accepted=stats.rows_accepted,
        rows_missing_platform=stats.rows_missing_platform,
        rows_missing_position=stats.rows_missing_position,
        example_floats=[r.id for r in result.records[:5]],
        elapsed_seconds=round(time.time() - start_time, 3),
    )
    return result


def run_ingestion(settings: Optional[Settings] = None) -> list[FloatRecord]:
    """Run an ingestion pass using application settings."""
    settings = settings or get_settings()
    result = ingest_data_roots(
        data_roots_from_settings(settings),
        extensions=settings.data_file_extensions,
        time_gap_days=settings.CYCLE_TIME_GAP_DAYS,
        pressure_gap_dbar=settings.CYCLE_PRESSURE_GAP_DBAR,
    )
    return result.records


async def build_aggregate(settings: Optional[Settings] = None) -> list[FloatRecord]:
    """
    Async entry point for the aggregate cache.

    The pass runs in a worker thread so file I/O never blocks the event loop;
    files are still processed one at a time.
    """
    return await asyncio.to_thread(run_ingestion, settings)

"""
Data ingestion pipeline module.

Exports:
    split_csv_line: Split one CSV line honoring quotes
    iter_csv_rows: Stream row dicts from a CSV file
    read_csv_file: Stream a CSV file into a row callback
    normalize_row: Map a raw row onto the canonical Entry
    Entry: Single normalized measurement
    FIELD_ALIASES: Logical field -> accepted column names
    discover_data_files: List data files under the data roots
    DataRoot: Data directory tagged with a source kind
    PlatformAggregator: Per-platform entry buckets
    segment_cycles: Partition sorted entries into cycles
    finalize_bucket: Build a FloatRecord from a bucket
    FloatRecord: Finalized float
    ingest_data_roots: Run a full ingestion pass
    build_aggregate: Async entry point used by the cache
    IngestionResult: Records plus statistics
    IngestionStats: Counters from an ingestion pass
"""

from floatmap.ingestion.aggregator import Bucket, PlatformAggregator
from floatmap.ingestion.csv_reader import iter_csv_rows, read_csv_file, split_csv_line
from floatmap.ingestion.discovery import (
    SOURCE_KIND_BGC,
    SOURCE_KIND_CORE,
    DataFile,
    DataRoot,
    discover_data_files,
)
from floatmap.ingestion.normalizer import FIELD_ALIASES, Entry, normalize_row
from floatmap.ingestion.pipeline import (
    IngestionResult,
    IngestionStats,
    build_aggregate,
    ingest_data_roots,
)
from floatmap.ingestion.segmenter import FloatRecord, finalize_bucket, segment_cycles

__all__ = [
    # Reader exports
    "split_csv_line",
    "iter_csv_rows",
    "read_csv_file",
    # Normalizer exports
    "normalize_row",
    "Entry",
    "FIELD_ALIASES",
    # Discovery exports
    "discover_data_files",
    "DataRoot",
    "DataFile",
    "SOURCE_KIND_BGC",
    "SOURCE_KIND_CORE",
    # Aggregation exports
    "PlatformAggregator",
    "Bucket",
    "segment_cycles",
    "finalize_bucket",
    "FloatRecord",
    # Pipeline exports
    "ingest_data_roots",
    "build_aggregate",
    "IngestionResult",
    "IngestionStats",
]

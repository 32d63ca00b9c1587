"""
Integration tests for discovery and the ingestion pipeline.

Tests:
- Discovery walks nested roots, filters extensions, tags source kind
- Missing roots contribute nothing
- Multi-file aggregation (core + bgc) produces the expected record
- Dropped rows are counted, never raised
- Unreadable files contribute zero rows
- Re-running on unchanged files is idempotent
"""

from pathlib import Path

import pytest

from floatmap.config import Settings
from floatmap.ingestion.discovery import DataRoot, data_roots_from_settings, discover_data_files
from floatmap.ingestion.pipeline import (
    IngestionStats,
    ingest_data_roots,
    ingest_files,
    run_ingestion,
)

HEADER = ["PLATFORM_NUMBER", "LATITUDE", "LONGITUDE", "JULD"]


# =========================================================================
# discover_data_files
# =========================================================================
class TestDiscoverDataFiles:
    """Tests for recursive file discovery."""

    def test_nested_files_found_and_tagged(self, data_dirs, data_roots, write_csv):
        bgc, core = data_dirs
        write_csv(bgc / "2024" / "05" / "a.csv", HEADER, [])
        write_csv(core / "b.CSV", HEADER, [])
        (core / "notes.txt").write_text("ignore me")

        files = discover_data_files(data_roots)
        assert [(f.path.name, f.source_kind) for f in files] == [
            ("a.csv", "bgc"),
            ("b.CSV", "core"),
        ]

    def test_files_sorted_within_root(self, data_dirs, data_roots, write_csv):
        _, core = data_dirs
        for name in ["c.csv", "a.csv", "b.csv"]:
            write_csv(core / name, HEADER, [])
        names = [f.path.name for f in discover_data_files(data_roots)]
        assert names == ["a.csv", "b.csv", "c.csv"]

    def test_missing_root_is_empty(self, tmp_path):
        roots = [DataRoot(path=tmp_path / "absent", source_kind="core")]
        assert discover_data_files(roots) == []

    def test_custom_extensions(self, data_dirs, data_roots, write_csv):
        _, core = data_dirs
        write_csv(core / "a.csv", HEADER, [])
        write_csv(core / "b.tsv", HEADER, [])
        files = discover_data_files(data_roots, extensions={".tsv"})
        assert [f.path.name for f in files] == ["b.tsv"]

    def test_roots_from_settings(self):
        settings = Settings(BGC_DATA_DIR="x/bgc", CORE_DATA_DIR="x/core")
        roots = data_roots_from_settings(settings)
        assert [(str(r.path), r.source_kind) for r in roots] == [
            (str(Path("x/bgc")), "bgc"),
            (str(Path("x/core")), "core"),
        ]

    def test_settings_extension_parsing(self):
        settings = Settings(DATA_FILE_EXTENSIONS="csv, .TXT,")
        assert settings.data_file_extensions == frozenset({".csv", ".txt"})


# =========================================================================
# ingest_data_roots
# =========================================================================
class TestIngestDataRoots:
    """End-to-end ingestion over temporary data roots."""

    def test_core_and_bgc_files_merge_into_one_bgc_record(self, data_dirs, data_roots, write_csv):
        bgc, core = data_dirs
        write_csv(core / "1001_core.csv", HEADER, [
            ["1001", 10, 20, 0],
            ["1001", 10, 20, 0.5],
        ])
        write_csv(bgc / "1001_bgc.csv", HEADER, [
            ["1001", 11, 21, 3],
        ])

        result = ingest_data_roots(data_roots)

        assert len(result.records) == 1
        record = result.records[0]
        assert record.id == "1001"
        assert record.kind == "bgc"
        assert [e.time_value for e in record.history] == [0, 0.5, 3]
        assert len(record.cycles) == 2
        assert record.latest.latitude == 11

    def test_rows_missing_latitude_dropped_and_counted(self, data_dirs, data_roots, write_csv):
        _, core = data_dirs
        write_csv(core / "f.csv", HEADER, [
            ["1001", "", 20, 0],
            ["1002", 10, 20, 0],
            ["", 10, 20, 0],
        ])

        result = ingest_data_roots(data_roots)

        assert [r.id for r in result.records] == ["1002"]
        assert result.stats.rows_read == 3
        assert result.stats.rows_accepted == 1
        assert result.stats.rows_missing_position == 1
        assert result.stats.rows_missing_platform == 1
        assert result.stats.rows_dropped == 2

    def test_platform_with_only_invalid_rows_absent(self, data_dirs, data_roots, write_csv):
        bgc, core = data_dirs
        write_csv(core / "a.csv", HEADER, [["9999", "x", "y", 0]])
        write_csv(bgc / "b.csv", HEADER, [["9999", "", "", 1]])
        result = ingest_data_roots(data_roots)
        assert result.records == []

    def test_no_files_gives_empty_aggregate(self, data_roots):
        result = ingest_data_roots(data_roots)
        assert result.records == []
        assert result.stats.files_found == 0

    def test_unreadable_file_contributes_zero_rows(self, data_dirs, data_roots, write_csv, monkeypatch):
        _, core = data_dirs
        good = write_csv(core / "a.csv", HEADER, [["1001", 10, 20, 0]])
        bad = write_csv(core / "b.csv", HEADER, [["2002", 10, 20, 0]])

        from floatmap.ingestion import pipeline

        real_read = pipeline.read_csv_file

        def _flaky_read(path, on_row):
            if Path(path) == bad:
                on_row({"PLATFORM_NUMBER": "2002", "LATITUDE": "1", "LONGITUDE": "1"})
                raise OSError("disk went away")
            return real_read(path, on_row)

        monkeypatch.setattr(pipeline, "read_csv_file", _flaky_read)

        result = ingest_data_roots(data_roots)

        assert [r.id for r in result.records] == ["1001"]
        assert result.stats.files_read == 1
        assert result.stats.files_failed == 1
        assert result.stats.failed_files == [str(bad)]
        assert result.stats.rows_read == 1
        assert good.exists()

    def test_records_in_first_seen_order(self, data_dirs, data_roots, write_csv):
        bgc, core = data_dirs
        write_csv(bgc / "a.csv", HEADER, [["B", 1, 1, 0]])
        write_csv(core / "a.csv", HEADER, [["A", 1, 1, 0], ["B", 1, 1, 1]])
        result = ingest_data_roots(data_roots)
        assert [r.id for r in result.records] == ["B", "A"]

    def test_idempotent_rerun(self, data_dirs, data_roots, write_csv):
        bgc, core = data_dirs
        write_csv(core / "a.csv", HEADER + ["PRES"], [
            ["1", 1, 1, 0, 5], ["1", 1, 1, 0.1, 900], ["1", 1, 1, 0.2, 4], ["2", 2, 2, 7, 1],
        ])
        write_csv(bgc / "b.csv", HEADER, [["2", 3, 3, 1]])

        first = ingest_data_roots(data_roots).records
        second = ingest_data_roots(data_roots).records
        assert first == second
        assert first is not second

    def test_thresholds_passed_through(self, data_dirs, data_roots, write_csv):
        _, core = data_dirs
        write_csv(core / "a.csv", HEADER, [["1", 1, 1, 0], ["1", 1, 1, 0.5]])
        result = ingest_data_roots(data_roots, time_gap_days=0.1)
        assert len(result.records[0].cycles) == 2

    def test_ingest_files_accepts_external_stats(self, data_dirs, data_roots, write_csv):
        _, core = data_dirs
        write_csv(core / "a.csv", HEADER, [["1", 1, 1, 0]])
        stats = IngestionStats()
        ingest_files(discover_data_files(data_roots), stats)
        assert stats.files_read == 1
        assert stats.rows_accepted == 1

    def test_run_ingestion_uses_settings(self, data_dirs, write_csv):
        bgc, core = data_dirs
        write_csv(core / "a.csv", HEADER, [["1", 1, 1, 0]])
        settings = Settings(BGC_DATA_DIR=str(bgc), CORE_DATA_DIR=str(core))
        records = run_ingestion(settings)
        assert [r.id for r in records] == ["1"]
        assert records[0].kind == "core"

"""
Shared pytest fixtures.

Provides:
- Data tree builder writing CSV files under tmp bgc/core roots
- DataRoot pair pointing at those roots
- FastAPI TestClient with the aggregate cache overridden
"""

from pathlib import Path
from typing import Callable, Generator, Iterable

import pytest
from fastapi.testclient import TestClient

from floatmap.ingestion.discovery import SOURCE_KIND_BGC, SOURCE_KIND_CORE, DataRoot


def csv_text(header: Iterable[str], rows: Iterable[Iterable[object]]) -> str:
    """Render a header and rows as CSV text (no quoting)."""
    lines = [",".join(header)]
    for row in rows:
        lines.append(",".join("" if v is None else str(v) for v in row))
    return "\n".join(lines) + "\n"


@pytest.fixture()
def data_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """Create empty bgc and core data roots."""
    bgc = tmp_path / "data" / "bgc"
    core = tmp_path / "data" / "core"
    bgc.mkdir(parents=True)
    core.mkdir(parents=True)
    return bgc, core


@pytest.fixture()
def data_roots(data_dirs) -> list[DataRoot]:
    """DataRoots in configured order: bgc first, then core."""
    bgc, core = data_dirs
    return [
        DataRoot(path=bgc, source_kind=SOURCE_KIND_BGC),
        DataRoot(path=core, source_kind=SOURCE_KIND_CORE),
    ]


@pytest.fixture()
def write_csv() -> Callable[..., Path]:
    """Write a CSV file (creating parent directories) and return its path."""

    def _write(path: Path, header: Iterable[str], rows: Iterable[Iterable[object]]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(csv_text(header, rows), encoding="utf-8")
        return path

    return _write


# =============================================================================
# FastAPI TestClient with cache override
# =============================================================================
@pytest.fixture()
def make_client() -> Generator[Callable[..., TestClient], None, None]:
    """
    Factory for a TestClient whose aggregate cache is the one given.

    The override also applies to the startup warm-up.
    """
    from floatmap.cache.aggregate_cache import get_aggregate_cache
    from floatmap.main import app

    clients: list[TestClient] = []

    def _make(cache) -> TestClient:
        app.dependency_overrides[get_aggregate_cache] = lambda: cache
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)
    app.dependency_overrides.clear()

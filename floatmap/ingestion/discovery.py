"""
FloatMap Data File Discovery

Recursively lists data files under the configured data roots and tags each
file with the source kind of the root it was found under.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

import structlog

from floatmap.config import Settings

logger = structlog.get_logger(__name__)

SOURCE_KIND_CORE = "core"
SOURCE_KIND_BGC = "bgc"

DEFAULT_EXTENSIONS = frozenset({".csv"})


@dataclass(frozen=True)
class DataRoot:
    """A top-level data directory and the source kind of its files."""
    path: Path
    source_kind: str  # 'core' or 'bgc'


@dataclass(frozen=True)
class DataFile:
    """A discovered data file."""
    path: Path
    source_kind: str


def data_roots_from_settings(settings: Settings) -> list[DataRoot]:
    """Build the data roots (bgc first, then core) from settings."""
    return [
        DataRoot(path=Path(settings.BGC_DATA_DIR), source_kind=SOURCE_KIND_BGC),
        DataRoot(path=Path(settings.CORE_DATA_DIR), source_kind=SOURCE_KIND_CORE),
    ]


def _walk_files(root: Path, extensions: frozenset[str]) -> list[Path]:
    """Collect matching files below ``root``, logging unreadable directories."""

    def _on_error(exc: OSError) -> None:
        logger.warning("directory_unreadable", path=exc.filename, error=str(exc))

    matches = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
        for name in filenames:
            if Path(name).suffix.lower() in extensions:
                matches.append(Path(dirpath) / name)
    return sorted(matches)


def discover_data_files(
    roots: Sequence[DataRoot],
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[DataFile]:
    """
    List every data file under the given roots.

    Roots are scanned in the order given; files within a root are sorted by
    path. A missing root contributes no files.

    Args:
        roots: Data roots to scan
        extensions: Accepted file extensions, lowercase with leading dot

    Returns:
        Discovered files tagged with their root's source kind
    """
    accepted = frozenset(ext.lower() for ext in extensions)
    discovered: list[DataFile] = []

    for root in roots:
        if not root.path.is_dir():
            logger.warning("data_root_missing", path=str(root.path), source_kind=root.source_kind)
            continue

        files = _walk_files(root.path, accepted)
        logger.info(
            "data_root_scanned",
            path=str(root.path),
            source_kind=root.source_kind,
            file_count=len(files),
        )
        discovered.extend(DataFile(path=p, source_kind=root.source_kind) for p in files)

    return discovered

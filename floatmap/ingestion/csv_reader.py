"""
FloatMap CSV Reader

Streams ARGO float CSV exports line by line. Column naming varies between
data centres, so rows are returned as plain ``{column: value}`` dicts and
left to the normalizer to interpret.

Rules:
- The first non-blank line is the header; names are trimmed.
- Data lines are split but NOT trimmed.
- Missing trailing fields become "", extra trailing fields are dropped.
- Blank lines are skipped everywhere, including before the header.
- Quoted fields may contain commas and doubled quotes (""); an unterminated
  quote swallows the rest of the line instead of raising.
"""

from pathlib import Path
from typing import Callable, Iterator, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

FIELD_SEPARATOR = ","
QUOTE_CHAR = '"'

RawRow = dict[str, str]


def split_csv_line(line: str) -> list[str]:
    """
    Split one delimited line into its field values.

    Args:
        line: A single line of text without its line terminator

    Returns:
        Ordered list of field values (always at least one element)
    """
    values: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if in_quotes:
            if char == QUOTE_CHAR:
                # Doubled quote inside a quoted region is a literal quote
                if i + 1 < length and line[i + 1] == QUOTE_CHAR:
                    current.append(QUOTE_CHAR)
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(char)
        elif char == FIELD_SEPARATOR:
            values.append("".join(current))
            current = []
        elif char == QUOTE_CHAR:
            in_quotes = True
        else:
            current.append(char)
        i += 1

    values.append("".join(current))
    return values


def _zip_row(header: list[str], values: list[str]) -> RawRow:
    """Pair values with header names positionally."""
    row: RawRow = {}
    for idx, name in enumerate(header):
        row[name] = values[idx] if idx < len(values) else ""
    return row


def iter_csv_rows(file_path: Union[str, Path]) -> Iterator[RawRow]:
    """
    Lazily yield one row dict per data line of a CSV file.

    The file is read sequentially; only the current line is held in memory.
    I/O errors propagate to the caller.

    Args:
        file_path: Path to the CSV file

    Yields:
        Row dicts keyed by the original-case header names
    """
    header: Optional[list[str]] = None

    with open(file_path, "r", encoding="utf-8-sig", errors="replace") as handle:
        for raw_line in handle:
            line = raw_line.rstrip("\r\n")
            stripped = line.strip()
            if not stripped:
                continue
            if header is None:
                header = [name.strip() for name in split_csv_line(stripped)]
                continue
            yield _zip_row(header, split_csv_line(line))


def read_csv_file(
    file_path: Union[str, Path],
    on_row: Callable[[RawRow], None],
) -> int:
    """
    Stream a CSV file, invoking ``on_row`` once per data row.

    Args:
        file_path: Path to the CSV file
        on_row: Callback receiving each row dict

    Returns:
        Number of rows delivered to the callback

    Raises:
        OSError: If the file cannot be opened or read
    """
    count = 0
    for row in iter_csv_rows(file_path):
        on_row(row)
        count += 1

    logger.debug("csv_file_read", file_path=str(file_path), rows=count)
    return count

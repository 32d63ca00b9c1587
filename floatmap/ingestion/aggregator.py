"""
FloatMap Platform Aggregator

Buckets normalized entries by platform (WMO) identifier across all files.
A bucket is tagged 'bgc' as soon as any entry comes from the BGC root and
never goes back to 'core'.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from floatmap.ingestion.discovery import SOURCE_KIND_BGC
from floatmap.ingestion.normalizer import Entry


@dataclass
class Bucket:
    """Per-platform accumulator used during a single ingestion pass."""
    source_kind: str
    entries: list[Entry] = field(default_factory=list)


class PlatformAggregator:
    """Accumulates entries into per-platform buckets in first-seen order."""

    def __init__(self):
        self._buckets: dict[str, Bucket] = {}

    def add(self, platform_id: str, entry: Entry, source_kind: str) -> None:
        """Append an entry to the platform's bucket, creating it if needed."""
        bucket = self._buckets.get(platform_id)
        if bucket is None:
            bucket = Bucket(source_kind=source_kind)
            self._buckets[platform_id] = bucket
        bucket.entries.append(entry)
        if source_kind == SOURCE_KIND_BGC:
            bucket.source_kind = SOURCE_KIND_BGC

    def add_many(self, items: Iterable[tuple[str, Entry]], source_kind: str) -> None:
        """Append (platform_id, entry) pairs from one file."""
        for platform_id, entry in items:
            self.add(platform_id, entry, source_kind)

    def buckets(self) -> Iterator[tuple[str, Bucket]]:
        """Iterate (platform_id, bucket) in first-seen order."""
        return iter(self._buckets.items())

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, platform_id: object) -> bool:
        return platform_id in self._buckets

"""Worker entry points run inside the executor.

Each worker gets plain inputs and returns ``label -> [entry index]`` so the
coordinator can map results back to the caller's own entry objects without
sharing any state with the worker.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from libdupes.core.images import find_image_duplicates
from libdupes.core.titles import find_duplicate_entries, find_duplicates_by_title
from libdupes.core.trackers import find_duplicates_by_tracker
from libdupes.models.config import ImageHashSettings, TitleStrategy
from libdupes.models.entry import DuplicateGroupMap, LibraryEntry

IndexGroups = dict[str, list[int]]


def to_index_groups(entries: Sequence[LibraryEntry], groups: DuplicateGroupMap) -> IndexGroups:
    id_to_index = {str(e.id): i for i, e in enumerate(entries)}
    return {
        label: [id_to_index[str(m.id)] for m in members if str(m.id) in id_to_index]
        for label, members in groups.items()
    }


def from_index_groups(entries: Sequence[LibraryEntry], groups: IndexGroups | None) -> DuplicateGroupMap:
    if not groups:
        return {}
    return {
        label: [entries[i] for i in idxs]
        for label, idxs in groups.items()
        if len(idxs) > 1
    }


def title_worker(entries: list[LibraryEntry]) -> IndexGroups:
    return to_index_groups(entries, find_duplicates_by_title(entries))


def description_chunk_worker(
    entries: list[LibraryEntry],
    start: int,
    stop: int,
    strategy: TitleStrategy = TitleStrategy.ALTERNATIVE_TITLES,
) -> IndexGroups:
    """Check ``entries[start:stop]`` against the whole library."""
    groups = find_duplicate_entries(entries[start:stop], entries, strategy)
    return to_index_groups(entries, groups)


def tracker_worker(entries: list[LibraryEntry]) -> IndexGroups:
    return to_index_groups(entries, find_duplicates_by_tracker(entries))


def image_hash_worker(entries: list[LibraryEntry], settings: ImageHashSettings) -> dict[str, Any]:
    """Hash thumbnails and cluster them; debug data rides along when enabled."""
    report = find_image_duplicates(entries, settings)
    message: dict[str, Any] = {
        "result": to_index_groups(entries, report.groups),
        "thresholdUsed": report.threshold_used,
        "hashed": report.hashed,
        "failed": report.failed,
    }
    if settings.debug:
        message["debugSamples"] = report.debug_samples
    return message

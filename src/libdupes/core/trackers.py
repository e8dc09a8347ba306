"""Group entries bound to the same remote item on the same tracker."""

from __future__ import annotations

from collections.abc import Sequence

from libdupes.models.entry import DuplicateGroupMap, LibraryEntry, TrackerBinding


def _group_label(binding: TrackerBinding) -> str:
    name = binding.remote_title or f"{binding.tracker_id}:{binding.remote_id}"
    return f"{name} ({binding.key})"


def find_duplicates_by_tracker(entries: Sequence[LibraryEntry]) -> DuplicateGroupMap:
    """Group entries sharing a (tracker, remote id) binding.

    Keys are processed in sorted order and each entry joins at most one group:
    the first key, in that order, that still has another unclaimed entry.
    Bindings without a remote id are ignored.
    """
    by_key: dict[str, list[tuple[LibraryEntry, TrackerBinding]]] = {}
    for entry in entries:
        for binding in entry.tracker_bindings:
            if not binding.remote_id:
                continue
            by_key.setdefault(binding.key, []).append((entry, binding))

    claimed: set[object] = set()
    result: DuplicateGroupMap = {}
    for key in sorted(by_key):
        seen_in_group: set[object] = set()
        remaining: list[tuple[LibraryEntry, TrackerBinding]] = []
        for entry, binding in by_key[key]:
            if entry.id in seen_in_group or entry.id in claimed:
                continue
            seen_in_group.add(entry.id)
            remaining.append((entry, binding))

        if len(remaining) < 2:
            continue
        result[_group_label(remaining[0][1])] = [entry for entry, _ in remaining]
        claimed.update(entry.id for entry, _ in remaining)
    return result

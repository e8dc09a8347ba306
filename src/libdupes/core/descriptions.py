"""Title + alternative-title matching against entry descriptions.

An entry's description often lists the alternative titles the item is known
by, so a candidate whose normalized title appears inside another entry's
normalized description is treated as the same item. The matcher is chunkable:
each chunk checks a slice of candidates against the full library and the
per-chunk maps are combined with :func:`merge_chunk_results`.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from libdupes.core.normalizer import normalize
from libdupes.models.entry import DuplicateGroupMap, LibraryEntry

MANGAS_PER_CHUNK = 200


@dataclass(slots=True)
class TitleMatches:
    by_title: list[LibraryEntry] = field(default_factory=list)
    by_description: list[LibraryEntry] = field(default_factory=list)


def _unique_by_id(entries: Iterable[LibraryEntry]) -> list[LibraryEntry]:
    seen: set[object] = set()
    unique: list[LibraryEntry] = []
    for entry in entries:
        if entry.id not in seen:
            seen.add(entry.id)
            unique.append(entry)
    return unique


def match_single_entry(
    candidate: LibraryEntry,
    entries: Sequence[LibraryEntry],
    normalized_descriptions: Sequence[str] | None = None,
    normalized_titles: Sequence[str] | None = None,
) -> TitleMatches:
    """Find entries sharing the candidate's normalized title or mentioning it in their description.

    Both lists start with the candidate itself. The optional precomputed
    sequences must be aligned with ``entries``.
    """
    key = normalize(candidate.title)
    matches = TitleMatches(by_title=[candidate], by_description=[candidate])
    if not key:
        return matches

    for i, other in enumerate(entries):
        if other.id == candidate.id:
            continue
        title = normalized_titles[i] if normalized_titles is not None else normalize(other.title)
        description = (
            normalized_descriptions[i]
            if normalized_descriptions is not None
            else normalize(other.description)
        )
        if title == key:
            matches.by_title.append(other)
        if key in description:
            matches.by_description.append(other)
    return matches


def find_duplicates_by_title_and_description(
    candidates: Sequence[LibraryEntry],
    entries: Sequence[LibraryEntry] | None = None,
) -> DuplicateGroupMap:
    """Group candidates with entries matching by normalized title or by description.

    Groups are keyed internally by normalized title; the returned label is the
    original title of the first candidate that seeded the group. Candidates
    without a usable title never seed a group.
    """
    if entries is None:
        entries = candidates
    normalized_titles = [normalize(e.title) for e in entries]
    normalized_descriptions = [normalize(e.description) for e in entries]

    by_title: dict[str, list[LibraryEntry]] = {}
    by_description: dict[str, list[LibraryEntry]] = {}
    for candidate in candidates:
        key = normalize(candidate.title)
        if not key:
            continue
        matches = match_single_entry(
            candidate, entries, normalized_descriptions, normalized_titles
        )
        by_title.setdefault(key, []).extend(matches.by_title)
        by_description.setdefault(key, []).extend(matches.by_description)

    result: DuplicateGroupMap = {}
    for key, title_matches in by_title.items():
        duplicates = _unique_by_id([*title_matches, *by_description.get(key, [])])
        if len(duplicates) < 2:
            continue
        result[title_matches[0].title] = duplicates
    return result


def chunk_ranges(total: int, size: int = MANGAS_PER_CHUNK) -> Iterator[tuple[int, int]]:
    """Yield ceil(total / size) half-open ``(start, stop)`` ranges covering ``[0, total)``."""
    size = max(1, size)
    for i in range(math.ceil(total / size)):
        yield i * size, min(total, (i + 1) * size)


def merge_chunk_results(
    results: Iterable[DuplicateGroupMap | None],
    key: Callable[[str], str] = normalize,
) -> DuplicateGroupMap:
    """Combine per-chunk maps whose labels collide under ``key``.

    The first label seen for a key wins; members are the ordered union by id.
    Missing chunk results (``None``) are skipped.
    """
    labels: dict[str, str] = {}
    merged: DuplicateGroupMap = {}
    for result in results:
        if not result:
            continue
        for label, duplicates in result.items():
            canonical = labels.setdefault(key(label), label)
            merged[canonical] = _unique_by_id([*merged.get(canonical, []), *duplicates])
    return merged

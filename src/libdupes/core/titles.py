"""Title-based duplicate matchers."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence

from libdupes.core.descriptions import find_duplicates_by_title_and_description
from libdupes.core.normalizer import normalize
from libdupes.models.config import TitleStrategy
from libdupes.models.entry import DuplicateGroupMap, LibraryEntry


def _group_by_key(
    entries: Sequence[LibraryEntry],
    candidates: Sequence[LibraryEntry] | None,
    key: Callable[[LibraryEntry], str],
) -> DuplicateGroupMap:
    groups: dict[str, list[LibraryEntry]] = {}
    for entry in entries:
        k = key(entry)
        if k:
            groups.setdefault(k, []).append(entry)

    candidate_ids = None if candidates is None else {c.id for c in candidates}
    result: DuplicateGroupMap = {}
    for members in groups.values():
        if len(members) < 2:
            continue
        if candidate_ids is not None and not any(m.id in candidate_ids for m in members):
            continue
        result[members[0].title] = members
    return result


def find_duplicates_exact_title(
    entries: Sequence[LibraryEntry],
    candidates: Sequence[LibraryEntry] | None = None,
) -> DuplicateGroupMap:
    """Group entries whose raw titles are identical."""
    return _group_by_key(entries, candidates, lambda e: e.title)


def find_duplicates_by_title(
    entries: Sequence[LibraryEntry],
    candidates: Sequence[LibraryEntry] | None = None,
) -> DuplicateGroupMap:
    """Group entries whose normalized titles are identical.

    Groups are labeled with the original title of their first member.
    """
    return _group_by_key(entries, candidates, lambda e: normalize(e.title))


def _match_symmetric(
    entries: Sequence[LibraryEntry],
    candidates: Sequence[LibraryEntry] | None,
    matches: Callable[[LibraryEntry, LibraryEntry], bool],
) -> DuplicateGroupMap:
    result: DuplicateGroupMap = {}
    for candidate in entries if candidates is None else candidates:
        if not candidate.title:
            continue
        group = [candidate]
        for other in entries:
            if other.id == candidate.id:
                continue
            if matches(candidate, other) or (other.title and matches(other, candidate)):
                group.append(other)
        if len(group) < 2:
            continue
        existing = result.setdefault(candidate.title, [])
        seen = {e.id for e in existing}
        existing.extend(e for e in group if e.id not in seen)
    return result


def find_duplicates_fuzzy_title(
    entries: Sequence[LibraryEntry],
    candidates: Sequence[LibraryEntry] | None = None,
) -> DuplicateGroupMap:
    """Match titles containing another title as a whole word sequence (case-insensitive)."""
    patterns: dict[str, re.Pattern[str]] = {}

    def pattern_for(title: str) -> re.Pattern[str]:
        if title not in patterns:
            patterns[title] = re.compile(rf"(?:^|\b){re.escape(title)}(?:\b|$)", re.IGNORECASE)
        return patterns[title]

    return _match_symmetric(
        entries,
        candidates,
        lambda needle, hay: bool(pattern_for(needle.title).search(hay.title or "")),
    )


def find_duplicates_title_substring(
    entries: Sequence[LibraryEntry],
    candidates: Sequence[LibraryEntry] | None = None,
) -> DuplicateGroupMap:
    """Match titles containing another title anywhere (case-insensitive)."""
    return _match_symmetric(
        entries,
        candidates,
        lambda needle, hay: needle.title.casefold() in (hay.title or "").casefold(),
    )


def find_duplicate_entries(
    candidates: Sequence[LibraryEntry],
    entries: Sequence[LibraryEntry] | None = None,
    strategy: TitleStrategy = TitleStrategy.ALTERNATIVE_TITLES,
) -> DuplicateGroupMap:
    """Run the title strategy backing the alternative-titles signal."""
    if entries is None:
        entries = candidates
    strategy = TitleStrategy(strategy)
    if strategy is TitleStrategy.ALTERNATIVE_TITLES:
        return find_duplicates_by_title_and_description(candidates, entries)
    elif strategy is TitleStrategy.EXACT:
        return find_duplicates_exact_title(entries, candidates)
    elif strategy is TitleStrategy.FUZZY:
        return find_duplicates_fuzzy_title(entries, candidates)
    elif strategy is TitleStrategy.SUBSTRING:
        return find_duplicates_title_substring(entries, candidates)
    raise ValueError(f"Unknown title strategy: {strategy!r}")

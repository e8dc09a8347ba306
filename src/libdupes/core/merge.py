"""Cross-signal merge: transitive closure over independently found groups."""

from __future__ import annotations

from collections.abc import Sequence

from libdupes.core.unionfind import UnionFind
from libdupes.models.entry import DuplicateGroupMap, LibraryEntry


def _component_label(group: list[LibraryEntry]) -> str:
    first = group[0]
    if first.title:
        return first.title
    return "combined-" + "-".join(str(e.id) for e in group)


def merge_duplicate_maps(
    entries: Sequence[LibraryEntry],
    maps: Sequence[DuplicateGroupMap],
) -> DuplicateGroupMap:
    """Merge group maps into connected components.

    Two entries end up together if any chain of groups, from any map, links
    them. Components are ordered by their earliest entry, members keep the
    original entry order and the label is the first member's title. Members
    unknown to ``entries`` are ignored.
    """
    id_to_index = {str(e.id): i for i, e in enumerate(entries)}
    uf = UnionFind(len(entries))

    for group_map in maps:
        for group in group_map.values():
            idxs = [id_to_index[k] for k in (str(e.id) for e in group) if k in id_to_index]
            for idx in idxs[1:]:
                uf.union(idxs[0], idx)

    result: DuplicateGroupMap = {}
    for component in uf.components():
        if len(component) < 2:
            continue
        group = [entries[i] for i in component]
        label = base = _component_label(group)
        suffix = 2
        while label in result:
            label = f"{base} #{suffix}"
            suffix += 1
        result[label] = group
    return result

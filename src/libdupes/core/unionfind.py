"""Disjoint-set forest over the index space [0, n)."""

from __future__ import annotations


class UnionFind:
    """Iterative union-find with path compression.

    Union is rank-free: the second root is attached under the first, so the
    lowest index seen first tends to stay the representative.
    """

    def __init__(self, n: int) -> None:
        self.parent = list(range(n))

    def __len__(self) -> int:
        return len(self.parent)

    def find(self, x: int) -> int:
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        # Path compression
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, a: int, b: int) -> None:
        ra, rb = self.find(a), self.find(b)
        if ra != rb:
            self.parent[rb] = ra

    def components(self) -> list[list[int]]:
        """Group indices by root, ordered by each component's smallest index."""
        by_root: dict[int, list[int]] = {}
        for i in range(len(self.parent)):
            by_root.setdefault(self.find(i), []).append(i)
        return list(by_root.values())

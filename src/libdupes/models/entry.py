"""Data models for library entries and per-entry hash results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

EntryId = Union[str, int]


@dataclass(slots=True, frozen=True)
class TrackerBinding:
    tracker_id: str | int = ""
    remote_id: str | None = None
    remote_title: str | None = None

    @property
    def key(self) -> str:
        return f"{self.tracker_id}::{self.remote_id}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "trackerId": self.tracker_id,
            "remoteId": self.remote_id,
            "remoteTitle": self.remote_title,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrackerBinding:
        remote_id = data.get("remoteId", data.get("remote_id"))
        return cls(
            tracker_id=data.get("trackerId", data.get("tracker_id", "")),
            remote_id=None if remote_id is None else str(remote_id),
            remote_title=data.get("remoteTitle", data.get("remote_title")),
        )


@dataclass(slots=True, frozen=True)
class LibraryEntry:
    # Identity
    id: EntryId = ""

    # Matching inputs
    title: str = ""
    description: str | None = None
    thumbnail_url: str | None = None
    tracker_bindings: tuple[TrackerBinding, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnailUrl": self.thumbnail_url,
            "trackerBindings": [b.to_dict() for b in self.tracker_bindings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LibraryEntry:
        """Build an entry from the camelCase wire shape.

        Tracker bindings are read from ``trackerBindings`` or, for catalog
        payloads, from ``trackRecords.nodes``.
        """
        raw_bindings = data.get("trackerBindings", data.get("tracker_bindings"))
        if raw_bindings is None:
            track_records = data.get("trackRecords") or {}
            raw_bindings = track_records.get("nodes") if isinstance(track_records, dict) else None
        bindings = tuple(
            TrackerBinding.from_dict(b) for b in (raw_bindings or []) if isinstance(b, dict)
        )
        return cls(
            id=data.get("id", ""),
            title=data.get("title") or "",
            description=data.get("description"),
            thumbnail_url=data.get("thumbnailUrl", data.get("thumbnail_url")),
            tracker_bindings=bindings,
        )


# Group label -> ordered members. Never holds a group with fewer than 2 members.
DuplicateGroupMap = dict[str, list[LibraryEntry]]


@dataclass(slots=True)
class HashRecord:
    id: str = ""
    average_hash: str | None = None
    perceptual_hash: str | None = None
    index: int = 0

    @property
    def has_hash(self) -> bool:
        return bool(self.average_hash or self.perceptual_hash)


@dataclass(slots=True)
class DebugSample:
    id_a: str = ""
    id_b: str = ""
    a_dist: int = 0
    p_dist: int = 0
    avg: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "idA": self.id_a,
            "idB": self.id_b,
            "aDist": self.a_dist,
            "pDist": self.p_dist,
            "avg": self.avg,
        }

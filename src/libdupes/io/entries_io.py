"""Library entry loading (JSON / JSONL) and result writing."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from libdupes.models.entry import LibraryEntry

_LIST_KEYS = ("entries", "mangas", "nodes")


def _unwrap(data: Any) -> list[Any]:
    """Find the entry list in a JSON document (bare list or wrapped in an object)."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in _LIST_KEYS:
            value = data.get(key)
            if isinstance(value, list):
                return value
            if isinstance(value, dict):
                return _unwrap(value)
        # GraphQL envelope: {"data": {"mangas": {"nodes": [...]}}}
        if isinstance(data.get("data"), dict):
            return _unwrap(data["data"])
    return []


def parse_entries(data: Any) -> list[LibraryEntry]:
    return [LibraryEntry.from_dict(item) for item in _unwrap(data) if isinstance(item, dict)]


def read_entries(path: str | Path) -> list[LibraryEntry]:
    """Read library entries from a JSON document or a JSONL file.

    JSONL lines that fail to parse are skipped.
    """
    path = Path(path)
    raw = path.read_bytes()
    if path.suffix.lower() != ".jsonl":
        return parse_entries(orjson.loads(raw))

    entries: list[LibraryEntry] = []
    for line in raw.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            data = orjson.loads(line)
        except orjson.JSONDecodeError:
            continue
        if isinstance(data, dict):
            entries.append(LibraryEntry.from_dict(data))
    return entries


def write_entries(path: str | Path, entries: list[LibraryEntry]) -> None:
    """Write entries as JSONL, one per line."""
    with open(path, "wb") as f:
        for entry in entries:
            f.write(orjson.dumps(entry.to_dict(), option=orjson.OPT_APPEND_NEWLINE))


def write_result(path: str | Path, message: dict[str, Any]) -> None:
    """Write a detection output message as indented JSON."""
    Path(path).write_bytes(orjson.dumps(message, option=orjson.OPT_INDENT_2))

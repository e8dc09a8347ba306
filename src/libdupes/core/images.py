"""Thumbnail fetch, decode and perceptual-hash clustering."""

from __future__ import annotations

import io
import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import requests
from PIL import Image

from libdupes.core.hasher import HASH_BITS, compute_hashes, hamming_distance
from libdupes.core.unionfind import UnionFind
from libdupes.models.config import DEFAULT_BACKEND_BASE, ImageHashSettings
from libdupes.models.entry import DebugSample, DuplicateGroupMap, HashRecord, LibraryEntry

logger = logging.getLogger(__name__)

GROUP_LABEL_PREFIX = "imagehash:group:"


@dataclass(slots=True)
class ImageHashReport:
    groups: DuplicateGroupMap = field(default_factory=dict)
    debug_samples: list[DebugSample] = field(default_factory=list)
    threshold_used: float = 0.0
    hashed: int = 0
    failed: int = 0


def resolve_thumbnail_url(url: str | None, base: str = DEFAULT_BACKEND_BASE) -> str | None:
    """Return an absolute URL for a thumbnail reference, or None if there is none."""
    if not url:
        return None
    if urlsplit(url).scheme:
        return url
    return f"{base.rstrip('/')}/{url.lstrip('/')}"


def fetch_thumbnail(
    url: str | None,
    session: requests.Session,
    settings: ImageHashSettings,
) -> Image.Image | None:
    """Fetch and decode one thumbnail. Never raises; failures return None."""
    resolved = resolve_thumbnail_url(url, settings.backend_base)
    if resolved is None:
        return None
    try:
        response = session.get(resolved, timeout=settings.fetch_timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.debug("Thumbnail fetch failed for %s: %s", resolved, exc)
        return None
    try:
        img = Image.open(io.BytesIO(response.content))
        img.load()
    except Exception as exc:
        logger.debug("Thumbnail decode failed for %s: %s", resolved, exc)
        return None
    return img


def hash_entry(
    entry: LibraryEntry,
    index: int,
    session: requests.Session,
    settings: ImageHashSettings,
) -> HashRecord:
    """Fetch, decode and hash a single entry's thumbnail."""
    record = HashRecord(id=str(entry.id), index=index)
    img = fetch_thumbnail(entry.thumbnail_url, session, settings)
    if img is None:
        return record
    try:
        record.average_hash, record.perceptual_hash = compute_hashes(img)
    except Exception as exc:
        logger.debug("Hashing failed for entry %s: %s", entry.id, exc)
    finally:
        img.close()
    return record


def hash_entries(
    entries: Sequence[LibraryEntry],
    settings: ImageHashSettings,
    session: requests.Session | None = None,
) -> list[HashRecord]:
    """Hash every entry's thumbnail with a bounded pool of threads.

    Each thread repeatedly claims the next unclaimed index until none are left,
    so one slow fetch only holds up its own thread. Results follow entry order.
    """
    own_session = session is None
    if session is None:
        session = requests.Session()

    results: list[HashRecord | None] = [None] * len(entries)
    next_index = 0
    lock = threading.Lock()

    def claim() -> int | None:
        nonlocal next_index
        with lock:
            if next_index >= len(entries):
                return None
            idx = next_index
            next_index += 1
            return idx

    def work() -> None:
        while True:
            idx = claim()
            if idx is None:
                break
            try:
                results[idx] = hash_entry(entries[idx], idx, session, settings)
            except Exception:
                logger.exception("Error processing image hash task for entry %s", entries[idx].id)

    workers = [
        threading.Thread(target=work, name=f"imagehash-{i}", daemon=True)
        for i in range(min(max(2, settings.concurrency), len(entries)))
    ]
    try:
        for t in workers:
            t.start()
        for t in workers:
            t.join()
    finally:
        if own_session:
            session.close()

    return [
        rec if rec is not None else HashRecord(id=str(entries[i].id), index=i)
        for i, rec in enumerate(results)
    ]


def find_image_duplicates(
    entries: Sequence[LibraryEntry],
    settings: ImageHashSettings | None = None,
    records: Sequence[HashRecord] | None = None,
    session: requests.Session | None = None,
) -> ImageHashReport:
    """Cluster entries whose thumbnails hash close together.

    Every pair with at least one hash each is compared: a missing hash kind is
    replaced by the other, the two Hamming distances are averaged and pairs
    within ``settings.threshold`` are unioned. This stage is quadratic in the
    number of hashed entries.
    """
    settings = settings or ImageHashSettings()
    if records is None:
        records = hash_entries(entries, settings, session)

    report = ImageHashReport(threshold_used=settings.threshold)
    report.hashed = sum(1 for r in records if r.has_hash)
    report.failed = len(records) - report.hashed
    if report.failed:
        logger.info("Image hashing: %d hashed, %d failed", report.hashed, report.failed)

    n = len(records)
    uf = UnionFind(n)
    for i in range(n):
        hi = records[i]
        if not hi.has_hash:
            continue
        a_i = hi.average_hash or hi.perceptual_hash
        p_i = hi.perceptual_hash or hi.average_hash
        for j in range(i + 1, n):
            hj = records[j]
            if not hj.has_hash:
                continue
            a_dist = hamming_distance(a_i, hj.average_hash or hj.perceptual_hash)
            p_dist = hamming_distance(p_i, hj.perceptual_hash or hj.average_hash)
            avg = (a_dist + p_dist) / 2

            if settings.debug and len(report.debug_samples) < settings.max_debug_samples:
                report.debug_samples.append(DebugSample(hi.id, hj.id, a_dist, p_dist, avg))

            if avg <= settings.threshold:
                uf.union(i, j)

    for component in uf.components():
        if len(component) < 2:
            continue
        label = f"{GROUP_LABEL_PREFIX}{len(report.groups)}"
        report.groups[label] = [entries[records[idx].index] for idx in component]
    return report


def summarize_distances(samples: Sequence[DebugSample]) -> dict[str, Any]:
    """Min/mean/max of the averaged distances in a debug sample set."""
    if not samples:
        return {"count": 0}
    avgs = [s.avg for s in samples]
    return {
        "count": len(avgs),
        "min": min(avgs),
        "mean": sum(avgs) / len(avgs),
        "max": max(avgs),
        "bits": HASH_BITS,
    }

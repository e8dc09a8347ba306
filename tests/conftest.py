"""Programmatic library and thumbnail fixtures."""

from __future__ import annotations

import io
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator

import numpy as np
import pytest
import requests
from PIL import Image

from libdupes.models.entry import LibraryEntry, TrackerBinding


def smooth_array(shift: int = 0, size: int = 64) -> np.ndarray:
    """Low-frequency RGB pattern; ``shift`` moves it horizontally by whole pixels."""
    y, x = np.mgrid[0:size, 0:size].astype(np.float64)
    x = x + shift
    base = 128 + 60 * np.sin(x / 9.0) + 50 * np.cos(y / 7.0)
    arr = np.stack([base, base * 0.9, 255 - base], axis=-1)
    return np.clip(arr, 0, 255).astype(np.uint8)


def png_bytes(arr: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


class FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"") -> None:
        self.status_code = status_code
        self.content = content

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Stand-in for ``requests.Session`` serving canned thumbnails by URL."""

    def __init__(self, routes: dict[str, bytes | int]) -> None:
        self.routes = routes
        self.requested: list[str] = []
        self.closed = False

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.requested.append(url)
        body = self.routes.get(url)
        if body is None:
            raise requests.ConnectionError(f"no route to {url}")
        if isinstance(body, int):
            return FakeResponse(body)
        return FakeResponse(200, body)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def library() -> list[LibraryEntry]:
    """Small library mixing title, description and tracker duplicates."""
    return [
        LibraryEntry(id=1, title="One Piece", description="Pirates and treasure."),
        LibraryEntry(id=2, title="ONE PIECE!", description=None),
        LibraryEntry(
            id=3,
            title="Berserk",
            description="Also known as: Kenpuu Denki Berserk",
            tracker_bindings=(TrackerBinding(1, "22", "Berserk"),),
        ),
        LibraryEntry(
            id=4,
            title="Kenpuu Denki Berserk",
            tracker_bindings=(TrackerBinding(1, "22", "Berserk"),),
        ),
        LibraryEntry(id=5, title="Vagabond", description="A samurai story."),
        LibraryEntry(
            id=6,
            title="Swordsman Vagabond",
            tracker_bindings=(TrackerBinding(2, "99", None),),
        ),
        LibraryEntry(id=7, title="", description="Untitled import"),
    ]


@pytest.fixture
def smooth_png() -> bytes:
    return png_bytes(smooth_array())


@pytest.fixture
def shifted_png() -> bytes:
    return png_bytes(smooth_array(shift=1))


@pytest.fixture
def inverted_png() -> bytes:
    return png_bytes(255 - smooth_array())


@pytest.fixture
def thread_executor() -> Iterator[ThreadPoolExecutor]:
    executor = ThreadPoolExecutor(max_workers=6)
    yield executor
    executor.shutdown(wait=True)


@pytest.fixture
def fake_session() -> type[FakeSession]:
    return FakeSession

"""Configuration models with sensible defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_BACKEND_BASE = "http://localhost:4567"
DEFAULT_IMAGE_THRESHOLD = 23


class TitleStrategy(str, Enum):
    """Which title matcher backs the alternative-titles signal."""

    ALTERNATIVE_TITLES = "alternative-titles"
    EXACT = "exact"
    FUZZY = "fuzzy"
    SUBSTRING = "substring"


class Signal(str, Enum):
    TITLE = "title"
    ALTERNATIVE_TITLES = "alternative-titles"
    TRACKER = "tracker"
    IMAGE_HASH = "image-hash"


def _default_parallelism() -> int:
    return os.cpu_count() or 4


def _default_backend_base() -> str:
    return os.environ.get("LIBDUPES_API_URL") or DEFAULT_BACKEND_BASE


@dataclass(slots=True)
class DetectionOptions:
    check_alternative_titles: bool = False
    check_tracked_by_same_tracker: bool = False
    check_image_hashes: bool = False
    title_strategy: TitleStrategy = TitleStrategy.ALTERNATIVE_TITLES
    threshold: float = DEFAULT_IMAGE_THRESHOLD
    debug: bool = False

    def active_signals(self) -> list[Signal]:
        signals = []
        if self.check_alternative_titles:
            signals.append(Signal.ALTERNATIVE_TITLES)
        if self.check_tracked_by_same_tracker:
            signals.append(Signal.TRACKER)
        if self.check_image_hashes:
            signals.append(Signal.IMAGE_HASH)
        return signals

    @classmethod
    def from_message(cls, data: dict[str, Any]) -> DetectionOptions:
        threshold = data.get("threshold")
        return cls(
            check_alternative_titles=bool(data.get("checkAlternativeTitles")),
            check_tracked_by_same_tracker=bool(data.get("checkTrackedBySameTracker")),
            check_image_hashes=bool(data.get("checkImageHashes")),
            title_strategy=TitleStrategy(data.get("titleStrategy", TitleStrategy.ALTERNATIVE_TITLES)),
            threshold=threshold if isinstance(threshold, (int, float)) else DEFAULT_IMAGE_THRESHOLD,
            debug=bool(data.get("debug")),
        )


@dataclass(slots=True)
class EngineConfig:
    parallelism: int = field(default_factory=_default_parallelism)
    chunk_size: int = 200
    # Seconds per worker dispatch; None waits forever
    worker_timeout: float | None = 300.0


@dataclass(slots=True)
class ImageHashSettings:
    threshold: float = DEFAULT_IMAGE_THRESHOLD
    debug: bool = False
    backend_base: str = field(default_factory=_default_backend_base)
    fetch_timeout: float = 15.0
    concurrency: int = field(default_factory=lambda: max(2, _default_parallelism() - 1))
    max_debug_samples: int = 200

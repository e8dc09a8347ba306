"""Detection orchestrator: dispatches signals to workers and merges their groups."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from libdupes.core.descriptions import chunk_ranges, merge_chunk_results
from libdupes.core.images import summarize_distances
from libdupes.core.merge import merge_duplicate_maps
from libdupes.core.normalizer import normalize
from libdupes.models.config import (
    DetectionOptions,
    EngineConfig,
    ImageHashSettings,
    Signal,
    TitleStrategy,
)
from libdupes.models.entry import DebugSample, DuplicateGroupMap, LibraryEntry
from libdupes.pipeline.queue import BoundedTaskQueue
from libdupes.pipeline.signals import CancellationToken, worker_init
from libdupes.pipeline.workers import (
    description_chunk_worker,
    from_index_groups,
    image_hash_worker,
    title_worker,
    tracker_worker,
)

logger = logging.getLogger(__name__)


class DetectionCancelled(Exception):
    """Raised by :meth:`DuplicateDetector.detect` when its token is cancelled."""


@dataclass(slots=True)
class DetectionResult:
    groups: DuplicateGroupMap = field(default_factory=dict)
    signals: list[Signal] = field(default_factory=list)
    merged: bool = False
    debug_samples: list[DebugSample] | None = None
    threshold_used: float | None = None
    failed_workers: list[str] = field(default_factory=list)

    def to_message(self) -> dict[str, Any]:
        """Output message: ``{label: [ids]}``, or the debug envelope around it."""
        result = {label: [m.id for m in members] for label, members in self.groups.items()}
        if self.debug_samples is None:
            return result
        return {
            "result": result,
            "debugSamples": [s.to_dict() for s in self.debug_samples],
            "thresholdUsed": self.threshold_used,
        }


class DuplicateDetector:
    """Runs the enabled signals on an executor and combines their results.

    * no signal enabled: normalized-title grouping, returned as is
    * one signal enabled: that signal alone, returned as is
    * several: normalized titles plus every enabled signal, merged into
      connected components

    The executor and the queue bounding description chunks are owned by the
    caller, so tests can inject a thread pool or a smaller queue.
    """

    def __init__(
        self,
        executor: Executor,
        config: EngineConfig | None = None,
        queue: BoundedTaskQueue | None = None,
        image_settings: ImageHashSettings | None = None,
    ) -> None:
        self.executor = executor
        self.config = config or EngineConfig()
        self.queue = queue or BoundedTaskQueue.for_parallelism(self.config.parallelism)
        self.image_settings = image_settings or ImageHashSettings()
        self.stalled = False
        self._inflight: set[asyncio.Future[Any]] = set()

    async def detect(
        self,
        entries: Sequence[LibraryEntry],
        options: DetectionOptions | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> DetectionResult:
        options = options or DetectionOptions()
        if cancel_token is None:
            return await self._detect(list(entries), options)
        if cancel_token.is_cancelled:
            raise DetectionCancelled(f"Duplicate detection cancelled ({cancel_token.reason})")

        main = asyncio.ensure_future(self._detect(list(entries), options))
        cancelled = asyncio.ensure_future(cancel_token.wait())
        try:
            await asyncio.wait({main, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
        if main.done():
            return main.result()
        self._cancel_all(main)
        raise DetectionCancelled(f"Duplicate detection cancelled ({cancel_token.reason})")

    def _cancel_all(self, main: asyncio.Future[Any]) -> None:
        dropped = self.queue.cancel_pending()
        for fut in list(self._inflight):
            fut.cancel()
        main.cancel()
        logger.info("Cancelled detection: %d queued chunks dropped", dropped)

    async def _detect(self, entries: list[LibraryEntry], options: DetectionOptions) -> DetectionResult:
        signals = options.active_signals()
        result = DetectionResult(signals=signals)
        logger.info(
            "Detecting duplicates in %d entries (signals: %s)",
            len(entries),
            ", ".join(s.value for s in signals) or "title",
        )

        if not signals:
            result.signals = [Signal.TITLE]
            result.groups = await self._title_groups(entries, result)
            return result

        runners: list[Callable[[], Any]] = []
        if len(signals) > 1:
            result.signals = [Signal.TITLE, *signals]
        for signal in result.signals:
            runners.append(self._runner_for(signal, entries, options, result))

        maps = await asyncio.gather(*(run() for run in runners))
        if len(maps) == 1:
            result.groups = maps[0]
        else:
            result.groups = merge_duplicate_maps(entries, maps)
            result.merged = True
        logger.info("Found %d duplicate groups", len(result.groups))
        return result

    def _runner_for(
        self,
        signal: Signal,
        entries: list[LibraryEntry],
        options: DetectionOptions,
        result: DetectionResult,
    ) -> Callable[[], Any]:
        if signal is Signal.TITLE:
            return lambda: self._title_groups(entries, result)
        elif signal is Signal.ALTERNATIVE_TITLES:
            return lambda: self._description_groups(entries, options.title_strategy, result)
        elif signal is Signal.TRACKER:
            return lambda: self._tracker_groups(entries, result)
        elif signal is Signal.IMAGE_HASH:
            return lambda: self._image_groups(entries, options, result)
        raise ValueError(f"Unknown signal: {signal!r}")

    async def _dispatch(self, name: str, result: DetectionResult, fn: Any, *args: Any) -> Any:
        """Run ``fn`` on the executor; failures and timeouts yield None."""
        loop = asyncio.get_running_loop()
        fut = loop.run_in_executor(self.executor, fn, *args)
        self._inflight.add(fut)
        fut.add_done_callback(self._inflight.discard)
        try:
            return await asyncio.wait_for(fut, self.config.worker_timeout)
        except asyncio.TimeoutError:
            logger.warning("%s worker timed out after %ss", name, self.config.worker_timeout)
            self.stalled = True
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s worker failed", name)
        result.failed_workers.append(name)
        return None

    async def _title_groups(
        self, entries: list[LibraryEntry], result: DetectionResult
    ) -> DuplicateGroupMap:
        groups = await self._dispatch("title", result, title_worker, entries)
        return from_index_groups(entries, groups)

    async def _description_groups(
        self,
        entries: list[LibraryEntry],
        strategy: TitleStrategy,
        result: DetectionResult,
    ) -> DuplicateGroupMap:
        tasks = []
        for start, stop in chunk_ranges(len(entries), self.config.chunk_size):
            name = f"description[{start}:{stop}]"
            tasks.append(
                self.queue.enqueue(
                    str(start),
                    lambda name=name, start=start, stop=stop: self._dispatch(
                        name, result, description_chunk_worker, entries, start, stop, strategy
                    ),
                )
            )
        chunk_results: Iterable[Any] = await asyncio.gather(*(t.result for t in tasks))
        key = normalize if strategy is TitleStrategy.ALTERNATIVE_TITLES else str
        return merge_chunk_results((from_index_groups(entries, r) for r in chunk_results), key=key)

    async def _tracker_groups(
        self, entries: list[LibraryEntry], result: DetectionResult
    ) -> DuplicateGroupMap:
        groups = await self._dispatch("tracker", result, tracker_worker, entries)
        return from_index_groups(entries, groups)

    async def _image_groups(
        self,
        entries: list[LibraryEntry],
        options: DetectionOptions,
        result: DetectionResult,
    ) -> DuplicateGroupMap:
        settings = dataclasses.replace(
            self.image_settings, threshold=options.threshold, debug=options.debug
        )
        message = await self._dispatch("image-hash", result, image_hash_worker, entries, settings)
        if message is None:
            return {}
        if options.debug:
            result.debug_samples = list(message.get("debugSamples", []))
            result.threshold_used = message.get("thresholdUsed")
            logger.debug(
                "Image-hash distances: %s (threshold %s)",
                summarize_distances(result.debug_samples),
                result.threshold_used,
            )
        return from_index_groups(entries, message.get("result"))


def run_detection(
    entries: Sequence[LibraryEntry],
    options: DetectionOptions | None = None,
    config: EngineConfig | None = None,
    image_settings: ImageHashSettings | None = None,
    executor: Executor | None = None,
    cancel_token: CancellationToken | None = None,
) -> DetectionResult:
    """Run one detection pass synchronously.

    Without an ``executor`` a process pool sized for the description chunks
    plus the tracker and image workers is created and torn down here.
    """
    config = config or EngineConfig()
    queue = BoundedTaskQueue.for_parallelism(config.parallelism)
    own_executor = executor is None
    if executor is None:
        executor = ProcessPoolExecutor(max_workers=queue.concurrency + 2, initializer=worker_init)

    detector = DuplicateDetector(executor, config, queue, image_settings)
    cancelled = False
    try:
        return asyncio.run(detector.detect(entries, options, cancel_token))
    except DetectionCancelled:
        cancelled = True
        raise
    finally:
        if own_executor:
            executor.shutdown(wait=not (cancelled or detector.stalled), cancel_futures=True)

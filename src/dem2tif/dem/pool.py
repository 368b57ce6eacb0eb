"""Bounded worker pool that parses many tile texts in parallel."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from dem2tif.dem.models import TileRecord
from dem2tif.dem.parser import parse_tile
from dem2tif.errors import IngestionCancelled, IngestionError

LOGGER = logging.getLogger("dem2tif.pool")

DEFAULT_POOL_SIZE = 4


@dataclass(frozen=True)
class ParseOutcome:
    """Result slot for one submitted tile text."""

    index: int
    record: TileRecord | None
    error: Exception | None


def _coerce_pool_size(pool_size: int, task_count: int) -> int:
    """Clamp the requested worker count to the number of tasks."""
    jobs = int(pool_size)
    if jobs < 1:
        raise ValueError("pool_size must be >= 1")
    return max(1, min(jobs, task_count))


class _IngestionJob:
    """Shared state for one parse_all call.

    Workers share only the read-only texts, the next-index counter and the
    stop flag. Each result slot is written by the worker that claimed it.
    """

    def __init__(
        self,
        texts: Sequence[str],
        sea_level_as_zero: bool,
        cancel_event: threading.Event | None,
    ) -> None:
        self.texts = texts
        self.sea_level_as_zero = sea_level_as_zero
        self.cancel_event = cancel_event
        self.stop = threading.Event()
        self.slots: list[ParseOutcome | None] = [None] * len(texts)
        self._next_index = 0
        self._lock = threading.Lock()

    def _stopping(self) -> bool:
        if self.stop.is_set():
            return True
        return self.cancel_event is not None and self.cancel_event.is_set()

    def claim(self) -> int | None:
        """Atomically claim the next unparsed index."""
        with self._lock:
            if self._next_index >= len(self.texts):
                return None
            index = self._next_index
            self._next_index += 1
            return index

    def run_worker(self) -> int:
        """Parse claimed texts until none remain or a stop is requested."""
        parsed = 0
        while not self._stopping():
            index = self.claim()
            if index is None:
                break
            try:
                record = parse_tile(self.texts[index], self.sea_level_as_zero)
            except Exception as exc:
                LOGGER.debug("Task %s failed: %s", index, exc)
                self.slots[index] = ParseOutcome(index, None, exc)
            else:
                self.slots[index] = ParseOutcome(index, record, None)
            parsed += 1
        return parsed

    def collect(self) -> list[TileRecord]:
        """Return records in submission order or raise the aggregate error."""
        missing = [index for index, slot in enumerate(self.slots) if slot is None]
        if missing:
            done = len(self.slots) - len(missing)
            raise IngestionCancelled(
                f"Ingestion cancelled after {done} of {len(self.slots)} tiles"
            )
        failures = [
            (slot.index, slot.error)
            for slot in self.slots
            if slot is not None and slot.error is not None
        ]
        if failures:
            raise IngestionError(failures)
        return [
            slot.record for slot in self.slots if slot is not None and slot.record is not None
        ]


def parse_all(
    texts: Sequence[str],
    sea_level_as_zero: bool = False,
    pool_size: int = DEFAULT_POOL_SIZE,
    *,
    cancel_event: threading.Event | None = None,
) -> list[TileRecord]:
    """Parse tile texts with a bounded thread pool.

    Element ``i`` of the result corresponds to ``texts[i]`` regardless of
    completion order. Any failed tile fails the whole call.
    """
    texts = list(texts)
    if not texts:
        return []
    workers = _coerce_pool_size(pool_size, len(texts))
    job = _IngestionJob(texts, sea_level_as_zero, cancel_event)
    LOGGER.info("Parsing %s tile(s) with %s worker(s)", len(texts), workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dem2tif-parse") as executor:
        futures = [executor.submit(job.run_worker) for _ in range(workers)]
        try:
            for future in futures:
                future.result()
        except BaseException:
            job.stop.set()
            raise
    return job.collect()


async def parse_all_async(
    texts: Sequence[str],
    sea_level_as_zero: bool = False,
    pool_size: int = DEFAULT_POOL_SIZE,
    *,
    cancel_event: threading.Event | None = None,
) -> list[TileRecord]:
    """Asyncio variant of parse_all.

    Cancelling the awaiting task stops workers from claiming new tiles;
    parses already running are left to finish in the background.
    """
    texts = list(texts)
    if not texts:
        return []
    workers = _coerce_pool_size(pool_size, len(texts))
    job = _IngestionJob(texts, sea_level_as_zero, cancel_event)
    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dem2tif-parse")
    LOGGER.info("Parsing %s tile(s) with %s worker(s)", len(texts), workers)
    try:
        pending = [loop.run_in_executor(executor, job.run_worker) for _ in range(workers)]
        try:
            await asyncio.gather(*pending)
        except BaseException:
            job.stop.set()
            raise
    finally:
        executor.shutdown(wait=False)
    return job.collect()

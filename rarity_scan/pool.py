"""Concurrent token fetching: job queue -> worker threads -> single aggregator."""

from __future__ import annotations

import logging
import queue
import threading
import time

from rarity_scan.aggregator import Aggregator, CollectionStats
from rarity_scan.models import CollectionSpec, ConfigError, Token
from rarity_scan.source import FetchError, MetadataSource

log = logging.getLogger(__name__)

DEFAULT_WORKERS = 5
POLL_INTERVAL = 0.1

_DONE = object()


class FetchPool:
    """Fixed-size pool of fetch workers feeding one aggregating consumer.

    The job queue holds a single index, so dispatching blocks until a
    worker is free to take the next one. Fetch failures are logged and
    dropped; the aggregator later fills those slots with empty tokens.
    """

    def __init__(self, source: MetadataSource, workers: int = DEFAULT_WORKERS, log: logging.Logger = log):
        if workers < 1:
            raise ConfigError(f"workers must be at least 1, got {workers}")
        self.source = source
        self.workers = workers
        self.log = log

    def run(self, spec: CollectionSpec, aggregator: Aggregator, stop: threading.Event | None = None) -> int:
        """Fetch every token of *spec* into *aggregator*. Returns the number of jobs dispatched.

        Setting *stop* (or a KeyboardInterrupt while dispatching) ends job
        distribution early; fetches already handed to a worker still
        complete and are aggregated.
        """
        stop = stop if stop is not None else threading.Event()
        jobs: queue.Queue = queue.Queue(maxsize=1)
        results: queue.Queue = queue.Queue(maxsize=self.workers)
        errors: list[BaseException] = []
        t0 = time.monotonic()

        consumer = threading.Thread(
            target=self._consume, args=(results, aggregator, errors), name="aggregator", daemon=True
        )
        consumer.start()
        threads = [
            threading.Thread(
                target=self._work,
                args=(n, jobs, results, self.log.getChild(f"worker-{n}")),
                name=f"worker-{n}",
                daemon=True,
            )
            for n in range(self.workers)
        ]
        for t in threads:
            t.start()

        try:
            dispatched = self._dispatch(spec.count, jobs, stop)
        finally:
            for _ in threads:
                jobs.put(None)
            for t in threads:
                t.join()
            results.put(_DONE)
            consumer.join()

        self.log.info(
            "[POOL DONE] dispatched=%d/%d aggregated=%d (%.1fs)",
            dispatched, spec.count, aggregator.recorded, time.monotonic() - t0,
        )
        if errors:
            raise errors[0]
        return dispatched

    def _dispatch(self, count: int, jobs: queue.Queue, stop: threading.Event) -> int:
        index = 0
        try:
            for index in range(count):
                while True:
                    if stop.is_set():
                        self.log.warning("Stop requested after %d/%d jobs", index, count)
                        return index
                    try:
                        jobs.put(index, timeout=POLL_INTERVAL)
                        break
                    except queue.Full:
                        continue
        except KeyboardInterrupt:
            self.log.warning("Interrupted after %d/%d jobs, waiting for in-flight fetches", index, count)
            stop.set()
            return index
        return count

    def _work(self, n: int, jobs: queue.Queue, results: queue.Queue, wlog: logging.Logger) -> None:
        while True:
            index = jobs.get()
            if index is None:
                return
            try:
                attrs = self.source.fetch(index)
            except FetchError as exc:
                wlog.warning("[FETCH FAIL] [worker-%d] %s", n, exc)
                continue
            except Exception:
                wlog.exception("[FETCH FAIL] [worker-%d] token %d: unexpected error", n, index)
                continue
            wlog.info("[worker-%d] fetched token %d", n, index)
            results.put(Token(id=index, attrs=attrs))

    def _consume(self, results: queue.Queue, aggregator: Aggregator, errors: list[BaseException]) -> None:
        while True:
            token = results.get()
            if token is _DONE:
                return
            try:
                aggregator.record(token)
            except Exception as exc:
                # keep draining so workers never block on a full results queue
                self.log.exception("Failed to aggregate token %d", token.id)
                errors.append(exc)


def fetch_collection(
    spec: CollectionSpec,
    source: MetadataSource,
    workers: int = DEFAULT_WORKERS,
    stop: threading.Event | None = None,
    per_category: bool = False,
) -> CollectionStats:
    aggregator = Aggregator(spec.count, per_category=per_category)
    FetchPool(source, workers=workers).run(spec, aggregator, stop=stop)
    return aggregator.finalize()

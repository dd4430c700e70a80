"""
Background Tasks - Bounded, best-effort work queue.

BackgroundQueue runs submitted callables on daemon worker threads. It exists
so that work which must never block or fail the caller (usage recording)
has a type that enforces that contract:

- ``submit`` never blocks and never raises; a full queue drops the task
- task exceptions are logged and swallowed, never retried
- ``flush`` waits for queued work (tests and shutdown)
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class _Task:
    name: str
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)


_STOP = object()


class BackgroundQueue:
    """
    Fire-and-forget task queue with a fixed number of worker threads.

    Usage:
        tasks = BackgroundQueue(maxsize=256, workers=2)
        tasks.submit("record-usage", ledger.record, media_id, user_id, filter_id)
    """

    def __init__(self, maxsize: int = 256, workers: int = 2, name: str = "background"):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.name = name
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._lock = threading.Lock()
        self.dropped = 0
        self.failed = 0
        self.completed = 0

        self._threads = [
            threading.Thread(target=self._worker, name=f"{name}-{i}", daemon=True)
            for i in range(workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.info("Started %s queue with %d worker(s)", name, workers)

    def submit(self, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """
        Enqueue a task without blocking.

        Returns:
            True if queued, False if dropped (queue full or closed)
        """
        with self._lock:
            if self._closed:
                self.dropped += 1
                logger.warning("%s queue closed; dropping task %s", self.name, name)
                return False
            try:
                self._queue.put_nowait(_Task(name, func, args, kwargs))
            except queue.Full:
                self.dropped += 1
                logger.warning("%s queue full; dropping task %s", self.name, name)
                return False
        return True

    def _worker(self) -> None:
        while True:
            task = self._queue.get()
            try:
                if task is _STOP:
                    return
                self._run(task)
            finally:
                self._queue.task_done()

    def _run(self, task: _Task) -> None:
        try:
            task.func(*task.args, **task.kwargs)
        except Exception:
            with self._lock:
                self.failed += 1
            logger.exception("Background task %s failed", task.name)
        else:
            with self._lock:
                self.completed += 1
            logger.debug(
                "Background task %s finished after %.3fs",
                task.name,
                time.time() - task.created_at,
            )

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every queued task has run.

        Returns:
            True if the queue drained, False on timeout
        """
        if timeout is None:
            self._queue.join()
            return True

        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.005)
        return True

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop accepting work, drain the queue and stop workers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join(timeout=timeout)
        logger.info("Stopped %s queue", self.name)

"""
Background Request Worker
=========================

Runs backend calls on one persistent daemon thread so the render thread never
waits on the network. Each submission returns a `concurrent.futures.Future`
that the caller can attach a completion callback to.

Key Features:
-------------
- Single Persistent Thread: one worker per screen, FIFO order.
- Replaceable Tasks: `submit_replacing()` supersedes a pending task with the
  same id; the superseded future is cancelled and never runs.
- Graceful Shutdown: pending futures are cancelled and the thread is joined.

Usage:
------
    >>> worker = BackgroundWorker(name="PatientLoader")
    >>> future = worker.submit_replacing("detail", api.patients.get, 42)
    >>> future.add_done_callback(on_loaded)
    >>> worker.shutdown()

Author: ClinXR Project
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional


class BackgroundWorker:
    """
    Single-thread task executor with replaceable submissions.

    Attributes:
        name: Identifier used in log messages and the thread name.
    """

    def __init__(self, name: str = "BackgroundWorker"):
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._queue: queue.Queue = queue.Queue()
        self._running = True
        self._lock = threading.Lock()

        # task_id -> future of the latest pending submission with that id
        self._pending_replaceable: Dict[str, Future] = {}

        self._thread = threading.Thread(
            target=self._process_queue,
            name=f"{name}-Thread",
            daemon=True
        )
        self._thread.start()
        self.logger.debug(f"BackgroundWorker '{name}' started")

    def submit(self, task: Callable, *args, **kwargs) -> Future:
        """Queue `task(*args, **kwargs)` and return its future."""
        return self._enqueue(None, task, args, kwargs)

    def submit_replacing(self, task_id: str, task: Callable, *args, **kwargs) -> Future:
        """
        Queue a task that supersedes any not-yet-started task with `task_id`.

        A task that is already running is not interrupted; only the queued one
        is cancelled.
        """
        return self._enqueue(task_id, task, args, kwargs)

    def _enqueue(self, task_id: Optional[str], task: Callable, args, kwargs) -> Future:
        future: Future = Future()
        if not self._running:
            self.logger.warning(f"Worker '{self.name}' is shut down, ignoring task submission")
            future.cancel()
            return future

        if task_id is not None:
            with self._lock:
                previous = self._pending_replaceable.get(task_id)
                self._pending_replaceable[task_id] = future
            if previous is not None and previous.cancel():
                self.logger.debug(f"Worker '{self.name}' replaced pending task '{task_id}'")

        self._queue.put((task_id, future, task, args, kwargs))
        return future

    def join(self) -> None:
        """Block until every queued task has been processed."""
        self._queue.join()

    def shutdown(self, timeout: float = 2.0) -> None:
        """Cancel pending work, stop the thread and wait for it."""
        if not self._running:
            return

        self.logger.debug(f"Worker '{self.name}' shutting down...")
        self._running = False

        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            item[1].cancel()
            self._queue.task_done()

        self._queue.put(None)
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                self.logger.warning(f"Worker '{self.name}' thread did not terminate within {timeout}s")

    def _process_queue(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                self._queue.task_done()
                break

            task_id, future, task, args, kwargs = item
            try:
                if task_id is not None:
                    with self._lock:
                        if self._pending_replaceable.get(task_id) is future:
                            del self._pending_replaceable[task_id]

                if not future.set_running_or_notify_cancel():
                    continue

                try:
                    future.set_result(task(*args, **kwargs))
                except Exception as e:
                    self.logger.debug(f"Worker '{self.name}' task failed: {type(e).__name__}: {e}")
                    future.set_exception(e)
            finally:
                self._queue.task_done()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

"""
Bounded background worker pool for document ingestion.

Up to `max_workers` tasks run at once and up to `queue_capacity` more may wait.
Past that the submitting thread runs the task itself, which slows the
producer down instead of dropping work or queueing without bound.
"""
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Set

from .logging_config import logger


class BoundedWorkerPool:
    def __init__(
        self,
        max_workers: int = 10,
        queue_capacity: int = 100,
        shutdown_grace_seconds: float = 30.0,
        thread_name_prefix: str = "ingest",
    ):
        self.max_workers = max_workers
        self.queue_capacity = queue_capacity
        self.shutdown_grace_seconds = shutdown_grace_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._slots = threading.BoundedSemaphore(max_workers + queue_capacity)
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False
        logger.info(
            "Worker pool configured",
            max_workers=max_workers,
            queue_capacity=queue_capacity,
            shutdown_grace_seconds=shutdown_grace_seconds,
        )

    @classmethod
    def from_settings(cls, settings) -> "BoundedWorkerPool":
        return cls(
            max_workers=settings.ingest_max_workers,
            queue_capacity=settings.ingest_queue_capacity,
            shutdown_grace_seconds=settings.ingest_shutdown_grace_seconds,
        )

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """Run fn in the pool, or in the calling thread when the pool is saturated."""
        if self._closed:
            raise RuntimeError("Worker pool is shut down")

        if not self._slots.acquire(blocking=False):
            logger.warning("Worker pool saturated, running task in caller thread", task=getattr(fn, "__name__", repr(fn)))
            return self._run_in_caller(fn, *args, **kwargs)

        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except RuntimeError:
            self._slots.release()
            raise

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    @staticmethod
    def _run_in_caller(fn: Callable, *args, **kwargs) -> Future:
        future: Future = Future()
        future.set_running_or_notify_cancel()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self) -> None:
        """Give pending tasks the grace period, then tear the pool down."""
        self._closed = True
        with self._lock:
            pending = list(self._pending)

        if pending:
            logger.info("Waiting for pending ingestion tasks", pending=len(pending))
            _, not_done = wait(pending, timeout=self.shutdown_grace_seconds)
            if not_done:
                logger.warning("Ingestion tasks still running after grace period", remaining=len(not_done))

        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("Worker pool shut down")

"""Tests for the bounded ingestion worker pool."""

import threading
import time

import pytest

from ragdesk.config import Settings
from ragdesk.workers import BoundedWorkerPool


@pytest.fixture
def pool():
    pool = BoundedWorkerPool(max_workers=1, queue_capacity=1, shutdown_grace_seconds=5)
    yield pool
    pool.shutdown()


class TestBoundedWorkerPool:
    def test_runs_task_in_worker_thread(self, pool) -> None:
        future = pool.submit(lambda: threading.current_thread().name)
        assert future.result(timeout=5).startswith("ingest")

    def test_saturated_pool_runs_in_caller(self, pool) -> None:
        """With one worker busy and one task queued, the third runs in the submitting thread."""
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(5)

        pool.submit(blocker)
        started.wait(5)
        pool.submit(release.wait, 5)

        caller = threading.current_thread().name
        future = pool.submit(lambda: threading.current_thread().name)

        assert future.done()
        assert future.result() == caller
        release.set()

    def test_exceptions_are_kept_on_the_future(self, pool) -> None:
        def boom():
            raise ValueError("bad")

        future = pool.submit(boom)
        with pytest.raises(ValueError):
            future.result(timeout=5)

    def test_slots_are_released(self, pool) -> None:
        for _ in range(5):
            pool.submit(lambda: None).result(timeout=5)

        # done callbacks run just after result() unblocks
        deadline = time.monotonic() + 5
        while pool.pending and time.monotonic() < deadline:
            time.sleep(0.01)
        assert pool.pending == 0

    def test_shutdown_waits_for_pending_work(self) -> None:
        pool = BoundedWorkerPool(max_workers=2, queue_capacity=2, shutdown_grace_seconds=5)
        done = []
        gate = threading.Event()

        def task():
            gate.wait(1)
            done.append(True)

        pool.submit(task)
        gate.set()
        pool.shutdown()

        assert done == [True]

    def test_submit_after_shutdown_rejected(self) -> None:
        pool = BoundedWorkerPool(max_workers=1, queue_capacity=0)
        pool.shutdown()
        with pytest.raises(RuntimeError):
            pool.submit(lambda: None)

    def test_from_settings(self) -> None:
        pool = BoundedWorkerPool.from_settings(
            Settings(ingest_max_workers=3, ingest_queue_capacity=7, ingest_shutdown_grace_seconds=1.5)
        )
        try:
            assert pool.max_workers == 3
            assert pool.queue_capacity == 7
            assert pool.shutdown_grace_seconds == 1.5
        finally:
            pool.shutdown()

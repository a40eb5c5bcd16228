"""
=============================================================================
BOUNDED WORKER POOL
=============================================================================

A fixed number of worker threads pulling connection tasks from one bounded
queue. HTTPServer uses it so a slow client ties up one worker instead of
the accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          ThreadPool                                  │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ──submit()──►  ┌──────────────────────────┐           │
    │                              │  queue.Queue(maxsize=N)  │           │
    │       full? submit()         │  [Task][Task][Task]...   │           │
    │       returns False          └────────────┬─────────────┘           │
    │       → caller sends 503                  │ get()                   │
    │                              ┌────────────┼─────────────┐           │
    │                              ▼            ▼             ▼           │
    │                          Worker-0     Worker-1  ...  Worker-K       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The pool never grows: `workers` threads are started by start() and live
until shutdown(). Back-pressure is the queue bound, not extra threads.

=============================================================================
POISON PILLS
=============================================================================

shutdown() puts one None per worker on the queue. A worker that takes
None leaves its loop; tasks queued before the pills still run first.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Dict, List, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states."""
    IDLE = "idle"        # Waiting for a task
    BUSY = "busy"        # Executing a task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call.

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was queued, for queue-wait logging.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the shared queue.

        1. Wait for a task (wakes every idle_timeout to check shutdown)
        2. None → exit
        3. Run the task; an exception is logged and the worker carries on
        4. task_done(), back to 1
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        # daemon=True: a stuck worker never keeps the process alive
        super().__init__(name=f"httpkit-worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {waited:.3f}s)"
            )
        except Exception as e:
            # One bad task must not take the worker down with it
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop after its current task."""
        self._shutdown.set()


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

        pool = ThreadPool(workers=4, queue_size=64)
        pool.start()

        if not pool.submit(handle_connection, args=(conn,)):
            reject(conn)                 # queue full

        pool.shutdown(wait=True)

    Args:
        workers: Number of worker threads.
        queue_size: Maximum number of tasks waiting for a worker.
        idle_timeout: How often an idle worker wakes to check for shutdown.
    """

    def __init__(self, workers: int = 4, queue_size: int = 64, idle_timeout: float = 1.0):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if queue_size < 1:
            raise ValueError(f"queue_size must be >= 1, got {queue_size}")

        self.workers = workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self) -> None:
        """Start the worker threads. Calling it again is a no-op."""
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.workers} workers")
            # Fresh queue: a previous shutdown may have left pills behind
            self._task_queue = queue.Queue(maxsize=self.max_queue_size)
            for worker_id in range(self.workers):
                worker = Worker(self._task_queue, worker_id, idle_timeout=self.idle_timeout)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutdown = False

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue a task without blocking.

        Returns:
            True if the task was queued, False if the queue is full.

        Raises:
            RuntimeError: The pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})
        try:
            self._task_queue.put(task, block=False)
        except queue.Full:
            return False
        return True

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish before stopping the workers.
                  With wait=False, tasks still in the queue are dropped.
            timeout: Upper bound, in seconds, on waiting for the queue to
                     drain. None waits as long as it takes.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down thread pool...")

        if wait:
            if timeout is None:
                self._task_queue.join()
            else:
                deadline = time.time() + timeout
                while self._task_queue.unfinished_tasks and time.time() < deadline:
                    time.sleep(0.05)
                if self._task_queue.unfinished_tasks:
                    logger.warning("Thread pool shutdown timed out with tasks still pending")
        else:
            self._drain_queue()

        for worker in self._workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass  # The shutdown flag stops the worker on its next poll

        join_timeout = 2.0 if timeout is None else max(timeout, 0.1)
        for worker in self._workers:
            worker.join(timeout=join_timeout)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    def _drain_queue(self) -> None:
        """Drop every queued task."""
        dropped = 0
        while True:
            try:
                task = self._task_queue.get_nowait()
            except queue.Empty:
                break
            self._task_queue.task_done()
            if task is not None:
                dropped += 1
        if dropped:
            logger.warning(f"Dropped {dropped} queued tasks on shutdown")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queue_size(self) -> int:
        """Number of tasks waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging and tests."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self._task_queue.qsize(),
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }

    def __enter__(self) -> "ThreadPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown(wait=True)
        return False

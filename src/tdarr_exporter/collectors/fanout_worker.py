"""
Fan-out worker thread.

A FetchWorker takes FetchTask objects from the task queue, requests the
library's breakdown and puts one FetchResult per task on the result queue. It
exits when it takes the stop sentinel.
"""

import logging
import queue
import threading
import time
from typing import Callable, Optional

from ..models.fanout import FetchResult, FetchTask
from ..models.stats import GroupInfo, GroupStat

logger = logging.getLogger(__name__)

# Queued once per worker after the last task.
STOP_SENTINEL = None

FetchFunc = Callable[[GroupInfo], GroupStat]


class FetchWorker:
    """
    Worker thread executing per-library fetches.

    Failures are reported through FetchResult.error; the worker keeps consuming
    tasks after a failed fetch.
    """

    def __init__(
        self,
        worker_id: int,
        task_queue: "queue.Queue[Optional[FetchTask]]",
        result_queue: "queue.Queue[FetchResult]",
        fetch: FetchFunc,
    ):
        """
        Initialize the worker.

        Args:
            worker_id: Worker identifier, used in thread names and logs
            task_queue: Queue of tasks, closed by one sentinel per worker
            result_queue: Queue receiving one result per task
            fetch: Callable fetching and normalizing one library
        """
        self.worker_id = worker_id
        self.task_queue = task_queue
        self.result_queue = result_queue
        self.fetch = fetch

        self.thread: Optional[threading.Thread] = None

        self.tasks_completed = 0
        self.tasks_failed = 0

    def start(self) -> None:
        self.thread = threading.Thread(
            target=self.fetch_loop,
            name=f"FetchWorker-{self.worker_id}",
            daemon=True
        )
        self.thread.start()
        logger.debug(f"FetchWorker {self.worker_id} started")

    def join(self, timeout: Optional[float] = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout=timeout)

    def fetch_loop(self) -> None:
        while True:
            task = self.task_queue.get()
            try:
                if task is STOP_SENTINEL:
                    break
                self.result_queue.put(self._execute(task))
            finally:
                self.task_queue.task_done()
        logger.debug(
            f"FetchWorker {self.worker_id} finished: "
            f"completed={self.tasks_completed}, failed={self.tasks_failed}"
        )

    def _execute(self, task: FetchTask) -> FetchResult:
        started = time.monotonic()
        result = FetchResult(index=task.index, group=task.group, worker_id=self.worker_id)
        try:
            result.group_stat = self.fetch(task.group)
            self.tasks_completed += 1
        except Exception as e:
            # Reported back to the pool, which logs and omits the library.
            result.error = e
            self.tasks_failed += 1
        result.duration = time.monotonic() - started
        return result

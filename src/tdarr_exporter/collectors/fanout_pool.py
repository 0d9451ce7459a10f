"""
Bounded fan-out of per-library statistics requests.

The pool starts ``min(max_concurrency, jobs)`` FetchWorker threads per call,
feeds them one task per library, closes the input side with one sentinel per
worker and joins every worker before reading the results.
"""

import logging
import queue
import threading
from typing import Any, Dict, List, Optional, Sequence

from ..client.request_client import RequestClient
from ..models.fanout import FanoutOutcome, FetchResult, FetchTask
from ..models.stats import GroupInfo, GroupStat, GroupStatsRequest
from .fanout_worker import STOP_SENTINEL, FetchWorker
from .normalizer import parse_group_stat

logger = logging.getLogger(__name__)


class GroupStatsFanout:
    """
    Fetches keyed per-library breakdowns with bounded concurrency.

    A failed library is logged and left out of the outcome; the other
    libraries are unaffected.
    """

    def __init__(self, request_client: RequestClient, group_stats_path: str, max_concurrency: int):
        """
        Initialize the fan-out.

        Args:
            request_client: Client used by every worker
            group_stats_path: Path of the per-library statistics endpoint
            max_concurrency: Maximum number of requests in flight
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.request_client = request_client
        self.group_stats_path = group_stats_path
        self.max_concurrency = max_concurrency

        self._stats_lock = threading.Lock()
        self.stats: Dict[str, Any] = {
            "tasks_submitted": 0,
            "tasks_completed": 0,
            "tasks_failed": 0,
        }

    def fetch_group(self, group: GroupInfo) -> GroupStat:
        """
        Fetch and normalize the breakdown of one library.

        Raises:
            TransportError: If the request fails
            DecodeError: If the body is not JSON
            ShapeError: If the body has no usable ``pieStats`` object
        """
        return self.request_client.post(
            self.group_stats_path,
            lambda data: parse_group_stat(data, group),
            GroupStatsRequest(library_id=group.wire_id),
        )

    def fetch(self, groups: Sequence[GroupInfo], include_all_groups: bool = True) -> FanoutOutcome:
        """
        Fetch the breakdown of every library in ``groups``.

        Args:
            groups: Library inventory
            include_all_groups: Also fetch the synthetic all-libraries entry,
                placed first in the output

        Returns:
            FanoutOutcome with successful stats in input order and the failures
        """
        jobs: List[GroupInfo] = list(groups)
        if include_all_groups:
            jobs.insert(0, GroupInfo.all_groups())
        if not jobs:
            return FanoutOutcome()

        task_queue: "queue.Queue[Optional[FetchTask]]" = queue.Queue()
        result_queue: "queue.Queue[FetchResult]" = queue.Queue()

        worker_count = max(1, min(self.max_concurrency, len(jobs)))
        workers = [
            FetchWorker(i, task_queue, result_queue, self.fetch_group)
            for i in range(worker_count)
        ]
        for worker in workers:
            worker.start()

        for index, group in enumerate(jobs):
            task_queue.put(FetchTask(index=index, group=group))
        for _ in workers:
            task_queue.put(STOP_SENTINEL)

        for worker in workers:
            worker.join()

        results: List[FetchResult] = []
        while True:
            try:
                results.append(result_queue.get_nowait())
            except queue.Empty:
                break
        results.sort(key=lambda r: r.index)

        outcome = FanoutOutcome()
        for result in results:
            if result.is_successful:
                outcome.group_stats.append(result.group_stat)
            else:
                logger.error(
                    f"Failed to fetch statistics for library "
                    f"'{result.group.group_name}' ({result.group.group_id}): {result.error}"
                )
                outcome.failures.append(result)

        self._update_stats(len(jobs), len(outcome.group_stats), len(outcome.failures))
        logger.debug(
            f"Fan-out finished: {len(jobs)} tasks, {worker_count} workers, "
            f"{len(outcome.failures)} failed"
        )
        return outcome

    def _update_stats(self, submitted: int, completed: int, failed: int) -> None:
        with self._stats_lock:
            self.stats["tasks_submitted"] += submitted
            self.stats["tasks_completed"] += completed
            self.stats["tasks_failed"] += failed

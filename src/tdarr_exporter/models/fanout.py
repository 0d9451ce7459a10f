"""
Fan-out data models.

The fan-out pool hands FetchTask objects to its worker threads and collects one
FetchResult per task. The records carry the task position so that results can be
put back into input order after the join barrier.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .stats import GroupInfo, GroupStat


@dataclass
class FetchTask:
    """
    One per-library breakdown request to be executed by a worker.

    Attributes:
        index: Position of the group in the input order
        group: Library whose breakdown is fetched
    """
    index: int
    group: GroupInfo


@dataclass
class FetchResult:
    """
    Outcome of one FetchTask.

    Attributes:
        index: Position of the group in the input order
        group: Library the result belongs to
        group_stat: Normalized statistics, None when the fetch failed
        error: Exception raised by the fetch, if any
        worker_id: Worker thread that executed the task
        duration: Time spent on the request, in seconds
    """
    index: int
    group: GroupInfo
    group_stat: Optional[GroupStat] = None
    error: Optional[BaseException] = None
    worker_id: int = 0
    duration: float = 0.0

    @property
    def is_successful(self) -> bool:
        return self.error is None and self.group_stat is not None


@dataclass
class FanoutOutcome:
    """Successful results in input order, plus the failed ones."""
    group_stats: List[GroupStat] = field(default_factory=list)
    failures: List[FetchResult] = field(default_factory=list)

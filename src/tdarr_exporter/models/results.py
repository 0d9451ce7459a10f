"""
Collection cycle result models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List

from ..validation.exceptions import ShapeError
from .nodes import NodeSnapshot
from .stats import AggregateStats, GroupStat


class CycleStage(Enum):
    """Stages of one collection cycle, in execution order."""
    FETCH_AGGREGATE = "fetch_aggregate"
    PARSE_SCORES = "parse_scores"
    CACHE_CHECK = "cache_check"
    LEGACY_PARSE = "legacy_parse"
    FETCH_NODES = "fetch_nodes"
    ASSEMBLE_METRICS = "assemble_metrics"


class GroupStatsSource(Enum):
    """Where the per-library statistics of a cycle came from."""
    LEGACY = "legacy"
    CACHE = "cache"
    FANOUT = "fanout"


@dataclass
class CycleSnapshot:
    """
    Everything a successful collection cycle produced.

    Attributes:
        aggregate: Server wide statistics document
        tdarr_score: Parsed transcode score, in percent
        health_check_score: Parsed health check score, in percent
        group_stats: Per-library statistics, synthetic all-libraries entry included
        nodes: Processing nodes with their workers
        shape_errors: Non fatal errors from the legacy row parser
        source: Where ``group_stats`` came from
    """
    aggregate: AggregateStats
    tdarr_score: float
    health_check_score: float
    group_stats: List[GroupStat] = field(default_factory=list)
    nodes: List[NodeSnapshot] = field(default_factory=list)
    shape_errors: List[ShapeError] = field(default_factory=list)
    source: GroupStatsSource = GroupStatsSource.FANOUT

    @property
    def cache_hit(self) -> bool:
        return self.source is GroupStatsSource.CACHE

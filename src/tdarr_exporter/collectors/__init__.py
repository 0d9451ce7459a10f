"""
Collection pipeline: normalizer, cache, fan-out pool, orchestrator and the
prometheus_client collector.
"""

from .cache import GroupStatsCache, ReadWriteLock
from .fanout_pool import GroupStatsFanout
from .fanout_worker import FetchWorker
from .metrics import METRIC_PREFIX, MetricAssembler
from .normalizer import (
    ALL_GROUPS_LABEL,
    KeyedShape,
    LegacyParseResult,
    LegacyShape,
    clean_status_label,
    normalize_group_id,
    parse_group_stat,
    parse_legacy_pies,
    resolve_wire_shape,
)
from .orchestrator import StatsOrchestrator
from .tdarr_collector import TdarrCollector

__all__ = [
    "ALL_GROUPS_LABEL",
    "METRIC_PREFIX",
    "FetchWorker",
    "GroupStatsCache",
    "GroupStatsFanout",
    "KeyedShape",
    "LegacyParseResult",
    "LegacyShape",
    "MetricAssembler",
    "ReadWriteLock",
    "StatsOrchestrator",
    "TdarrCollector",
    "clean_status_label",
    "normalize_group_id",
    "parse_group_stat",
    "parse_legacy_pies",
    "resolve_wire_shape",
]

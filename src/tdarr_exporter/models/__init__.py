"""
Data models for the exporter.

Configuration Models:
- Exporter configuration value object

Upstream Models:
- Request envelopes for the statistics endpoints
- Aggregate statistics, library inventory and per-library breakdowns
- Processing nodes and their workers

Pipeline Models:
- Fan-out tasks and results
- Cache entries and cycle snapshots

All models are dataclasses; upstream JSON is converted with ``from_dict``.
"""

# Configuration models
from .config import ExporterConfig

# Upstream models
from .stats import (
    ALL_GROUPS_ID,
    AggregateStats,
    CacheEntry,
    GroupInfo,
    GroupStat,
    GroupStatsRequest,
    PieSlice,
    StatsRequest,
    StreamStats,
    StreamStatsValue,
    group_inventory_from_json,
)
from .nodes import (
    HostResourceStats,
    NodeConfig,
    NodeJobCounts,
    NodeSnapshot,
    PluginDetails,
    ProcessResourceStats,
    ResourceStats,
    WorkerJob,
    WorkerProcess,
    WorkerSnapshot,
    nodes_from_json,
)

# Pipeline models
from .fanout import FanoutOutcome, FetchResult, FetchTask
from .results import CycleSnapshot, CycleStage, GroupStatsSource

__all__ = [
    # Configuration
    "ExporterConfig",
    # Statistics
    "ALL_GROUPS_ID",
    "AggregateStats",
    "CacheEntry",
    "GroupInfo",
    "GroupStat",
    "GroupStatsRequest",
    "PieSlice",
    "StatsRequest",
    "StreamStats",
    "StreamStatsValue",
    "group_inventory_from_json",
    # Nodes
    "HostResourceStats",
    "NodeConfig",
    "NodeJobCounts",
    "NodeSnapshot",
    "PluginDetails",
    "ProcessResourceStats",
    "ResourceStats",
    "WorkerJob",
    "WorkerProcess",
    "WorkerSnapshot",
    "nodes_from_json",
    # Pipeline
    "FanoutOutcome",
    "FetchResult",
    "FetchTask",
    "CycleSnapshot",
    "CycleStage",
    "GroupStatsSource",
]

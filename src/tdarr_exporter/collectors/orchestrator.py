"""
Collection cycle orchestration.

One cycle walks through these stages:

    FETCH_AGGREGATE -> PARSE_SCORES -> (CACHE_CHECK | LEGACY_PARSE) -> FETCH_NODES

and returns a CycleSnapshot for metric assembly. A failure of a required input
(aggregate statistics, scores, the all-libraries breakdown, the library
inventory or the node list) aborts the cycle with CycleAborted. A failure of a
single library during the fan-out only drops that library.
"""

import logging
import time
from typing import Callable, List, Optional, Tuple, TypeVar

from ..client.request_client import RequestClient
from ..models.config import ExporterConfig
from ..models.nodes import NodeSnapshot, nodes_from_json
from ..models.results import CycleSnapshot, CycleStage, GroupStatsSource
from ..models.stats import (
    AggregateStats,
    CacheEntry,
    GroupInfo,
    GroupStat,
    StatsRequest,
    group_inventory_from_json,
)
from ..validation.exceptions import CycleAborted, TdarrExporterError
from ..validation.validators import parse_float_field
from .cache import GroupStatsCache
from .fanout_pool import GroupStatsFanout
from .normalizer import LegacyShape, parse_legacy_pies, resolve_wire_shape

logger = logging.getLogger(__name__)

T = TypeVar('T')


class StatsOrchestrator:
    """
    Runs collection cycles against one Tdarr server.

    The orchestrator owns the per-library cache, so statistics are reused
    across cycles for as long as the instance lives.
    """

    def __init__(
        self,
        config: ExporterConfig,
        request_client: RequestClient,
        cache: Optional[GroupStatsCache] = None,
        fanout: Optional[GroupStatsFanout] = None,
    ):
        self.config = config
        self.request_client = request_client
        self.cache = cache if cache is not None else GroupStatsCache()
        self.fanout = fanout if fanout is not None else GroupStatsFanout(
            request_client, config.group_stats_path, config.max_concurrency
        )

    def run_cycle(self) -> CycleSnapshot:
        """
        Run one collection cycle.

        Returns:
            CycleSnapshot with everything needed for metric assembly

        Raises:
            CycleAborted: If a required input could not be fetched or parsed
        """
        started = time.monotonic()

        aggregate = self._stage(CycleStage.FETCH_AGGREGATE, self._fetch_aggregate)
        tdarr_score, health_check_score = self._stage(
            CycleStage.PARSE_SCORES, lambda: self._parse_scores(aggregate)
        )

        snapshot = CycleSnapshot(
            aggregate=aggregate,
            tdarr_score=tdarr_score,
            health_check_score=health_check_score,
        )

        shape = resolve_wire_shape(aggregate)
        if isinstance(shape, LegacyShape):
            legacy = self._stage(CycleStage.LEGACY_PARSE, lambda: parse_legacy_pies(shape.rows))
            snapshot.group_stats = legacy.group_stats
            snapshot.shape_errors = legacy.errors
            snapshot.source = GroupStatsSource.LEGACY
        else:
            snapshot.group_stats, snapshot.source = self._stage(
                CycleStage.CACHE_CHECK, self._cached_group_stats
            )

        snapshot.nodes = self._stage(CycleStage.FETCH_NODES, self._fetch_nodes)

        logger.debug(
            f"Cycle against {self.config.instance_name} finished in "
            f"{time.monotonic() - started:.3f}s: source={snapshot.source.value}, "
            f"libraries={len(snapshot.group_stats)}, nodes={len(snapshot.nodes)}"
        )
        return snapshot

    def _stage(self, stage: CycleStage, func: Callable[[], T]) -> T:
        try:
            return func()
        except TdarrExporterError as e:
            logger.error(f"Collection cycle aborted during {stage.value}: {e}")
            raise CycleAborted(stage.value, e) from e

    def _fetch_aggregate(self) -> AggregateStats:
        return self.request_client.post(
            self.config.metrics_path, AggregateStats.from_dict, StatsRequest.statistics()
        )

    @staticmethod
    def _parse_scores(aggregate: AggregateStats) -> Tuple[float, float]:
        return (
            parse_float_field(aggregate.tdarr_score, "tdarrScore"),
            parse_float_field(aggregate.health_check_score, "healthCheckScore"),
        )

    def _fetch_inventory(self) -> List[GroupInfo]:
        return self.request_client.post(
            self.config.metrics_path, group_inventory_from_json, StatsRequest.library_settings()
        )

    def _cached_group_stats(self) -> Tuple[List[GroupStat], GroupStatsSource]:
        all_groups = self.fanout.fetch_group(GroupInfo.all_groups())
        cached = self.cache.read()
        if all_groups.total_files == cached.total_files:
            logger.debug(f"Library statistics unchanged (total_files={cached.total_files})")
            return list(cached.group_stats), GroupStatsSource.CACHE

        groups = self._fetch_inventory()
        logger.info(
            f"Library statistics changed (total_files {cached.total_files} -> "
            f"{all_groups.total_files}), fetching {len(groups)} libraries"
        )
        # The all-libraries entry fetched above heads the list.
        outcome = self.fanout.fetch(groups, include_all_groups=False)
        group_stats = [all_groups] + outcome.group_stats
        if outcome.failures:
            # Failed libraries stay out of the entry until total_files changes again.
            logger.warning(
                f"Caching library statistics without {len(outcome.failures)} failed libraries"
            )
        self.cache.write(CacheEntry(
            total_files=all_groups.total_files,
            group_stats=tuple(group_stats),
        ))
        return group_stats, GroupStatsSource.FANOUT

    def _fetch_nodes(self) -> List[NodeSnapshot]:
        return self.request_client.get(self.config.node_path, nodes_from_json)

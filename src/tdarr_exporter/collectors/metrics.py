"""
Metric assembly.

Maps a CycleSnapshot onto prometheus_client metric families. Every family
carries a ``tdarr_instance`` label holding the configured server URL.

Assembly never aborts a cycle: resource statistics that the server reports as
unparsable strings are skipped one metric at a time.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence

from prometheus_client.core import GaugeMetricFamily

from ..models.nodes import NodeSnapshot, WorkerSnapshot
from ..models.results import CycleSnapshot
from ..models.stats import GroupStat, PieSlice, StreamStatsValue
from ..validation.exceptions import ParseError
from ..validation.validators import parse_float_field

logger = logging.getLogger(__name__)

METRIC_PREFIX = "tdarr"
INSTANCE_LABEL = "tdarr_instance"

LIBRARY_LABELS = ["library_name", "library_id"]
NODE_LABELS = ["node_id", "node_name"]

NODE_INFO_LABELS = NODE_LABELS + [
    "gpu_select", "node_priority", "node_pid", "node_paused",
    "node_gpu_health_check_limit", "node_cpu_health_check_limit",
    "node_gpu_transcode_limit", "node_cpu_transcode_limit",
    "node_health_check_gpu_queue", "node_health_check_cpu_queue",
    "node_transcode_gpu_queue", "node_transcode_cpu_queue",
]

_WORKER_COMMON_LABELS = NODE_LABELS + [
    "worker_id", "worker_type",
    "worker_status", "worker_status_ts", "worker_idle",
    "worker_file", "worker_original_file_size_gb",
    "worker_fps", "worker_eta",
    "worker_percentage", "worker_connected", "worker_pid",
    "worker_job_start_ts", "worker_job_process_start_ts",
]
WORKER_INFO_LABELS = _WORKER_COMMON_LABELS + [
    "worker_plugin_id", "worker_plugin_position",
    "worker_output_size_gb", "worker_est_size_gb",
]
WORKER_FLOW_INFO_LABELS = _WORKER_COMMON_LABELS + [
    "worker_output_size_gb", "worker_est_size_gb",
]

STAT_TYPES = ("average", "highest", "total")

# (metric suffix, help text, GroupStat attribute)
LIBRARY_SCALARS = (
    ("library_files_total", "Tdarr total file count in the library", "total_files"),
    ("library_transcodes_total", "Tdarr total transcode count in the library", "total_transcode_count"),
    ("library_health_checks_total", "Tdarr total health check count in the library",
     "total_health_check_count"),
    ("library_size_diff_gb", "Tdarr size difference (+/-) in GB for the library", "size_diff_gb"),
)

# (metric suffix, help text, breakdown label, GroupStat attribute)
LIBRARY_BREAKDOWNS = (
    ("library_transcodes", "Tdarr transcode count by status for the library", "status", "transcode"),
    ("library_health_checks", "Tdarr health check count by status for the library", "status",
     "health_check"),
    ("library_video_codecs", "Tdarr video codec count for the library", "codec", "video_codecs"),
    ("library_video_containers", "Tdarr video container count for the library", "container_type",
     "video_containers"),
    ("library_video_resolutions", "Tdarr video resolution count for the library", "resolution",
     "video_resolutions"),
    ("library_audio_codecs", "Tdarr audio codec count for the library", "codec", "audio_codecs"),
    ("library_audio_containers", "Tdarr audio container count for the library", "container_type",
     "audio_containers"),
)

# (metric suffix, help text, accessor returning the raw string)
NODE_RESOURCE_STATS = (
    ("node_uptime_seconds", "Tdarr node uptime in seconds",
     lambda n: n.resource_stats.process.uptime),
    ("node_heap_used_mb", "Tdarr node heap used in MB",
     lambda n: n.resource_stats.process.heap_used_mb),
    ("node_heap_total_mb", "Tdarr node heap total in MB",
     lambda n: n.resource_stats.process.heap_total_mb),
    ("node_host_cpu_percent", "CPU percent used on the host that the Tdarr node is running on",
     lambda n: n.resource_stats.os.cpu_percent),
    ("node_host_mem_used_gb", "Memory used in GB on the host that the Tdarr node is running on",
     lambda n: n.resource_stats.os.mem_used_gb),
    ("node_host_mem_total_gb", "Total memory in GB on the host that the Tdarr node is running on",
     lambda n: n.resource_stats.os.mem_total_gb),
)


def metric_name(suffix: str) -> str:
    return f"{METRIC_PREFIX}_{suffix}"


def label_value(value: Any) -> str:
    """Render a field as a label value: booleans lower-case, whole floats without ``.0``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class MetricAssembler:
    """
    Builds the metric families of one cycle for one Tdarr instance.
    """

    def __init__(self, instance: str):
        self.instance = instance

    def gauge(self, suffix: str, documentation: str,
              labels: Sequence[str] = ()) -> GaugeMetricFamily:
        return GaugeMetricFamily(
            metric_name(suffix), documentation, labels=[INSTANCE_LABEL, *labels]
        )

    def add(self, family: GaugeMetricFamily, value: float, labels: Sequence[str] = ()) -> None:
        family.add_metric([self.instance, *labels], value)

    def error_family(self, error: BaseException) -> GaugeMetricFamily:
        """The single family emitted when a cycle is aborted."""
        family = self.gauge("collector_error", "Error while collecting Tdarr metrics", ["error"])
        self.add(family, 1, [str(error)])
        return family

    def assemble(self, snapshot: CycleSnapshot) -> List[GaugeMetricFamily]:
        families: List[GaugeMetricFamily] = []
        families.extend(self.aggregate_families(snapshot))
        families.extend(self.library_families(snapshot.group_stats))
        families.extend(self.node_families(snapshot.nodes))
        families.extend(self.worker_families(snapshot.nodes))
        return families

    def aggregate_families(self, snapshot: CycleSnapshot) -> Iterable[GaugeMetricFamily]:
        aggregate = snapshot.aggregate
        scalars = (
            ("files_total", "Tdarr total file count - includes files in ignore lists within each library",
             aggregate.total_file_count),
            ("transcodes_total", "Tdarr total transcode count for all libraries",
             aggregate.total_transcode_count),
            ("health_checks_total", "Tdarr total health check count for all libraries",
             aggregate.total_health_check_count),
            ("size_diff_gb", "Tdarr size difference (+/-) in GB", aggregate.size_diff_gb),
            ("score_pct", "Tdarr score percentage - how much of your library is being handled by tdarr",
             snapshot.tdarr_score),
            ("health_check_score_pct",
             "Tdarr health check score percentage - how much of your library has been health checked",
             snapshot.health_check_score),
            ("avg_num_streams", "Tdarr average number of streams in video", aggregate.avg_num_streams),
        )
        for suffix, documentation, value in scalars:
            family = self.gauge(suffix, documentation)
            self.add(family, value)
            yield family

        stream_stats = (
            ("stream_stats_duration", "Tdarr stream stats duration", aggregate.stream_stats.duration),
            ("stream_stats_bit_rate", "Tdarr stream stats bit rate", aggregate.stream_stats.bit_rate),
            ("stream_stats_num_frames", "Tdarr stream stats number of frames",
             aggregate.stream_stats.num_frames),
        )
        for suffix, documentation, stats in stream_stats:
            yield self._stream_stats_family(suffix, documentation, stats)

    def _stream_stats_family(self, suffix: str, documentation: str,
                             stats: StreamStatsValue) -> GaugeMetricFamily:
        family = self.gauge(suffix, documentation, ["stat_type"])
        for stat_type in STAT_TYPES:
            self.add(family, getattr(stats, stat_type), [stat_type])
        return family

    def library_families(self, group_stats: List[GroupStat]) -> Iterable[GaugeMetricFamily]:
        for suffix, documentation, attr in LIBRARY_SCALARS:
            family = self.gauge(suffix, documentation, LIBRARY_LABELS)
            for stat in group_stats:
                value: Optional[float] = getattr(stat, attr)
                if value is not None:
                    self.add(family, value, [stat.group_name, stat.group_id])
            yield family

        for suffix, documentation, label, attr in LIBRARY_BREAKDOWNS:
            family = self.gauge(suffix, documentation, LIBRARY_LABELS + [label])
            for stat in group_stats:
                slices: List[PieSlice] = getattr(stat, attr)
                for pie_slice in slices:
                    self.add(family, pie_slice.value,
                             [stat.group_name, stat.group_id, pie_slice.name])
            yield family

    def node_families(self, nodes: List[NodeSnapshot]) -> Iterable[GaugeMetricFamily]:
        info = self.gauge("node_info", "Tdarr node info", NODE_INFO_LABELS)
        for node in nodes:
            self.add(info, 1, [label_value(v) for v in (
                node.id, node.name, node.gpu_select, node.priority, node.config.pid, node.paused,
                node.worker_limits.health_check_gpu, node.worker_limits.health_check_cpu,
                node.worker_limits.transcode_gpu, node.worker_limits.transcode_cpu,
                node.queue_lengths.health_check_gpu, node.queue_lengths.health_check_cpu,
                node.queue_lengths.transcode_gpu, node.queue_lengths.transcode_cpu,
            )])
        yield info

        for suffix, documentation, accessor in NODE_RESOURCE_STATS:
            yield self._resource_family(suffix, documentation, accessor, nodes)

    def _resource_family(self, suffix: str, documentation: str,
                         accessor: Callable[[NodeSnapshot], str],
                         nodes: List[NodeSnapshot]) -> GaugeMetricFamily:
        family = self.gauge(suffix, documentation, NODE_LABELS)
        for node in nodes:
            try:
                value = parse_float_field(accessor(node), suffix)
            except ParseError as e:
                logger.warning(f"Skipping {metric_name(suffix)} for node {node.name or node.id}: {e}")
                continue
            self.add(family, value, [node.id, node.name])
        return family

    def worker_families(self, nodes: List[NodeSnapshot]) -> Iterable[GaugeMetricFamily]:
        info = self.gauge("node_worker_info", "Tdarr node worker info", WORKER_INFO_LABELS)
        flow_info = self.gauge("node_worker_flow_info", "Tdarr node worker flow process info",
                               WORKER_FLOW_INFO_LABELS)
        for node in nodes:
            for worker_id in sorted(node.workers):
                worker = node.workers[worker_id]
                common = self._worker_common_labels(node, worker)
                sizes = [label_value(worker.output_file_size_gb), label_value(worker.est_size_gb)]
                if worker.is_flow_worker:
                    self.add(flow_info, 1, common + sizes)
                else:
                    plugin = worker.last_plugin_details
                    plugin_labels = [
                        plugin.id if plugin else "",
                        label_value(plugin.position_number) if plugin else "",
                    ]
                    self.add(info, 1, common + plugin_labels + sizes)
        yield info
        yield flow_info

    @staticmethod
    def _worker_common_labels(node: NodeSnapshot, worker: WorkerSnapshot) -> List[str]:
        return [label_value(v) for v in (
            node.id, node.name, worker.id, worker.worker_type,
            worker.status, worker.status_timestamp, worker.idle,
            worker.file, worker.original_file_size_gb,
            worker.fps, worker.eta,
            worker.percentage, worker.process.connected, worker.process.pid,
            worker.job.start_time, worker.start_time,
        )]

"""
Node and worker data models.

Decoded from the ``get-nodes`` response, which maps node ids to node documents.
Resource statistics are reported by the server as numeric strings; they are kept
as strings here and parsed during metric assembly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .fields import get_bool, get_dict, get_float, get_int, get_str, require_mapping


@dataclass
class NodeConfig:
    server_ip: str = ""
    server_port: str = ""
    pid: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NodeConfig":
        return cls(
            server_ip=get_str(data, "serverIP"),
            server_port=get_str(data, "serverPort"),
            pid=get_int(data, "processPid"),
        )


@dataclass
class NodeJobCounts:
    """Per job type counters, used for both worker limits and queue lengths."""

    health_check_cpu: int = 0
    health_check_gpu: int = 0
    transcode_cpu: int = 0
    transcode_gpu: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NodeJobCounts":
        return cls(
            health_check_cpu=get_int(data, "healthcheckcpu"),
            health_check_gpu=get_int(data, "healthcheckgpu"),
            transcode_cpu=get_int(data, "transcodecpu"),
            transcode_gpu=get_int(data, "transcodegpu"),
        )


@dataclass
class ProcessResourceStats:
    uptime: str = ""
    heap_used_mb: str = ""
    heap_total_mb: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProcessResourceStats":
        return cls(
            uptime=get_str(data, "uptime"),
            heap_used_mb=get_str(data, "heapUsedMB"),
            heap_total_mb=get_str(data, "heapTotalMB"),
        )


@dataclass
class HostResourceStats:
    cpu_percent: str = ""
    mem_used_gb: str = ""
    mem_total_gb: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HostResourceStats":
        return cls(
            cpu_percent=get_str(data, "cpuPerc"),
            mem_used_gb=get_str(data, "memUsedGB"),
            mem_total_gb=get_str(data, "memTotalGB"),
        )


@dataclass
class ResourceStats:
    process: ProcessResourceStats = field(default_factory=ProcessResourceStats)
    os: HostResourceStats = field(default_factory=HostResourceStats)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ResourceStats":
        return cls(
            process=ProcessResourceStats.from_dict(get_dict(data, "process")),
            os=HostResourceStats.from_dict(get_dict(data, "os")),
        )


@dataclass
class WorkerJob:
    start_time: int = 0
    type: str = ""
    job_id: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkerJob":
        return cls(
            start_time=get_int(data, "start"),
            type=get_str(data, "type"),
            job_id=get_str(data, "jobId"),
        )


@dataclass
class WorkerProcess:
    connected: bool = False
    pid: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WorkerProcess":
        return cls(connected=get_bool(data, "connected"), pid=get_int(data, "pid"))


@dataclass
class PluginDetails:
    id: str = ""
    position_number: str = ""
    source: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PluginDetails":
        return cls(
            id=get_str(data, "id"),
            position_number=get_str(data, "number"),
            source=get_str(data, "source"),
        )


@dataclass
class WorkerSnapshot:
    """
    One worker running on a node.

    Flow workers do not run classic plugins, so ``last_plugin_details`` is None
    for them regardless of what the server sent.
    """

    id: str
    worker_type: str = ""
    is_flow_worker: bool = False
    idle: bool = False
    file: str = ""
    original_file_size_gb: float = 0.0
    percentage: float = 0.0
    fps: float = 0.0
    eta: str = ""
    status: str = ""
    status_timestamp: int = 0
    job: WorkerJob = field(default_factory=WorkerJob)
    process: WorkerProcess = field(default_factory=WorkerProcess)
    last_plugin_details: Optional[PluginDetails] = None
    start_time: int = 0
    output_file_size_gb: float = 0.0
    est_size_gb: float = 0.0

    @classmethod
    def from_dict(cls, data: Any) -> "WorkerSnapshot":
        data = require_mapping(data, "worker")
        is_flow_worker = get_bool(data, "isFlowWorker")
        plugin_data = data.get("lastPluginDetails")
        last_plugin_details = None
        if not is_flow_worker and plugin_data is not None:
            last_plugin_details = PluginDetails.from_dict(
                require_mapping(plugin_data, "field 'lastPluginDetails'")
            )
        return cls(
            id=get_str(data, "_id"),
            worker_type=get_str(data, "workerType"),
            is_flow_worker=is_flow_worker,
            idle=get_bool(data, "idle"),
            file=get_str(data, "file"),
            original_file_size_gb=get_float(data, "originalfileSizeInGbytes"),
            percentage=get_float(data, "percentage"),
            fps=get_float(data, "fps"),
            eta=get_str(data, "ETA"),
            status=get_str(data, "status"),
            status_timestamp=get_int(data, "statusTs"),
            job=WorkerJob.from_dict(get_dict(data, "job")),
            process=WorkerProcess.from_dict(get_dict(data, "process")),
            last_plugin_details=last_plugin_details,
            start_time=get_int(data, "startTime"),
            output_file_size_gb=get_float(data, "outputFileSizeInGbytes"),
            est_size_gb=get_float(data, "estSize"),
        )


@dataclass
class NodeSnapshot:
    """
    One processing node and its workers.
    """

    id: str
    name: str = ""
    remote_address: str = ""
    config: NodeConfig = field(default_factory=NodeConfig)
    gpu_select: str = ""
    paused: bool = False
    priority: int = 0
    worker_limits: NodeJobCounts = field(default_factory=NodeJobCounts)
    queue_lengths: NodeJobCounts = field(default_factory=NodeJobCounts)
    resource_stats: ResourceStats = field(default_factory=ResourceStats)
    workers: Dict[str, WorkerSnapshot] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "NodeSnapshot":
        data = require_mapping(data, "node")
        workers = {
            str(worker_id): WorkerSnapshot.from_dict(worker)
            for worker_id, worker in get_dict(data, "workers").items()
        }
        return cls(
            id=get_str(data, "_id"),
            name=get_str(data, "nodeName"),
            remote_address=get_str(data, "remoteAddress"),
            config=NodeConfig.from_dict(get_dict(data, "config")),
            gpu_select=get_str(data, "gpuSelect"),
            paused=get_bool(data, "nodePaused"),
            priority=get_int(data, "priority"),
            worker_limits=NodeJobCounts.from_dict(get_dict(data, "workerLimits")),
            queue_lengths=NodeJobCounts.from_dict(get_dict(data, "queueLengths")),
            resource_stats=ResourceStats.from_dict(get_dict(data, "resStats")),
            workers=workers,
        )


def nodes_from_json(data: Any) -> List[NodeSnapshot]:
    """
    Decode the ``get-nodes`` response into a list ordered by node id.
    """
    data = require_mapping(data, "nodes response")
    nodes = []
    for node_id in sorted(data):
        node = NodeSnapshot.from_dict(data[node_id])
        if not node.id:
            node.id = str(node_id)
        nodes.append(node)
    return nodes

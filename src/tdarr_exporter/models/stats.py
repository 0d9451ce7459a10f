"""
Statistics data models.

This module contains the request envelopes sent to the Tdarr server and the
records decoded from its statistics responses, including the canonical
per-library record produced by the normalizer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .fields import get_dict, get_float, get_int, get_list, get_str, require_mapping

STATISTICS_COLLECTION = "StatisticsJSONDB"
LIBRARY_SETTINGS_COLLECTION = "LibrarySettingsJSONDB"

# Label used for the synthetic "all libraries" group before normalization.
ALL_GROUPS_ID = "all"
ALL_GROUPS_NAME = "All"


@dataclass
class StatsRequest:
    """
    Query descriptor for the RPC style ``cruddb`` endpoint.
    """

    collection: str
    mode: str
    doc_id: str = ""
    obj: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def statistics(cls) -> "StatsRequest":
        return cls(collection=STATISTICS_COLLECTION, mode="getById", doc_id="statistics")

    @classmethod
    def library_settings(cls) -> "StatsRequest":
        return cls(collection=LIBRARY_SETTINGS_COLLECTION, mode="getAll", doc_id="")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "data": {
                "collection": self.collection,
                "mode": self.mode,
                "docID": self.doc_id,
                "obj": dict(self.obj),
            }
        }


@dataclass
class GroupStatsRequest:
    """Body of a per-library breakdown request. An empty id means all libraries."""

    library_id: str = ""

    def to_payload(self) -> Dict[str, Any]:
        return {"data": {"libraryId": self.library_id}}


@dataclass
class StreamStatsValue:
    average: float = 0.0
    highest: float = 0.0
    total: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StreamStatsValue":
        return cls(
            average=get_float(data, "average"),
            highest=get_float(data, "highest"),
            total=get_float(data, "total"),
        )


@dataclass
class StreamStats:
    duration: StreamStatsValue = field(default_factory=StreamStatsValue)
    bit_rate: StreamStatsValue = field(default_factory=StreamStatsValue)
    num_frames: StreamStatsValue = field(default_factory=StreamStatsValue)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StreamStats":
        return cls(
            duration=StreamStatsValue.from_dict(get_dict(data, "duration")),
            bit_rate=StreamStatsValue.from_dict(get_dict(data, "bit_rate")),
            num_frames=StreamStatsValue.from_dict(get_dict(data, "nb_frames")),
        )


@dataclass
class AggregateStats:
    """
    Server wide statistics document (``StatisticsJSONDB/statistics``).

    ``pies`` is only populated by older servers; each row is a positional
    array that the normalizer converts field by field.
    """

    total_file_count: int = 0
    total_transcode_count: int = 0
    total_health_check_count: int = 0
    size_diff_gb: float = 0.0
    tdarr_score: str = ""
    health_check_score: str = ""
    avg_num_streams: float = 0.0
    stream_stats: StreamStats = field(default_factory=StreamStats)
    pies: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "AggregateStats":
        data = require_mapping(data, "statistics response")
        return cls(
            total_file_count=get_int(data, "totalFileCount"),
            total_transcode_count=get_int(data, "totalTranscodeCount"),
            total_health_check_count=get_int(data, "totalHealthCheckCount"),
            size_diff_gb=get_float(data, "sizeDiff"),
            tdarr_score=get_str(data, "tdarrScore"),
            health_check_score=get_str(data, "healthCheckScore"),
            avg_num_streams=get_float(data, "avgNumberOfStreamsInVideo"),
            stream_stats=StreamStats.from_dict(get_dict(data, "streamStats")),
            pies=get_list(data, "pies"),
        )

    @property
    def has_legacy_pies(self) -> bool:
        return len(self.pies) > 0


@dataclass(frozen=True)
class GroupInfo:
    """
    One library configured on the server.

    ``request_id`` is what goes on the wire; it differs from ``group_id`` only
    for the synthetic all-libraries entry, which is requested with an empty id.
    """

    group_id: str
    group_name: str
    request_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "GroupInfo":
        data = require_mapping(data, "library settings entry")
        return cls(group_id=get_str(data, "_id"), group_name=get_str(data, "name"))

    @classmethod
    def all_groups(cls) -> "GroupInfo":
        return cls(group_id=ALL_GROUPS_ID, group_name=ALL_GROUPS_NAME, request_id="")

    @property
    def wire_id(self) -> str:
        return self.group_id if self.request_id is None else self.request_id


def group_inventory_from_json(data: Any) -> List[GroupInfo]:
    """Decode the ``LibrarySettingsJSONDB/getAll`` response."""
    if not isinstance(data, list):
        raise TypeError(f"library settings response must be an array, got {type(data).__name__}")
    return [GroupInfo.from_dict(item) for item in data]


@dataclass(frozen=True)
class PieSlice:
    """One labelled bucket of a categorical breakdown."""

    name: str
    value: float

    @classmethod
    def from_dict(cls, data: Any) -> "PieSlice":
        data = require_mapping(data, "breakdown bucket")
        name = data.get("name")
        value = data.get("value")
        if not isinstance(name, str):
            raise TypeError(f"bucket name must be a string, got {type(name).__name__}")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"bucket value must be a number, got {type(value).__name__}")
        return cls(name=name, value=float(value))


@dataclass
class GroupStat:
    """
    Canonical per-library statistics, whichever wire shape they came from.

    Scalar totals are None when a legacy row carried a value of the wrong type;
    the metric for that value is then not emitted.
    """

    group_name: str
    group_id: str
    total_files: Optional[float] = None
    total_transcode_count: Optional[float] = None
    size_diff_gb: Optional[float] = None
    total_health_check_count: Optional[float] = None
    transcode: List[PieSlice] = field(default_factory=list)
    health_check: List[PieSlice] = field(default_factory=list)
    video_codecs: List[PieSlice] = field(default_factory=list)
    video_containers: List[PieSlice] = field(default_factory=list)
    video_resolutions: List[PieSlice] = field(default_factory=list)
    audio_codecs: List[PieSlice] = field(default_factory=list)
    audio_containers: List[PieSlice] = field(default_factory=list)


@dataclass(frozen=True)
class CacheEntry:
    """
    Last known per-library statistics, keyed by the all-libraries file count.

    Instances are immutable; the cache swaps whole entries.
    """

    total_files: float = -1
    group_stats: Tuple[GroupStat, ...] = ()

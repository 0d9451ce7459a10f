"""
Normalization of per-library statistics.

Tdarr reports per-library breakdowns in two shapes. Older servers embed them in
the aggregate statistics document as ``pies``: one positional array per library.
Newer servers leave ``pies`` empty and serve each library's breakdown from a
separate keyed endpoint. Both shapes are converted to ``GroupStat`` here.

The legacy parser is tolerant: a field of the wrong type is recorded as a
ShapeError and skipped, while the rest of the row and the remaining rows are kept.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple, Union

from ..models.stats import AggregateStats, GroupInfo, GroupStat, PieSlice
from ..validation.exceptions import ShapeError

logger = logging.getLogger(__name__)

ALL_GROUPS_LABEL = "all_libraries"

_TRANSCODE_PREFIX = "transcode"

# Positional layout of one legacy row.
LEGACY_NAME = 0
LEGACY_ID = 1
LEGACY_SCALAR_FIELDS = (
    (2, "total_files"),
    (3, "total_transcode_count"),
    (4, "size_diff_gb"),
    (5, "total_health_check_count"),
)
LEGACY_BREAKDOWN_FIELDS = (
    (6, "transcode"),
    (7, "health_check"),
    (8, "video_codecs"),
    (9, "video_containers"),
    (10, "video_resolutions"),
    (11, "audio_codecs"),
    (12, "audio_containers"),
)
LEGACY_ROW_LENGTH = 13

# Keyed layout: canonical field -> path inside ``pieStats``.
KEYED_SCALAR_FIELDS = (
    ("totalFiles", "total_files"),
    ("totalTranscodeCount", "total_transcode_count"),
    ("sizeDiff", "size_diff_gb"),
    ("totalHealthCheckCount", "total_health_check_count"),
)
KEYED_BREAKDOWN_FIELDS = (
    (("status", "transcode"), "transcode"),
    (("status", "healthCheck"), "health_check"),
    (("video", "codecs"), "video_codecs"),
    (("video", "containers"), "video_containers"),
    (("video", "resolutions"), "video_resolutions"),
    (("audio", "codecs"), "audio_codecs"),
    (("audio", "containers"), "audio_containers"),
)

STATUS_BREAKDOWNS = ("transcode",)


@dataclass
class LegacyShape:
    """Per-library statistics are embedded in the aggregate document."""
    rows: List[Any]


@dataclass
class KeyedShape:
    """Per-library statistics must be fetched per library."""


WireShape = Union[LegacyShape, KeyedShape]


@dataclass
class LegacyParseResult:
    group_stats: List[GroupStat] = field(default_factory=list)
    errors: List[ShapeError] = field(default_factory=list)


def resolve_wire_shape(aggregate: AggregateStats) -> WireShape:
    """Decide, once per cycle, which shape the per-library statistics use."""
    if aggregate.has_legacy_pies:
        return LegacyShape(rows=list(aggregate.pies))
    return KeyedShape()


def normalize_group_id(group_id: str) -> str:
    if group_id.lower() == "all":
        return ALL_GROUPS_LABEL
    return group_id


def clean_status_label(name: str) -> str:
    """
    Normalize a transcode status name.

    ``"Transcode Success "`` becomes ``"success"`` and ``"Ignored"`` becomes
    ``"ignored"``.
    """
    label = name.lower()
    if label.startswith(_TRANSCODE_PREFIX):
        label = label[len(_TRANSCODE_PREFIX):]
    return label.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_slices(slices: List[PieSlice], status: bool) -> List[PieSlice]:
    if status:
        return [PieSlice(clean_status_label(s.name), s.value) for s in slices]
    return [PieSlice(s.name.lower(), s.value) for s in slices]


def _parse_breakdown(value: Any) -> List[PieSlice]:
    if not isinstance(value, list):
        raise TypeError(f"breakdown must be an array, got {type(value).__name__}")
    return [PieSlice.from_dict(item) for item in value]


def parse_legacy_pies(rows: List[Any]) -> LegacyParseResult:
    """
    Convert legacy positional rows into GroupStat records.

    Args:
        rows: The ``pies`` array of the aggregate statistics document

    Returns:
        LegacyParseResult with one GroupStat per labelled row and every
        ShapeError found along the way
    """
    result = LegacyParseResult()

    for row_index, row in enumerate(rows):
        if not isinstance(row, list) or len(row) < LEGACY_ROW_LENGTH:
            result.errors.append(ShapeError(
                f"legacy row {row_index} is not an array of {LEGACY_ROW_LENGTH} fields",
                row_index=row_index,
            ))
            continue

        name, group_id = row[LEGACY_NAME], row[LEGACY_ID]
        if not isinstance(name, str) or not isinstance(group_id, str):
            result.errors.append(ShapeError(
                f"legacy row {row_index} has no string name or id",
                row_index=row_index,
                field_index=LEGACY_NAME if not isinstance(name, str) else LEGACY_ID,
                field_name="group_name" if not isinstance(name, str) else "group_id",
            ))
            continue

        stat = GroupStat(group_name=name, group_id=normalize_group_id(group_id))

        for index, attr in LEGACY_SCALAR_FIELDS:
            value = row[index]
            if not _is_number(value):
                result.errors.append(ShapeError(
                    f"legacy row {row_index} field {attr} is not a number: {value!r}",
                    row_index=row_index, field_index=index, field_name=attr,
                ))
                continue
            setattr(stat, attr, float(value))

        for index, attr in LEGACY_BREAKDOWN_FIELDS:
            try:
                slices = _parse_breakdown(row[index])
            except (TypeError, ValueError) as e:
                result.errors.append(ShapeError(
                    f"legacy row {row_index} breakdown {attr} is malformed: {e}",
                    row_index=row_index, field_index=index, field_name=attr,
                ))
                continue
            setattr(stat, attr, _clean_slices(slices, attr in STATUS_BREAKDOWNS))

        result.group_stats.append(stat)

    for error in result.errors:
        logger.warning(f"Skipping malformed legacy statistics: {error}")
    return result


def _lookup(data: Mapping[str, Any], path: Tuple[str, ...]) -> Optional[Any]:
    value: Any = data
    for key in path:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def parse_group_stat(payload: Any, group: GroupInfo) -> GroupStat:
    """
    Convert one keyed per-library response into a GroupStat.

    Args:
        payload: Decoded JSON body of the group statistics endpoint
        group: Library the response belongs to

    Returns:
        GroupStat labelled with the library's name and normalized id

    Raises:
        ShapeError: If the response has no usable ``pieStats`` object
    """
    pie_stats = payload.get("pieStats") if isinstance(payload, Mapping) else None
    if not isinstance(pie_stats, Mapping):
        raise ShapeError(f"response for library {group.group_id!r} has no pieStats object",
                         field_name="pieStats")

    stat = GroupStat(group_name=group.group_name, group_id=normalize_group_id(group.group_id))

    for key, attr in KEYED_SCALAR_FIELDS:
        value = pie_stats.get(key)
        if value is None:
            setattr(stat, attr, 0.0)
        elif _is_number(value):
            setattr(stat, attr, float(value))
        else:
            raise ShapeError(f"pieStats.{key} is not a number: {value!r}", field_name=attr)

    for path, attr in KEYED_BREAKDOWN_FIELDS:
        value = _lookup(pie_stats, path)
        if value is None:
            continue
        try:
            slices = _parse_breakdown(value)
        except (TypeError, ValueError) as e:
            raise ShapeError(f"pieStats.{'.'.join(path)} is malformed: {e}",
                             field_name=attr) from e
        setattr(stat, attr, _clean_slices(slices, attr in STATUS_BREAKDOWNS))

    return stat

"""
Unit tests for the statistics normalizer.

Tests label normalization, the tolerant legacy row parser and the keyed
per-library parser.
"""

import copy

import pytest

from conftest import GROUP_STATS, LEGACY_PIES
from tdarr_exporter.collectors.normalizer import (
    ALL_GROUPS_LABEL,
    KeyedShape,
    LegacyShape,
    clean_status_label,
    normalize_group_id,
    parse_group_stat,
    parse_legacy_pies,
    resolve_wire_shape,
)
from tdarr_exporter.models import AggregateStats, GroupInfo, PieSlice
from tdarr_exporter.validation import ShapeError


@pytest.mark.unit
class TestLabels:
    """Test cases for label normalization."""

    @pytest.mark.parametrize("group_id", ["all", "ALL", "All", "aLl"])
    def test_all_group_id_rewritten(self, group_id):
        assert normalize_group_id(group_id) == ALL_GROUPS_LABEL

    @pytest.mark.parametrize("group_id", ["lib-movies", "allmovies", "", "al"])
    def test_other_group_ids_unchanged(self, group_id):
        assert normalize_group_id(group_id) == group_id

    def test_transcode_prefix_removed(self):
        assert clean_status_label("Transcode Success ") == "success"

    def test_status_without_prefix(self):
        assert clean_status_label("Ignored") == "ignored"

    def test_prefix_only_removed_at_start(self):
        assert clean_status_label("Not required transcode") == "not required transcode"


@pytest.mark.unit
class TestWireShape:
    """Test cases for choosing between legacy and keyed statistics."""

    def test_legacy_when_pies_present(self):
        shape = resolve_wire_shape(AggregateStats(pies=copy.deepcopy(LEGACY_PIES)))
        assert isinstance(shape, LegacyShape)
        assert len(shape.rows) == 3

    def test_keyed_when_pies_empty(self):
        assert isinstance(resolve_wire_shape(AggregateStats()), KeyedShape)


@pytest.mark.unit
class TestLegacyParser:
    """Test cases for positional legacy rows."""

    def test_parse_valid_rows(self):
        result = parse_legacy_pies(copy.deepcopy(LEGACY_PIES))

        assert result.errors == []
        assert [s.group_id for s in result.group_stats] == [ALL_GROUPS_LABEL, "lib-movies", "lib-tv"]
        movies = result.group_stats[1]
        assert movies.group_name == "Movies"
        assert movies.total_files == 80
        assert movies.size_diff_gb == -10.0
        assert movies.transcode == [PieSlice("success", 25), PieSlice("ignored", 2)]
        assert movies.video_codecs == [PieSlice("hevc", 80)]
        assert movies.audio_containers == [PieSlice("mkv", 80)]

    def test_breakdown_not_array(self):
        """A malformed breakdown only drops that breakdown."""
        rows = copy.deepcopy(LEGACY_PIES[1:2])
        rows[0][8] = "HEVC"

        result = parse_legacy_pies(rows)

        assert len(result.errors) == 1
        error = result.errors[0]
        assert isinstance(error, ShapeError)
        assert error.row_index == 0
        assert error.field_index == 8
        assert error.field_name == "video_codecs"

        stat = result.group_stats[0]
        assert stat.video_codecs == []
        assert stat.total_files == 80
        assert stat.video_containers == [PieSlice("mkv", 80)]
        assert stat.health_check == [PieSlice("success", 60)]

    def test_breakdown_element_malformed(self):
        rows = copy.deepcopy(LEGACY_PIES[1:2])
        rows[0][11] = [{"name": "AAC", "value": "lots"}]

        result = parse_legacy_pies(rows)

        assert [e.field_index for e in result.errors] == [11]
        assert result.group_stats[0].audio_codecs == []

    def test_scalar_wrong_type(self):
        rows = copy.deepcopy(LEGACY_PIES[1:2])
        rows[0][3] = "25"
        rows[0][5] = True

        result = parse_legacy_pies(rows)

        assert [e.field_index for e in result.errors] == [3, 5]
        stat = result.group_stats[0]
        assert stat.total_transcode_count is None
        assert stat.total_health_check_count is None
        assert stat.total_files == 80

    def test_unlabelled_row_skipped(self):
        rows = copy.deepcopy(LEGACY_PIES)
        rows[1][0] = 42

        result = parse_legacy_pies(rows)

        assert len(result.errors) == 1
        assert result.errors[0].row_index == 1
        assert [s.group_id for s in result.group_stats] == [ALL_GROUPS_LABEL, "lib-tv"]

    @pytest.mark.parametrize("row", ["Movies", {"name": "Movies"}, ["Movies", "lib-movies", 1]])
    def test_row_wrong_shape(self, row):
        result = parse_legacy_pies([row])

        assert result.group_stats == []
        assert len(result.errors) == 1
        assert result.errors[0].field_index is None


@pytest.mark.unit
class TestKeyedParser:
    """Test cases for keyed per-library responses."""

    def test_parse_group_stat(self):
        stat = parse_group_stat(copy.deepcopy(GROUP_STATS["lib-tv"]), GroupInfo("lib-tv", "TV"))

        assert stat.group_name == "TV"
        assert stat.group_id == "lib-tv"
        assert stat.total_files == 40
        assert stat.total_transcode_count == 15
        assert stat.transcode == [PieSlice("success", 10), PieSlice("not required", 5)]
        assert stat.health_check == [PieSlice("success", 39), PieSlice("error", 1)]
        assert stat.video_codecs == [PieSlice("hevc", 20), PieSlice("h264", 20)]
        assert stat.video_resolutions == [PieSlice("1080p", 40)]

    def test_all_groups_entry_normalized(self):
        stat = parse_group_stat(copy.deepcopy(GROUP_STATS[""]), GroupInfo.all_groups())
        assert stat.group_id == ALL_GROUPS_LABEL
        assert stat.group_name == "All"

    def test_missing_breakdowns_default_empty(self):
        stat = parse_group_stat({"pieStats": {"totalFiles": 3}}, GroupInfo("lib", "Lib"))

        assert stat.total_files == 3
        assert stat.total_transcode_count == 0
        assert stat.transcode == []
        assert stat.audio_codecs == []

    def test_missing_pie_stats(self):
        with pytest.raises(ShapeError):
            parse_group_stat({"unexpected": {}}, GroupInfo("lib", "Lib"))

    def test_malformed_breakdown(self):
        payload = {"pieStats": {"video": {"codecs": "HEVC"}}}
        with pytest.raises(ShapeError) as exc_info:
            parse_group_stat(payload, GroupInfo("lib", "Lib"))
        assert exc_info.value.field_name == "video_codecs"

"""
Unit tests for the collection cycle orchestrator.

The orchestrator runs against the fake Tdarr server from conftest, so every
test goes through the real RequestClient and retrying transport.
"""

import pytest

from tdarr_exporter.collectors import GroupStatsCache, StatsOrchestrator
from tdarr_exporter.collectors.normalizer import ALL_GROUPS_LABEL
from tdarr_exporter.models import CacheEntry, GroupStat, GroupStatsSource
from tdarr_exporter.validation import (
    ClientError,
    CycleAborted,
    ParseError,
    ServerError,
    ShapeError,
)


@pytest.fixture
def orchestrator(exporter_config, request_client):
    return StatsOrchestrator(exporter_config, request_client)


@pytest.mark.unit
class TestCycle:
    """Test cases for a complete cycle."""

    def test_scores_parsed(self, orchestrator):
        snapshot = orchestrator.run_cycle()

        assert snapshot.tdarr_score == 57.3
        assert snapshot.health_check_score == 83.33
        assert snapshot.aggregate.total_file_count == 120

    def test_first_cycle_fans_out(self, orchestrator, fake_tdarr):
        snapshot = orchestrator.run_cycle()

        assert snapshot.source is GroupStatsSource.FANOUT
        assert [s.group_id for s in snapshot.group_stats] == [ALL_GROUPS_LABEL, "lib-movies", "lib-tv"]
        assert fake_tdarr.count("library_settings") == 1
        # The all-libraries entry is fetched once and reused for the fan-out.
        assert fake_tdarr.count("library:") == 1
        assert fake_tdarr.count("library:lib-movies") == 1
        assert fake_tdarr.count("library:lib-tv") == 1

    def test_nodes_fetched(self, orchestrator, fake_tdarr):
        snapshot = orchestrator.run_cycle()

        assert [n.id for n in snapshot.nodes] == ["node-1"]
        assert fake_tdarr.count("nodes") == 1

    def test_api_key_sent(self, orchestrator, fake_tdarr):
        orchestrator.run_cycle()
        assert all(r.headers["x-api-key"] == "secret-key" for r in fake_tdarr.requests)


@pytest.mark.unit
class TestCaching:
    """Test cases for reusing per-library statistics across cycles."""

    def test_second_cycle_served_from_cache(self, orchestrator, fake_tdarr):
        first = orchestrator.run_cycle()
        requests_after_first = len(fake_tdarr.library_requests())

        second = orchestrator.run_cycle()

        assert second.cache_hit
        assert second.group_stats == first.group_stats
        # Only the all-libraries request is sent.
        assert fake_tdarr.library_requests()[requests_after_first:] == ["library:"]
        assert fake_tdarr.count("library_settings") == 1

    def test_cache_written_after_fanout(self, orchestrator):
        orchestrator.run_cycle()

        entry = orchestrator.cache.read()
        assert entry.total_files == 120
        assert len(entry.group_stats) == 3

    def test_changed_total_refetches(self, orchestrator, fake_tdarr):
        orchestrator.run_cycle()
        fake_tdarr.group_stats[""]["pieStats"]["totalFiles"] = 121
        fake_tdarr.group_stats["lib-tv"]["pieStats"]["totalFiles"] = 41

        snapshot = orchestrator.run_cycle()

        assert snapshot.source is GroupStatsSource.FANOUT
        assert fake_tdarr.count("library_settings") == 2
        assert snapshot.group_stats[2].total_files == 41
        assert orchestrator.cache.read().total_files == 121

    def test_preloaded_cache_matching_total(self, exporter_config, request_client, fake_tdarr):
        cached = (GroupStat("Cached", "cached", total_files=120),)
        cache = GroupStatsCache(CacheEntry(total_files=120, group_stats=cached))
        orchestrator = StatsOrchestrator(exporter_config, request_client, cache=cache)

        snapshot = orchestrator.run_cycle()

        assert snapshot.group_stats == list(cached)
        assert fake_tdarr.count("library_settings") == 0

    def test_failed_library_cached_without_it(self, orchestrator, fake_tdarr):
        """Test that a failing library does not turn every later cycle into a fan-out."""
        fake_tdarr.fail("library:lib-tv")

        snapshot = orchestrator.run_cycle()

        assert [s.group_id for s in snapshot.group_stats] == [ALL_GROUPS_LABEL, "lib-movies"]
        entry = orchestrator.cache.read()
        assert entry.total_files == 120
        assert [s.group_id for s in entry.group_stats] == [ALL_GROUPS_LABEL, "lib-movies"]

        requests_after_first = len(fake_tdarr.library_requests())
        snapshot = orchestrator.run_cycle()

        assert snapshot.cache_hit
        assert [s.group_id for s in snapshot.group_stats] == [ALL_GROUPS_LABEL, "lib-movies"]
        assert fake_tdarr.library_requests()[requests_after_first:] == ["library:"]
        assert fake_tdarr.count("library_settings") == 1

    def test_failed_library_returns_when_total_changes(self, orchestrator, fake_tdarr):
        fake_tdarr.fail("library:lib-tv")
        orchestrator.run_cycle()

        del fake_tdarr.failures["library:lib-tv"]
        fake_tdarr.group_stats[""]["pieStats"]["totalFiles"] = 121
        snapshot = orchestrator.run_cycle()

        assert snapshot.source is GroupStatsSource.FANOUT
        assert [s.group_id for s in snapshot.group_stats] == [ALL_GROUPS_LABEL, "lib-movies", "lib-tv"]
        assert orchestrator.cache.read().total_files == 121

@pytest.mark.unit
class TestLegacyCycle:
    """Test cases for servers embedding per-library statistics."""

    def test_legacy_rows_used(self, exporter_config, legacy_request_client, legacy_tdarr):
        orchestrator = StatsOrchestrator(exporter_config, legacy_request_client)

        snapshot = orchestrator.run_cycle()

        assert snapshot.source is GroupStatsSource.LEGACY
        assert [s.group_id for s in snapshot.group_stats] == [ALL_GROUPS_LABEL, "lib-movies", "lib-tv"]
        assert legacy_tdarr.library_requests() == []
        assert legacy_tdarr.count("library_settings") == 0

    def test_legacy_bypasses_cache(self, exporter_config, legacy_request_client):
        orchestrator = StatsOrchestrator(exporter_config, legacy_request_client)
        orchestrator.run_cycle()
        orchestrator.run_cycle()

        assert orchestrator.cache.read().total_files == -1

    def test_legacy_shape_errors_reported(self, exporter_config, legacy_request_client, legacy_tdarr):
        legacy_tdarr.aggregate["pies"][2][8] = "HEVC"
        orchestrator = StatsOrchestrator(exporter_config, legacy_request_client)

        snapshot = orchestrator.run_cycle()

        assert len(snapshot.shape_errors) == 1
        assert len(snapshot.group_stats) == 3

    def test_legacy_parse_failure_names_stage(
        self, exporter_config, legacy_request_client, monkeypatch
    ):
        def broken(rows):
            raise ShapeError("legacy rows unreadable")

        monkeypatch.setattr("tdarr_exporter.collectors.orchestrator.parse_legacy_pies", broken)
        orchestrator = StatsOrchestrator(exporter_config, legacy_request_client)

        with pytest.raises(CycleAborted) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.stage == "legacy_parse"


@pytest.mark.unit
class TestAbort:
    """Test cases for cycles aborted by a required input."""

    def test_unparsable_score(self, orchestrator, fake_tdarr):
        fake_tdarr.aggregate["tdarrScore"] = "n/a"

        with pytest.raises(CycleAborted) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.stage == "parse_scores"
        assert isinstance(exc_info.value.cause, ParseError)
        assert fake_tdarr.count("nodes") == 0

    def test_aggregate_unavailable(self, orchestrator, fake_tdarr):
        fake_tdarr.fail("statistics", 503)

        with pytest.raises(CycleAborted) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.stage == "fetch_aggregate"
        assert isinstance(exc_info.value.cause, ServerError)
        # First attempt plus two retries.
        assert fake_tdarr.count("statistics") == 3

    def test_all_libraries_failure(self, orchestrator, fake_tdarr):
        fake_tdarr.fail("library:", 401)

        with pytest.raises(CycleAborted) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.stage == "cache_check"
        assert isinstance(exc_info.value.cause, ClientError)

    def test_inventory_failure(self, orchestrator, fake_tdarr):
        fake_tdarr.fail("library_settings")

        with pytest.raises(CycleAborted) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.stage == "cache_check"

    def test_nodes_unavailable(self, orchestrator, fake_tdarr):
        fake_tdarr.fail("nodes", 404)

        with pytest.raises(CycleAborted) as exc_info:
            orchestrator.run_cycle()

        assert exc_info.value.stage == "fetch_nodes"
        assert exc_info.value.cause.status_code == 404

    def test_cache_untouched_by_aborted_cycle(self, orchestrator, fake_tdarr):
        orchestrator.run_cycle()
        fake_tdarr.fail("nodes")

        with pytest.raises(CycleAborted):
            orchestrator.run_cycle()

        assert orchestrator.cache.read().total_files == 120

"""
Pytest configuration and shared fixtures for the tdarr_exporter test suite.

This module provides canned Tdarr API payloads, a fake Tdarr server usable
through ``httpx.MockTransport`` and configuration fixtures.
"""

import copy
import json
import sys
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tdarr_exporter.client import RequestClient  # noqa: E402
from tdarr_exporter.models.config import ExporterConfig  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")


TDARR_URL = "http://tdarr.test:8265"
NO_BACKOFF = (0.0, 0.0)


# ============================================================================
# Canned Tdarr payloads
# ============================================================================


def _slices(*pairs) -> List[Dict[str, Any]]:
    return [{"name": name, "value": value} for name, value in pairs]


AGGREGATE_STATS = {
    "_id": "statistics",
    "totalFileCount": 120,
    "totalTranscodeCount": 40,
    "totalHealthCheckCount": 100,
    "sizeDiff": -12.5,
    "tdarrScore": "57.3",
    "healthCheckScore": "83.33",
    "avgNumberOfStreamsInVideo": 2.4,
    "streamStats": {
        "duration": {"average": 1800.5, "highest": 7200, "total": 216060},
        "bit_rate": {"average": 4500000, "highest": 25000000, "total": 540000000},
        "nb_frames": {"average": 43200, "highest": 172800, "total": 5184000},
    },
    "pies": [],
}

LIBRARY_SETTINGS = [
    {"_id": "lib-movies", "name": "Movies", "folder": "/media/movies"},
    {"_id": "lib-tv", "name": "TV", "folder": "/media/tv"},
]


def _pie_stats(total_files, transcodes, size_diff, health_checks, transcode_ok, hevc):
    return {
        "pieStats": {
            "totalFiles": total_files,
            "totalTranscodeCount": transcodes,
            "sizeDiff": size_diff,
            "totalHealthCheckCount": health_checks,
            "status": {
                "transcode": _slices(("Transcode success", transcode_ok),
                                     ("Not required", transcodes - transcode_ok)),
                "healthCheck": _slices(("Success", health_checks - 1), ("Error", 1)),
            },
            "video": {
                "codecs": _slices(("HEVC", hevc), ("h264", total_files - hevc)),
                "containers": _slices(("MKV", total_files)),
                "resolutions": _slices(("1080p", total_files)),
            },
            "audio": {
                "codecs": _slices(("AAC", total_files)),
                "containers": _slices(("mkv", total_files)),
            },
        }
    }


GROUP_STATS = {
    "": _pie_stats(120, 40, -12.5, 100, 30, 70),
    "lib-movies": _pie_stats(80, 25, -10.0, 60, 20, 50),
    "lib-tv": _pie_stats(40, 15, -2.5, 40, 10, 20),
}


def _legacy_row(name, group_id, total_files, transcodes, size_diff, health_checks):
    return [
        name, group_id, total_files, transcodes, size_diff, health_checks,
        _slices(("Transcode success", transcodes), ("Ignored", 2)),
        _slices(("Success", health_checks)),
        _slices(("HEVC", total_files)),
        _slices(("MKV", total_files)),
        _slices(("1080p", total_files)),
        _slices(("AAC", total_files)),
        _slices(("mkv", total_files)),
    ]


LEGACY_PIES = [
    _legacy_row("All", "all", 120, 40, -12.5, 100),
    _legacy_row("Movies", "lib-movies", 80, 25, -10.0, 60),
    _legacy_row("TV", "lib-tv", 40, 15, -2.5, 40),
]

NODES = {
    "node-1": {
        "_id": "node-1",
        "nodeName": "basement-node",
        "remoteAddress": "10.0.0.5",
        "config": {"serverIP": "10.0.0.2", "serverPort": "8266", "processPid": 4321},
        "gpuSelect": "-",
        "nodePaused": False,
        "priority": 1,
        "workerLimits": {"healthcheckcpu": 1, "healthcheckgpu": 0, "transcodecpu": 2, "transcodegpu": 1},
        "queueLengths": {"healthcheckcpu": 0, "healthcheckgpu": 0, "transcodecpu": 5, "transcodegpu": 3},
        "resStats": {
            "process": {"uptime": "3600", "heapUsedMB": "120.5", "heapTotalMB": "256"},
            "os": {"cpuPerc": "12.5", "memUsedGB": "3.2", "memTotalGB": "16"},
        },
        "workers": {
            "worker-classic": {
                "_id": "worker-classic",
                "workerType": "transcodecpu",
                "isFlowWorker": False,
                "idle": False,
                "file": "/media/movies/film.mkv",
                "originalfileSizeInGbytes": 4.5,
                "percentage": 42.5,
                "fps": 87,
                "ETA": "00:12:30",
                "status": "Processing",
                "statusTs": 1700000100,
                "job": {"version": "2.17.01", "start": 1700000000, "type": "transcode", "jobId": "job-1"},
                "process": {"connected": True, "pid": 999, "cliType": "ffmpeg"},
                "lastPluginDetails": {"source": "Community", "id": "Tdarr_Plugin_MC93", "number": "2"},
                "startTime": 1700000050,
                "outputFileSizeInGbytes": 1.5,
                "estSize": 3.1,
            },
            "worker-flow": {
                "_id": "worker-flow",
                "workerType": "transcodegpu",
                "isFlowWorker": True,
                "idle": False,
                "file": "/media/tv/episode.mkv",
                "originalfileSizeInGbytes": 1.25,
                "percentage": 10,
                "fps": 240,
                "ETA": "00:02:00",
                "status": "Processing",
                "statusTs": 1700000200,
                "job": {"start": 1700000150, "type": "transcode", "jobId": "job-2"},
                "process": {"connected": True, "pid": 1001},
                "lastPluginDetails": {"source": "Flow", "id": "ffmpegCommand", "number": 4},
                "startTime": 1700000160,
                "outputFileSizeInGbytes": 0.2,
                "estSize": 0.9,
            },
        },
    }
}


# ============================================================================
# Fake Tdarr server
# ============================================================================


class FakeTdarr:
    """
    Request handler for ``httpx.MockTransport`` emulating the Tdarr API.

    Responses are looked up by route key: ``statistics``, ``library_settings``,
    ``library:<id>`` (``library:`` for the all-libraries request) and ``nodes``.
    ``fail`` makes a route answer with an error status instead, ``respond_raw``
    with a fixed body.
    """

    def __init__(self, legacy: bool = False):
        self.aggregate = copy.deepcopy(AGGREGATE_STATS)
        if legacy:
            self.aggregate["pies"] = copy.deepcopy(LEGACY_PIES)
        self.library_settings = copy.deepcopy(LIBRARY_SETTINGS)
        self.group_stats = copy.deepcopy(GROUP_STATS)
        self.nodes = copy.deepcopy(NODES)

        self.failures: Dict[str, int] = {}
        self.raw_bodies: Dict[str, bytes] = {}
        self.requests: List[httpx.Request] = []
        self.keys: List[str] = []
        self._lock = threading.Lock()

    def fail(self, key: str, status: int = 500) -> None:
        self.failures[key] = status

    def respond_raw(self, key: str, body: bytes) -> None:
        self.raw_bodies[key] = body

    def count(self, key: str) -> int:
        with self._lock:
            return self.keys.count(key)

    def library_requests(self) -> List[str]:
        with self._lock:
            return [key for key in self.keys if key.startswith("library:")]

    def _route(self, request: httpx.Request) -> Optional[str]:
        path = request.url.path
        if request.method == "POST" and path == "/api/v2/cruddb":
            collection = json.loads(request.content)["data"]["collection"]
            return {"StatisticsJSONDB": "statistics",
                    "LibrarySettingsJSONDB": "library_settings"}.get(collection)
        if request.method == "POST" and path == "/api/v2/stats/get-pies":
            return "library:" + json.loads(request.content)["data"]["libraryId"]
        if request.method == "GET" and path == "/api/v2/get-nodes":
            return "nodes"
        return None

    def _payload(self, key: str) -> Any:
        if key == "statistics":
            return self.aggregate
        if key == "library_settings":
            return self.library_settings
        if key == "nodes":
            return self.nodes
        return self.group_stats.get(key[len("library:"):])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        key = self._route(request)
        with self._lock:
            self.requests.append(request)
            self.keys.append(key or "unknown")
        if key is None:
            return httpx.Response(404)
        if key in self.failures:
            return httpx.Response(self.failures[key])
        if key in self.raw_bodies:
            return httpx.Response(200, content=self.raw_bodies[key])
        payload = self._payload(key)
        if payload is None:
            return httpx.Response(404)
        return httpx.Response(200, json=payload)


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def exporter_config():
    """Configuration pointing at the fake Tdarr server."""
    return ExporterConfig(url=TDARR_URL, api_key="secret-key", max_concurrency=2)


@pytest.fixture
def fake_tdarr():
    """Fake Tdarr server using the current (keyed) statistics format."""
    return FakeTdarr()


@pytest.fixture
def legacy_tdarr():
    """Fake Tdarr server embedding per-library statistics as legacy rows."""
    return FakeTdarr(legacy=True)


@pytest.fixture
def request_client(exporter_config, fake_tdarr):
    """RequestClient talking to ``fake_tdarr`` without retry delays."""
    client = RequestClient(exporter_config, transport=httpx.MockTransport(fake_tdarr),
                           backoff=NO_BACKOFF)
    yield client
    client.close()


@pytest.fixture
def legacy_request_client(exporter_config, legacy_tdarr):
    """RequestClient talking to ``legacy_tdarr`` without retry delays."""
    client = RequestClient(exporter_config, transport=httpx.MockTransport(legacy_tdarr),
                           backoff=NO_BACKOFF)
    yield client
    client.close()

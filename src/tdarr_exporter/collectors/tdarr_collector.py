"""
prometheus_client collector running one collection cycle per scrape.
"""

import logging
from typing import Iterator, List

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..models.results import CycleStage
from ..validation.exceptions import CycleAborted
from .metrics import MetricAssembler
from .orchestrator import StatsOrchestrator

logger = logging.getLogger(__name__)


class TdarrCollector(Collector):
    """
    Custom collector for one Tdarr instance.

    ``describe`` returns no metrics so that registering the collector does not
    trigger a collection cycle; the metric set depends on the server's data.
    """

    def __init__(self, orchestrator: StatsOrchestrator, instance_label: str):
        self.orchestrator = orchestrator
        self.assembler = MetricAssembler(instance_label)

    def describe(self) -> List[GaugeMetricFamily]:
        return []

    def collect(self) -> Iterator[GaugeMetricFamily]:
        try:
            snapshot = self.orchestrator.run_cycle()
        except CycleAborted as e:
            yield self.assembler.error_family(e.cause)
            return

        logger.debug(f"Assembling metrics ({CycleStage.ASSEMBLE_METRICS.value})")
        yield from self.assembler.assemble(snapshot)

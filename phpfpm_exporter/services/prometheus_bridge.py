"""Expose collector results through prometheus_client."""

import asyncio
import logging
from typing import Dict, Iterable, Iterator, List, Optional

from prometheus_client import CollectorRegistry
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    Metric,
    UnknownMetricFamily,
)

from ..collectors.base import BaseCollector
from ..utils.metrics import MetricDescriptor, MetricObservation, ScrapeResult
from ..utils.status import ValueKind


def build_family(descriptor: MetricDescriptor) -> Metric:
    """
    Create an empty metric family for a descriptor.

    Counters not named `*_total` (all legacy ones, active_max_processes and
    listen_queue_max_connections) are exposed untyped: the text format
    appends `_total` to counters, which would rename them.
    """
    labels = list(descriptor.labels)
    if descriptor.kind is ValueKind.GAUGE:
        return GaugeMetricFamily(descriptor.fq_name, descriptor.documentation, labels=labels)
    if descriptor.fq_name.endswith("_total"):
        return CounterMetricFamily(descriptor.fq_name, descriptor.documentation, labels=labels)
    return UnknownMetricFamily(descriptor.fq_name, descriptor.documentation, labels=labels)


def build_families(observations: Iterable[MetricObservation]) -> List[Metric]:
    """
    Group observations into metric families in first-seen order.

    A repeated label set within one family keeps the last value.
    """
    values: Dict[MetricDescriptor, Dict[tuple, float]] = {}
    for observation in observations:
        values.setdefault(observation.descriptor, {})[observation.label_values] = observation.value

    families = []
    for descriptor, samples in values.items():
        family = build_family(descriptor)
        for label_values, value in samples.items():
            family.add_metric(list(label_values), value)
        families.append(family)
    return families


class PrometheusBridge:
    """
    Custom prometheus_client collector driving one scrape per collection.

    Register it on a dedicated registry with `create_registry()`; the legacy
    and current families share base names, which the default registry's
    duplicate check rejects.
    """

    def __init__(self, collector: BaseCollector, logger: logging.Logger):
        self.collector = collector
        self.logger = logger.getChild(self.__class__.__name__)
        self.last_result: Optional[ScrapeResult] = None

    def declare(self) -> List[Metric]:
        """Return an empty family for every metric the collector can emit."""
        return [build_family(d) for d in self.collector.describe()]

    def scrape(self) -> ScrapeResult:
        """Run one scrape on a fresh event loop of the calling thread."""
        return asyncio.run(self.collector.collect())

    def collect(self) -> Iterator[Metric]:
        result = self.scrape()
        self.last_result = result
        self.logger.debug(
            f"Scrape finished: up={int(result.up)}, "
            f"{len(result.observations)} observations in {result.duration_seconds:.3f}s"
        )
        yield from build_families(result.observations)


def create_registry(bridge: PrometheusBridge) -> CollectorRegistry:
    """Create a registry holding only the bridge."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(bridge)
    return registry

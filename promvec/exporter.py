"""Expose a promvec Collector through a prometheus_client registry."""
from typing import Dict, Iterator, List, Optional
import logging

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import (
    CounterMetricFamily,
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric as PromMetric,
)

from promvec.collectors import COUNTER, GAUGE
from promvec.exposition import format_label_value, format_number
from promvec.histogram import INF, Histogram
from promvec.registry import Collector

logger = logging.getLogger(__name__)


class PrometheusClientBridge:
    """
    prometheus_client custom collector backed by a promvec Collector.

    Lets a host reuse prometheus_client's exposition helpers
    (start_http_server, make_wsgi_app, generate_latest) instead of calling
    Collector.collect() itself. Triggers run before every scrape.
    """

    def __init__(self, collector: Collector, run_triggers: bool = True):
        self.collector = collector
        self.run_triggers = run_triggers

    def collect(self) -> Iterator[PromMetric]:
        if self.run_triggers:
            for error in self.collector.run_triggers():
                logger.warning(f"Trigger failed before scrape: {error}")

        children = self.collector.children()

        for child in children:
            try:
                if isinstance(child, Histogram):
                    yield self._histogram_family(child)
                elif child.type == COUNTER:
                    yield self._vector_family(CounterMetricFamily, child)
                elif child.type == GAUGE:
                    yield self._vector_family(GaugeMetricFamily, child)
            except Exception as e:
                logger.error(f"Failed to export collector {child.name}: {e}")

    def _vector_family(self, family_cls, child):
        names = _label_names([metric.labels for metric in child.vector.cells()])
        family = family_cls(child.name, child.help, labels=names)
        for metric in child.vector.cells():
            family.add_metric(_label_values(names, metric.labels), metric.value)
        return family

    def _histogram_family(self, histogram: Histogram) -> HistogramMetricFamily:
        counters = histogram.series()

        names = _label_names([counter.vector.static_labels for counter in counters])
        family = HistogramMetricFamily(histogram.name, histogram.help, labels=names)
        for counter in counters:
            labels = counter.vector.static_labels
            counts = histogram.get_buckets(labels)
            buckets = [
                (INF if boundary == INF else format_number(boundary), value)
                for boundary, value in counts.items()
            ]
            family.add_metric(
                _label_values(names, labels),
                buckets,
                histogram.gauge.labels(labels).value,
            )
        return family


def _label_names(label_sets) -> List[str]:
    names: Dict[str, None] = {}
    for labels in label_sets:
        for name in labels:
            names.setdefault(name, None)
    return list(names)


def _label_values(names: List[str], labels) -> List[str]:
    # Series missing a label render it as empty, as Prometheus does
    return [format_label_value(labels[name]) if name in labels else "" for name in names]


def register_bridge(collector: Collector, registry: Optional[CollectorRegistry] = None) -> CollectorRegistry:
    """Register ``collector`` with ``registry`` (a fresh one by default)."""
    registry = registry if registry is not None else CollectorRegistry()
    registry.register(PrometheusClientBridge(collector))
    return registry


def export_text(collector: Collector) -> str:
    """Render ``collector`` through prometheus_client's own text writer."""
    return generate_latest(register_bridge(collector)).decode('utf-8')

"""Counters and gauges: thin wrappers restricting how a MetricVector moves."""
from typing import Mapping, Optional

from promvec.config import CounterOptions, GaugeOptions, parse_options
from promvec.exceptions import NegativeValueError, NotFoundError
from promvec.exposition import format_header
from promvec.labels import merge
from promvec.metric import Metric, check_number
from promvec.tracing import MetricObserver, NULL_OBSERVER
from promvec.vector import MetricVector

COUNTER = "counter"
GAUGE = "gauge"
HISTOGRAM = "histogram"


class VectorCollector:
    """Shared plumbing for collectors backed by a single MetricVector."""

    type: str = ""
    options_model = CounterOptions

    def __init__(self, options: Optional[Mapping] = None, observer: MetricObserver = NULL_OBSERVER, **kwargs):
        opts = parse_options(self.options_model, options, **kwargs)
        self.options = opts
        self.name = opts.name
        self.help = opts.help
        self.observer = observer
        self.static_labels = merge(opts.parent_labels, opts.labels)
        self.vector = MetricVector(
            self.name,
            self.static_labels,
            observer=observer,
            **self._vector_options(opts),
        )

    def _vector_options(self, opts) -> dict:
        return {}

    def labels(self, labels: Optional[Mapping] = None) -> Metric:
        """
        Metric for ``labels``, created if it does not exist yet.

        No labels (None or {}) means the default metric.
        """
        return self.vector.get_or_create(labels)

    def get_value(self, labels: Optional[Mapping] = None):
        """Current value for ``labels``; raises NotFoundError if never created."""
        metric = self.vector.get_existing(labels)
        if metric is None:
            raise NotFoundError(f'{self.type} "{self.name}" has no series for labels {dict(labels or {})}')
        return metric.value

    def render(self) -> str:
        return format_header(self.name, self.help, self.type) + self.vector.render()

    def shutdown(self) -> None:
        self.vector.cancel_expiry()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, series={len(self.vector)})"


class Counter(VectorCollector):
    """A collector that only goes up, through add() and increment()."""

    type = COUNTER
    options_model = CounterOptions

    def increment(self, labels: Optional[Mapping] = None) -> None:
        self.add(1, labels)

    def add(self, value: float, labels: Optional[Mapping] = None) -> None:
        check_number(value)
        if value < 0:
            raise NegativeValueError(f"adding negative values to counters is not allowed: {value}")

        self.observer.counter_add(self.name, value, labels)
        self.labels(labels).add(value)


class Gauge(VectorCollector):
    """A collector that can move in either direction, or be set outright."""

    type = GAUGE
    options_model = GaugeOptions

    def _vector_options(self, opts) -> dict:
        return {
            "default_value": opts.default_value,
            "expires": opts.expires,
            "expiry_period": opts.expiry_period,
        }

    def add(self, value: float, labels: Optional[Mapping] = None) -> None:
        check_number(value)
        self.observer.gauge_add(self.name, value, labels)
        self.labels(labels).add(value)

    def set(self, value: float, labels: Optional[Mapping] = None) -> None:
        check_number(value)
        self.observer.gauge_set(self.name, value, labels)
        self.labels(labels).set(value)

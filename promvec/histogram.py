"""Histograms: one bucket counter per label combination plus a running sum."""
import math
import threading
from typing import Dict, List, Mapping, Optional, Union

from promvec.buckets import BucketStrategy, DynamicLogLinearBuckets, FixedBuckets
from promvec.collectors import HISTOGRAM, Counter, Gauge
from promvec.config import HistogramOptions, parse_options
from promvec.exceptions import InvalidLabelError, NegativeObservationError, NotFoundError
from promvec.exposition import format_header, format_sample
from promvec.labels import BUCKET_LABEL, LabelSet, merge, normalize
from promvec.metric import check_number
from promvec.tracing import MetricObserver, NULL_OBSERVER

INF = "+Inf"


class Histogram:
    """
    A series of Counters, one per label combination.

    Each Counter's MetricVector is keyed by the synthetic ``le`` label and
    holds cumulative bucket counts: the bucket at boundary B counts every
    observation <= B, and ``le="+Inf"`` counts all of them. A companion Gauge
    keeps the running sum for each combination.

    Which boundaries exist is decided by the bucket strategy, fixed
    (the default) or the legacy log-linear buckets grown on demand.
    """

    type = HISTOGRAM

    def __init__(self, options: Optional[Mapping] = None, observer: MetricObserver = NULL_OBSERVER, **kwargs):
        opts = parse_options(HistogramOptions, options, **kwargs)
        self.options = opts
        self.name = opts.name
        self.help = opts.help
        self.observer = observer
        self.static_labels = merge(opts.parent_labels, opts.labels)
        if BUCKET_LABEL in self.static_labels:
            raise InvalidLabelError(f'label "{BUCKET_LABEL}" is reserved for histogram buckets')

        self.strategy: BucketStrategy = opts.buckets
        self.counters: Dict[str, Counter] = {}
        self._lock = threading.Lock()

        # Tracks the _sum field, which is why it is a gauge
        self.gauge = Gauge(name=self.name, help=self.help, labels=self.static_labels, observer=observer)

    @property
    def buckets(self) -> Optional[List[float]]:
        """Configured boundaries, or None for dynamic buckets."""
        if isinstance(self.strategy, FixedBuckets):
            return list(self.strategy.boundaries)
        return None

    @property
    def dynamic(self) -> bool:
        return isinstance(self.strategy, DynamicLogLinearBuckets)

    def observe(self, value: float, labels: Optional[Mapping] = None) -> None:
        """
        Count ``value`` into every bucket it falls under.

        Buckets below the value are created at zero so every boundary shows
        up in the output. +Inf is always incremented and ``value`` is added
        to the running sum.
        """
        check_number(value)
        if value < 0:
            raise NegativeObservationError(f"observe must be called with a value >= 0: {value}")

        counter = self.labels(labels)
        self.observer.histogram_observe(self.name, value, labels)

        vector = counter.vector
        with vector.lock:
            if self.strategy.resolve(value, counter):
                for boundary in vector.buckets:
                    if value <= boundary:
                        counter.increment({BUCKET_LABEL: boundary})
                    else:
                        counter.labels({BUCKET_LABEL: boundary})

            counter.increment({BUCKET_LABEL: INF})
            self.gauge.add(value, counter.static_labels)

    def labels(self, labels: Optional[Mapping] = None) -> Counter:
        """Bucket counter for ``labels``, created along with its sum slot."""
        combination = self._combination(labels)
        with self._lock:
            counter = self.counters.get(combination.key)
            if counter is not None:
                return counter

            counter = Counter(
                name=self.name,
                help=self.help,
                labels=combination.to_dict(),
                observer=self.observer,
            )
            counter.vector.add_buckets(self.strategy.initial())
            self.gauge.labels(combination)
            self.counters[combination.key] = counter
            return counter

    def series(self) -> List[Counter]:
        """Bucket counters for every label combination seen so far."""
        with self._lock:
            return list(self.counters.values())

    def get_value(self, labels: Optional[Mapping] = None, le: Union[float, str] = INF):
        return self.get_bucket(le, labels)

    def get_count(self, labels: Optional[Mapping] = None):
        return self.get_bucket(INF, labels)

    def get_sum(self, labels: Optional[Mapping] = None):
        counter = self._existing(labels)
        return self.gauge.get_value(counter.static_labels)

    def get_bucket(self, le: Union[float, str], labels: Optional[Mapping] = None):
        """Cumulative count at boundary ``le`` (a number or "+Inf")."""
        counter = self._existing(labels)
        metric = counter.vector.get_existing({BUCKET_LABEL: _boundary(le)})
        if metric is None:
            raise NotFoundError(f'histogram "{self.name}" has no bucket le="{le}" for labels {dict(labels or {})}')
        return metric.value

    def get_buckets(self, labels: Optional[Mapping] = None) -> Dict[Union[float, str], float]:
        """Boundary -> cumulative count for one combination, ascending, +Inf last."""
        counter = self._existing(labels)
        with counter.vector.lock:
            counts = {}
            for boundary in counter.vector.buckets:
                metric = counter.vector.get_existing({BUCKET_LABEL: boundary})
                counts[boundary] = metric.value if metric else 0
            inf = counter.vector.get_existing({BUCKET_LABEL: INF})
            counts[INF] = inf.value if inf else 0
        return counts

    def render(self) -> str:
        """
        Serialize every combination as bucket lines plus _count and _sum.

        The _count line carries the same value as the +Inf bucket.
        """
        lines = [format_header(self.name, self.help, self.type)]

        for counter in self.series():
            vector = counter.vector
            with vector.lock:
                for boundary in vector.buckets:
                    metric = vector.get_or_create({BUCKET_LABEL: boundary})
                    lines.append(format_sample(self.name, metric.labels, metric.value))

                inf = vector.get_or_create({BUCKET_LABEL: INF})
                lines.append(format_sample(self.name, inf.labels, inf.value))

            combination = vector.static_labels
            total = self.gauge.labels(combination).value
            lines.append(format_sample(f"{self.name}_count", combination, inf.value))
            lines.append(format_sample(f"{self.name}_sum", combination, total))

        return "".join(lines)

    def shutdown(self) -> None:
        self.gauge.shutdown()

    def _combination(self, labels: Optional[Mapping]) -> LabelSet:
        pairs = normalize(labels)
        if BUCKET_LABEL in pairs:
            raise InvalidLabelError(f'label "{BUCKET_LABEL}" is reserved for histogram buckets')
        return LabelSet(merge(self.static_labels, pairs))

    def _existing(self, labels: Optional[Mapping]) -> Counter:
        combination = self._combination(labels)
        with self._lock:
            counter = self.counters.get(combination.key)
        if counter is None:
            raise NotFoundError(f'histogram "{self.name}" has no series for labels {dict(labels or {})}')
        return counter

    def __repr__(self) -> str:
        return f"Histogram(name={self.name!r}, strategy={self.strategy!r}, series={len(self.counters)})"


def _boundary(le: Union[float, str]):
    if isinstance(le, str):
        if le in (INF, "Inf", "inf"):
            return INF
        try:
            le = float(le)
        except ValueError:
            raise NotFoundError(f'no bucket le="{le}"') from None
    if math.isinf(le):
        return INF
    return int(le) if float(le).is_integer() else float(le)

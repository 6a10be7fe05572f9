"""Collection of metrics sharing one name, keyed by label set."""
import bisect
import threading
from typing import Dict, Iterable, List, Mapping, Optional

from promvec.exposition import format_sample
from promvec.labels import LabelSet, normalize
from promvec.metric import DEFAULT_EXPIRY_PERIOD_MS, Metric
from promvec.tracing import MetricObserver, NULL_OBSERVER


class MetricVector:
    """
    Keeps track of many metrics under one name.

    Web requests counted by method and return code are logically one metric
    with many label combinations; each combination gets its own Metric here.
    Static labels are applied to every metric, and the metric holding only
    the static labels is the "default" one.

    The cell map and the histogram bucket list are guarded by ``lock`` so
    create-or-get never produces two metrics for the same label set.
    """

    def __init__(
        self,
        name: str,
        labels: Optional[Mapping] = None,
        default_value: float = 0,
        expires: bool = False,
        expiry_period: float = DEFAULT_EXPIRY_PERIOD_MS,
        observer: MetricObserver = NULL_OBSERVER,
    ):
        self.name = name
        self.static_labels = normalize(labels)
        self.default_value = default_value
        self.expires = expires
        self.expiry_period = expiry_period
        self.observer = observer

        self.lock = threading.RLock()
        self.metrics: Dict[str, Metric] = {}

        # Used by histograms
        self.buckets: List[float] = []

    def get_default(self) -> Metric:
        """Metric carrying only the static labels, created on first use."""
        with self.lock:
            metric = self.metrics.get(self.static_labels.key)
            if metric is None:
                metric = self._create(self.static_labels)
            return metric

    def get_or_create(self, labels: Optional[Mapping] = None) -> Metric:
        if not labels:
            return self.get_default()

        # Labels equal to the static ones hash to the default metric's key
        full = self.static_labels.merge(normalize(labels))
        with self.lock:
            metric = self.metrics.get(full.key)
            if metric is None:
                metric = self._create(full)
            return metric

    def get_existing(self, labels: Optional[Mapping] = None) -> Optional[Metric]:
        """Previously created metric for ``labels``, or None."""
        full = self.static_labels.merge(normalize(labels)) if labels else self.static_labels
        with self.lock:
            return self.metrics.get(full.key)

    def is_default(self, metric: Metric) -> bool:
        return metric.labels.key == self.static_labels.key

    def add_buckets(self, boundaries: Iterable[float]) -> None:
        """Merge ``boundaries`` into the sorted, de-duplicated bucket list."""
        with self.lock:
            for boundary in boundaries:
                idx = bisect.bisect_left(self.buckets, boundary)
                if idx == len(self.buckets) or self.buckets[idx] != boundary:
                    self.buckets.insert(idx, boundary)

    def cells(self) -> List[Metric]:
        with self.lock:
            return list(self.metrics.values())

    def cancel_expiry(self) -> None:
        for metric in self.cells():
            metric.cancel_expiry()

    def render(self) -> str:
        """
        Serialize every metric as Prometheus sample lines, e.g.

        http_requests_completed{method="getmetrics",code="200"} 505
        http_requests_completed{method="getstorage",code="404"} 1
        """
        return "".join(
            format_sample(self.name, metric.labels, metric.value)
            for metric in self.cells()
        )

    def _create(self, labels: LabelSet) -> Metric:
        # caller holds self.lock
        metric = Metric(
            labels=labels,
            default_value=self.default_value,
            expires=self.expires,
            expiry_period=self.expiry_period,
            observer=self.observer,
        )
        self.metrics[labels.key] = metric
        self.observer.create_metric(self.name, labels)
        return metric

    def __len__(self) -> int:
        return len(self.metrics)

"""In-process Prometheus metrics: counters, gauges and histograms over label vectors."""
from promvec.buckets import (
    DEFAULT_BUCKETS,
    BucketStrategy,
    DynamicLogLinearBuckets,
    FixedBuckets,
    exponential_buckets,
    linear_buckets,
    log_linear_buckets,
)
from promvec.collectors import COUNTER, GAUGE, HISTOGRAM, Counter, Gauge
from promvec.exceptions import (
    AlreadyRegisteredError,
    CollectionError,
    InvalidLabelError,
    MetricsError,
    NegativeObservationError,
    NegativeValueError,
    NotFoundError,
    TypeConflictError,
    UnsupportedFormatError,
    ValidationError,
)
from promvec.exposition import CONTENT_TYPE, FMT_PROM, FMT_PROM_0_0_4
from promvec.histogram import Histogram
from promvec.labels import LabelSet, canonical_hash
from promvec.registry import Collector, create_collector
from promvec.tracing import LoggingObserver, MetricObserver, NullObserver

__all__ = [
    "Collector", "create_collector", "Counter", "Gauge", "Histogram",
    "COUNTER", "GAUGE", "HISTOGRAM",
    "FMT_PROM", "FMT_PROM_0_0_4", "CONTENT_TYPE",
    "LabelSet", "canonical_hash",
    "BucketStrategy", "FixedBuckets", "DynamicLogLinearBuckets", "DEFAULT_BUCKETS",
    "linear_buckets", "exponential_buckets", "log_linear_buckets",
    "MetricObserver", "NullObserver", "LoggingObserver",
    "MetricsError", "ValidationError", "InvalidLabelError", "NegativeValueError",
    "NegativeObservationError", "NotFoundError", "TypeConflictError",
    "AlreadyRegisteredError", "UnsupportedFormatError", "CollectionError",
]

"""Optional observer hooks fired on metric operations."""
import logging
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


class MetricObserver:
    """
    Receives a callback for every metric operation.

    Subclass and override the probes you care about; every probe is a no-op
    by default. Observers are injected through ``Collector(observer=...)``.
    """

    def counter_add(self, name: str, value: float, labels: Optional[Mapping]) -> None:
        pass

    def gauge_add(self, name: str, value: float, labels: Optional[Mapping]) -> None:
        pass

    def gauge_set(self, name: str, value: float, labels: Optional[Mapping]) -> None:
        pass

    def histogram_observe(self, name: str, value: float, labels: Optional[Mapping]) -> None:
        pass

    def create_metric(self, name: str, labels: Mapping) -> None:
        pass

    def metric_add(self, value: float, labels: Mapping) -> None:
        pass

    def metric_set(self, value: float, labels: Mapping) -> None:
        pass

    def metric_reset(self, value: float, labels: Mapping) -> None:
        pass


class NullObserver(MetricObserver):
    """Default observer, does nothing."""


class LoggingObserver(MetricObserver):
    """Logs every probe at DEBUG level."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def counter_add(self, name, value, labels):
        self.log.debug(f"counter-add {name} value={value} labels={dict(labels or {})}")

    def gauge_add(self, name, value, labels):
        self.log.debug(f"gauge-add {name} value={value} labels={dict(labels or {})}")

    def gauge_set(self, name, value, labels):
        self.log.debug(f"gauge-set {name} value={value} labels={dict(labels or {})}")

    def histogram_observe(self, name, value, labels):
        self.log.debug(f"histogram-observe {name} value={value} labels={dict(labels or {})}")

    def create_metric(self, name, labels):
        self.log.debug(f"create-metric {name} labels={dict(labels)}")

    def metric_add(self, value, labels):
        self.log.debug(f"metric-add value={value} labels={dict(labels)}")

    def metric_set(self, value, labels):
        self.log.debug(f"metric-set value={value} labels={dict(labels)}")

    def metric_reset(self, value, labels):
        self.log.debug(f"metric-reset value={value} labels={dict(labels)}")


NULL_OBSERVER = NullObserver()

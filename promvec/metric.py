"""Single labeled accumulator, the building block of every collector."""
import math
import threading
import time
from typing import Optional

from promvec.labels import LabelSet
from promvec.tracing import MetricObserver, NULL_OBSERVER

# 5 minutes
DEFAULT_EXPIRY_PERIOD_MS = 300000


def check_number(value, name: str = "value") -> None:
    """Reject anything that is not an int or float (bool included)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    if math.isnan(value):
        raise TypeError(f"{name} must be a number, got NaN")


class Metric:
    """
    A single named and labeled value.

    Not intended to be used directly; counters and gauges wrap it and
    restrict which operations are allowed. Sign checks belong to those
    layers, this object accepts any number.

    When ``expires`` is set, every mutation (re)arms a timer that resets the
    value to ``default_value`` once ``expiry_period`` milliseconds pass
    without another mutation.
    """

    def __init__(
        self,
        labels: Optional[LabelSet] = None,
        default_value: float = 0,
        expires: bool = False,
        expiry_period: float = DEFAULT_EXPIRY_PERIOD_MS,
        observer: MetricObserver = NULL_OBSERVER,
    ):
        check_number(default_value, "default_value")
        check_number(expiry_period, "expiry_period")

        self.labels = labels if labels is not None else LabelSet()
        self.default_value = default_value
        self.value = default_value
        self.timestamp = 0
        self.expires = expires
        self.expiry_period = expiry_period
        self.observer = observer

        self._lock = threading.Lock()
        self._expiry_timer: Optional[threading.Timer] = None

    def add(self, delta: float) -> None:
        check_number(delta, "delta")
        with self._lock:
            self.value += delta
            self._touch()
        self.observer.metric_add(delta, self.labels)

    def set(self, value: float) -> None:
        check_number(value)
        with self._lock:
            self.value = value
            self._touch()
        self.observer.metric_set(value, self.labels)

    def get_value(self) -> float:
        return self.value

    def reset(self) -> None:
        """Put the value back to its default and drop any pending expiry."""
        with self._lock:
            if self._expiry_timer is not None:
                self._expiry_timer.cancel()
            self._reset()
        self.observer.metric_reset(self.default_value, self.labels)

    def cancel_expiry(self) -> None:
        with self._lock:
            if self._expiry_timer is not None:
                self._expiry_timer.cancel()
                self._expiry_timer = None

    def _touch(self) -> None:
        # caller holds self._lock
        self.timestamp = _now_ms()
        if not self.expires:
            return

        if self._expiry_timer is not None:
            self._expiry_timer.cancel()
        timer = threading.Timer(self.expiry_period / 1000.0, self._expire)
        timer.daemon = True
        self._expiry_timer = timer
        timer.start()

    def _expire(self) -> None:
        with self._lock:
            # a later mutation replaced this timer
            if self._expiry_timer is not threading.current_thread():
                return
            self._reset()
        self.observer.metric_reset(self.default_value, self.labels)

    def _reset(self) -> None:
        self.value = self.default_value
        self.timestamp = _now_ms()
        self._expiry_timer = None

    def __repr__(self) -> str:
        return f"Metric(labels={self.labels.to_dict()!r}, value={self.value!r})"


def _now_ms() -> int:
    return int(time.time() * 1000)

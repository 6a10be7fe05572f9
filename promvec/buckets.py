"""Histogram bucket strategies and bucket list generators."""
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from promvec.exceptions import ValidationError

DEFAULT_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]

# Log-linear bucketing produces five linear steps per magnitude by default
DEFAULT_LINEAR_STEPS = 5
MAGNITUDE_FACTOR = 10

# Highest magnitude generated on demand; anything larger only lands in +Inf
MAX_MAGNITUDE = 10


def fix_decimals(value: float):
    """Keep 4 decimal places below 10, otherwise round up to an integer."""
    value = float(value)
    if value < 10:
        fixed = round(value, 4)
    else:
        fixed = float(math.ceil(value))
    return int(fixed) if fixed.is_integer() else fixed


def linear_buckets(min: float, width: float, count: int) -> List[float]:
    """``count`` buckets starting at ``min``, each ``width`` apart."""
    if width <= 0:
        raise ValidationError("width must be > 0")
    if count <= 0:
        raise ValidationError("count must be > 0")
    if min <= 0:
        raise ValidationError(f"min must be > 0, you probably want min={width}")

    return [fix_decimals(v) for v in min + width * np.arange(count)]


def exponential_buckets(min: float, factor: float, count: int) -> List[float]:
    """``count`` buckets starting at ``min``, each ``factor`` times the previous."""
    if min <= 0:
        raise ValidationError("min must be > 0")
    if factor <= 1:
        raise ValidationError("factor must be > 1")
    if count <= 0:
        raise ValidationError("count must be > 0")

    return [fix_decimals(v) for v in min * np.power(float(factor), np.arange(count))]


def log_linear_buckets(
    base: float,
    low_power: int,
    high_power: int,
    buckets_per_magnitude: int
) -> List[float]:
    """
    Generate log-linear buckets.

    For each magnitude from low_power to high_power, linear steps of width
    base^(magnitude+1) / buckets_per_magnitude are produced. Steps already
    covered at higher resolution by the previous magnitude are skipped.
    """
    if low_power >= high_power:
        raise ValidationError("low_power must be < high_power")
    if base <= 0:
        raise ValidationError("base must be positive")
    if buckets_per_magnitude <= 0:
        raise ValidationError("buckets_per_magnitude must be positive")

    buckets: List[float] = []
    prev_last = 0
    for exponent in range(low_power, high_power + 1):
        cur_last = float(base) ** (exponent + 1)
        step = cur_last / buckets_per_magnitude

        for value in np.arange(1, buckets_per_magnitude) * step:
            value = fix_decimals(value)
            if value > prev_last:
                buckets.append(value)

        # Push the last one without multiplying by step so it ends exactly
        buckets.append(fix_decimals(cur_last))
        prev_last = buckets[-1]

    return buckets


def check_buckets(boundaries: Sequence[float]) -> List[float]:
    """Validate an explicit bucket list: positive, finite, strictly increasing."""
    if isinstance(boundaries, (str, bytes)):
        raise ValidationError(f"buckets must be a sequence of numbers, got {boundaries!r}")

    checked: List[float] = []
    for boundary in boundaries:
        if isinstance(boundary, bool) or not isinstance(boundary, (int, float)):
            raise ValidationError(f"bucket {boundary!r} is not a number")
        if not math.isfinite(boundary) or boundary <= 0:
            raise ValidationError(f"bucket {boundary!r} must be a positive finite number")
        if checked and boundary <= checked[-1]:
            raise ValidationError(
                f"buckets must be monotonically increasing: {boundary} follows {checked[-1]}"
            )
        checked.append(int(boundary) if float(boundary).is_integer() else float(boundary))

    if not checked:
        raise ValidationError("at least one bucket is required")
    return checked


class BucketStrategy(ABC):
    """Decides the bucket boundaries a histogram series uses."""

    @abstractmethod
    def initial(self) -> List[float]:
        """Boundaries a new label combination starts with."""

    @abstractmethod
    def resolve(self, value: float, counter) -> bool:
        """
        Make sure ``counter`` knows every boundary ``value`` needs.

        Called with the counter's vector lock held. Returns False when the
        value is out of range and should only be counted in +Inf.
        """


class FixedBuckets(BucketStrategy):
    """Explicit boundaries configured up front."""

    def __init__(self, boundaries: Sequence[float] = None):
        self.boundaries = check_buckets(DEFAULT_BUCKETS if boundaries is None else boundaries)

    def initial(self) -> List[float]:
        return list(self.boundaries)

    def resolve(self, value, counter) -> bool:
        return True

    def __repr__(self) -> str:
        return f"FixedBuckets({self.boundaries!r})"


class DynamicLogLinearBuckets(BucketStrategy):
    """
    Legacy buckets grown on demand, one magnitude at a time.

    Each magnitude has ``steps`` linear points starting where the previous
    one ended: [1, 3, 5, 7, 9], [9, 27, 45, 63, 81], [81, 243, ...] and so
    on up to MAX_MAGNITUDE. When a magnitude is introduced after values were
    already observed, the count of the largest known boundary below it is
    copied into its new boundaries so the buckets stay cumulative.
    """

    def __init__(self, steps: int = DEFAULT_LINEAR_STEPS):
        if isinstance(steps, bool) or not isinstance(steps, int) or steps <= 0:
            raise ValidationError(f"steps must be a positive integer, got {steps!r}")
        self.steps = steps

    def initial(self) -> List[float]:
        return []

    def order(self, value: float) -> Optional[List[float]]:
        """Boundaries of the magnitude ``value`` falls into, or None if too big."""
        start = 1
        for _ in range(MAX_MAGNITUDE + 1):
            stop = start * MAGNITUDE_FACTOR
            width = stop / self.steps if stop > self.steps else 1
            count = int((stop - start) // width) + 1
            points = [fix_decimals(p) for p in start + width * np.arange(count)]
            if value <= points[-1]:
                return points
            # Magnitudes overlap: [1-9], [9-81], [81-729]
            start = points[-1]
        return None

    def resolve(self, value, counter) -> bool:
        order = self.order(value)
        if order is None:
            return False

        known = counter.vector.buckets
        target = next(b for b in order if value <= b)
        if target in known:
            return True

        new = [b for b in order if b not in known]
        smaller = max((b for b in known if b < new[0]), default=None)
        if smaller is not None:
            count = counter.labels({"le": smaller}).value
            if count > 0:
                for boundary in new:
                    # Never double an overlapping bucket
                    if boundary != smaller:
                        counter.add(count, {"le": boundary})

        counter.vector.add_buckets(new)
        return True

    def __repr__(self) -> str:
        return f"DynamicLogLinearBuckets(steps={self.steps})"


def strategy_for(buckets) -> BucketStrategy:
    """Turn a ``buckets`` option into a strategy."""
    if isinstance(buckets, BucketStrategy):
        return buckets
    if buckets is None:
        return FixedBuckets()
    if isinstance(buckets, str):
        if buckets in ("log-linear", "dynamic"):
            return DynamicLogLinearBuckets()
        raise ValidationError(f"unknown bucket mode: {buckets!r}")
    return FixedBuckets(buckets)

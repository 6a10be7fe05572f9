#!/usr/bin/env python3
"""Tests for bucket generators."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from promvec.buckets import (
    DynamicLogLinearBuckets,
    FixedBuckets,
    exponential_buckets,
    fix_decimals,
    linear_buckets,
    log_linear_buckets,
    strategy_for,
)
from promvec.exceptions import ValidationError


def test_linear_buckets():
    assert linear_buckets(1, 1, 5) == [1, 2, 3, 4, 5]
    assert linear_buckets(0.5, 1.5, 3) == [0.5, 2, 3.5]


def test_exponential_buckets():
    assert exponential_buckets(1, 2, 5) == [1, 2, 4, 8, 16]
    assert exponential_buckets(0.5, 2, 3) == [0.5, 1, 2]


def test_log_linear_buckets():
    assert log_linear_buckets(10, 0, 1, 5) == [2, 4, 6, 8, 10, 20, 40, 60, 80, 100]
    assert log_linear_buckets(10, -1, 0, 5) == [0.2, 0.4, 0.6, 0.8, 1, 2, 4, 6, 8, 10]


def test_fix_decimals():
    assert fix_decimals(0.123456) == 0.1235
    assert fix_decimals(10.2) == 11
    assert fix_decimals(3.0) == 3
    assert isinstance(fix_decimals(3.0), int)


@pytest.mark.parametrize("args", [(0, 1, 5), (1, 0, 5), (1, 1, 0), (-1, 1, 5)])
def test_linear_invalid(args):
    with pytest.raises(ValidationError):
        linear_buckets(*args)


@pytest.mark.parametrize("args", [(0, 2, 5), (1, 1, 5), (1, 2, 0)])
def test_exponential_invalid(args):
    with pytest.raises(ValidationError):
        exponential_buckets(*args)


@pytest.mark.parametrize("args", [(10, 1, 1, 5), (0, 0, 1, 5), (10, 0, 1, 0)])
def test_log_linear_invalid(args):
    with pytest.raises(ValidationError):
        log_linear_buckets(*args)


def test_strategy_for():
    assert isinstance(strategy_for(None), FixedBuckets)
    assert isinstance(strategy_for([1, 2]), FixedBuckets)
    assert isinstance(strategy_for('log-linear'), DynamicLogLinearBuckets)
    assert isinstance(strategy_for('dynamic'), DynamicLogLinearBuckets)

    strategy = DynamicLogLinearBuckets(steps=3)
    assert strategy_for(strategy) is strategy


def test_fixed_buckets_accept_generators():
    strategy = FixedBuckets(exponential_buckets(1, 2, 4))
    assert strategy.initial() == [1, 2, 4, 8]

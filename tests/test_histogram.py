#!/usr/bin/env python3
"""Tests for fixed and dynamic histograms."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from promvec import Collector, DynamicLogLinearBuckets, Histogram
from promvec.buckets import DEFAULT_BUCKETS
from promvec.exceptions import (
    InvalidLabelError,
    NegativeObservationError,
    NotFoundError,
    ValidationError,
)


class TestFixedBuckets:
    """Histograms with configured boundaries."""

    def test_observe_counts_cumulatively(self):
        histogram = Histogram(name='request_latency', help='latency', buckets=[1, 2, 3, 4, 5])
        histogram.observe(2)

        assert histogram.get_buckets() == {1: 0, 2: 1, 3: 1, 4: 1, 5: 1, '+Inf': 1}
        assert histogram.get_count() == 1
        assert histogram.get_sum() == 2

        histogram.observe(0.5)
        assert histogram.get_buckets() == {1: 1, 2: 2, 3: 2, 4: 2, 5: 2, '+Inf': 2}
        assert histogram.get_sum() == 2.5

    def test_render(self):
        histogram = Histogram(name='request_latency', help='latency', buckets=[1, 2, 3, 4, 5])
        histogram.observe(2)

        assert histogram.render() == (
            '# HELP request_latency latency\n'
            '# TYPE request_latency histogram\n'
            'request_latency{le="1"} 0\n'
            'request_latency{le="2"} 1\n'
            'request_latency{le="3"} 1\n'
            'request_latency{le="4"} 1\n'
            'request_latency{le="5"} 1\n'
            'request_latency{le="+Inf"} 1\n'
            'request_latency_count{} 1\n'
            'request_latency_sum{} 2\n'
        )

    def test_render_is_idempotent(self):
        histogram = Histogram(name='request_latency', help='latency', buckets=[1, 5])
        histogram.observe(3, {'method': 'GET'})
        assert histogram.render() == histogram.render()

    def test_values_above_last_bucket_only_hit_inf(self):
        histogram = Histogram(name='request_latency', help='latency', buckets=[1, 5])
        histogram.observe(50)
        assert histogram.get_buckets() == {1: 0, 5: 0, '+Inf': 1}

    def test_value_on_boundary_counts(self):
        histogram = Histogram(name='request_latency', help='latency', buckets=[1, 5])
        histogram.observe(5)
        assert histogram.get_bucket(5) == 1
        assert histogram.get_bucket('5') == 1
        assert histogram.get_bucket(float('inf')) == 1
        assert histogram.get_value(le=1) == 0
        assert histogram.get_value() == 1

    def test_default_buckets(self):
        histogram = Histogram(name='request_latency', help='latency')
        assert histogram.buckets == DEFAULT_BUCKETS
        assert not histogram.dynamic

        histogram.observe(0.3)
        assert histogram.get_bucket(0.25) == 0
        assert histogram.get_bucket(0.5) == 1

    def test_labels_with_parent_labels(self):
        collector = Collector(labels={'service': 'muskie'})
        histogram = collector.histogram(name='latency', help='latency', buckets=[1, 10])
        histogram.observe(5, {'method': 'putobject'})

        text = histogram.render()
        assert 'latency{service="muskie",method="putobject",le="1"} 0\n' in text
        assert 'latency{service="muskie",method="putobject",le="10"} 1\n' in text
        assert 'latency{service="muskie",method="putobject",le="+Inf"} 1\n' in text
        assert 'latency_count{service="muskie",method="putobject"} 1\n' in text
        assert 'latency_sum{service="muskie",method="putobject"} 5\n' in text

    def test_combinations_are_independent(self):
        histogram = Histogram(name='latency', help='latency', buckets=[1, 10])
        histogram.observe(5, {'method': 'GET'})
        histogram.observe(5, {'method': 'GET'})
        histogram.observe(0.5, {'method': 'PUT'})

        assert histogram.get_count({'method': 'GET'}) == 2
        assert histogram.get_sum({'method': 'GET'}) == 10
        assert histogram.get_buckets({'method': 'PUT'}) == {1: 1, 10: 1, '+Inf': 1}
        assert len(histogram.series()) == 2

    @pytest.mark.parametrize("buckets", [
        [1, 5, 10, 100, 50, 1000],
        [1, 1, 2],
        [0, 1],
        [-1, 1],
        [1, float('inf')],
        ['a', 'b'],
        [],
    ])
    def test_invalid_buckets(self, buckets):
        with pytest.raises(ValidationError):
            Histogram(name='latency', help='latency', buckets=buckets)

    def test_negative_observation(self):
        histogram = Histogram(name='latency', help='latency', buckets=[1])
        with pytest.raises(NegativeObservationError):
            histogram.observe(-1)

    def test_non_number_observation(self):
        histogram = Histogram(name='latency', help='latency', buckets=[1])
        with pytest.raises(TypeError):
            histogram.observe('1')

    def test_le_label_reserved(self):
        histogram = Histogram(name='latency', help='latency', buckets=[1])
        with pytest.raises(InvalidLabelError):
            histogram.observe(1, {'le': '5'})
        with pytest.raises(InvalidLabelError):
            Histogram(name='latency', help='latency', labels={'le': '1'})

    def test_lookups_before_observation(self):
        histogram = Histogram(name='latency', help='latency', buckets=[1])
        with pytest.raises(NotFoundError):
            histogram.get_count()
        histogram.observe(0.5)
        with pytest.raises(NotFoundError):
            histogram.get_bucket(2)
        with pytest.raises(NotFoundError):
            histogram.get_bucket('abc')


class TestDynamicBuckets:
    """Legacy log-linear buckets created on demand."""

    def test_first_magnitude(self):
        histogram = Histogram(name='latency', help='latency', buckets='log-linear')
        assert histogram.dynamic
        assert histogram.buckets is None

        histogram.observe(1)
        assert histogram.get_buckets() == {1: 1, 3: 1, 5: 1, 7: 1, 9: 1, '+Inf': 1}

    def test_lower_buckets_render_zero(self):
        collector = Collector(labels={'service': 'muskie'})
        histogram = collector.histogram(name='latency', help='latency', buckets='log-linear')
        histogram.observe(99)

        text = histogram.render()
        assert 'latency{service="muskie",le="81"} 0\n' in text
        for le in (243, 405, 567, 729):
            assert f'latency{{service="muskie",le="{le}"}} 1\n' in text
        assert 'latency{service="muskie",le="+Inf"} 1\n' in text
        assert 'latency_count{service="muskie"} 1\n' in text
        assert 'latency_sum{service="muskie"} 99\n' in text

    def test_new_magnitude_copies_lower_count(self):
        histogram = Histogram(name='latency', help='latency', buckets=DynamicLogLinearBuckets())
        histogram.observe(1)
        histogram.observe(100)

        assert histogram.get_buckets() == {
            1: 1, 3: 1, 5: 1, 7: 1, 9: 1,
            81: 1, 243: 2, 405: 2, 567: 2, 729: 2,
            '+Inf': 2,
        }
        assert histogram.get_count() == 2
        assert histogram.get_sum() == 101

    def test_out_of_order_observations_stay_cumulative(self):
        histogram = Histogram(name='latency', help='latency', buckets='log-linear')
        for _ in range(3):
            histogram.observe(10)
        histogram.observe(6157)
        histogram.observe(4788)

        strategy = histogram.strategy
        boundary = next(b for b in strategy.order(4788) if 4788 <= b)
        assert boundary == 5103

        assert histogram.get_bucket(81) == 3
        assert histogram.get_bucket(729) == 3
        assert histogram.get_bucket(3645) == 3
        assert histogram.get_bucket(5103) == 4
        assert histogram.get_bucket(6561) == 5
        assert histogram.get_count() == 5
        assert histogram.get_sum() == 10975

        counts = list(histogram.get_buckets().values())
        assert counts == sorted(counts)

    def test_magnitudes(self):
        strategy = DynamicLogLinearBuckets()
        assert strategy.order(0) == [1, 3, 5, 7, 9]
        assert strategy.order(9) == [1, 3, 5, 7, 9]
        assert strategy.order(10) == [9, 27, 45, 63, 81]
        assert strategy.order(100) == [81, 243, 405, 567, 729]
        assert strategy.order(6157) == [729, 2187, 3645, 5103, 6561]

    def test_beyond_largest_magnitude_only_inf(self):
        histogram = Histogram(name='latency', help='latency', buckets='log-linear')
        histogram.observe(10 ** 11)

        assert histogram.get_buckets() == {'+Inf': 1}
        assert histogram.get_sum() == 10 ** 11

    def test_small_values(self):
        histogram = Histogram(name='latency', help='latency', buckets='log-linear')
        histogram.observe(0)
        histogram.observe(0.5)
        assert histogram.get_bucket(1) == 2
        assert histogram.get_count() == 2

    def test_unknown_bucket_mode(self):
        with pytest.raises(ValidationError):
            Histogram(name='latency', help='latency', buckets='quadratic')

    def test_invalid_steps(self):
        with pytest.raises(ValidationError):
            DynamicLogLinearBuckets(steps=0)

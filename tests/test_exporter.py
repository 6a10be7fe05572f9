#!/usr/bin/env python3
"""Test the prometheus_client bridge."""
import sys
from pathlib import Path

from prometheus_client import CollectorRegistry, generate_latest

sys.path.insert(0, str(Path(__file__).parent.parent))

from promvec import Collector
from promvec.exporter import PrometheusClientBridge, export_text, register_bridge


def build_collector():
    collector = Collector(labels={'service': 'muskie'})
    collector.counter(name='requests', help='requests served').add(5, {'code': 200})
    collector.gauge(name='connections', help='open connections').set(3, {'component': 'cueball'})
    collector.histogram(name='latency', help='latency', buckets=[1, 2]).observe(2)
    return collector


def test_export_counter_and_gauge():
    output = export_text(build_collector())

    assert 'requests_total{service="muskie",code="200"} 5.0' in output
    assert 'connections{service="muskie",component="cueball"} 3.0' in output


def test_export_histogram():
    output = export_text(build_collector())

    assert 'latency_bucket{service="muskie",le="1"} 0.0' in output
    assert 'latency_bucket{service="muskie",le="2"} 1.0' in output
    assert 'latency_bucket{service="muskie",le="+Inf"} 1.0' in output
    assert 'latency_count{service="muskie"} 1.0' in output
    assert 'latency_sum{service="muskie"} 2.0' in output


def test_register_into_existing_registry():
    registry = CollectorRegistry()
    collector = Collector()
    counter = collector.counter(name='scrapes', help='scrapes')
    collector.add_trigger_function(lambda c: counter.increment({'source': 'bridge'}))

    assert register_bridge(collector, registry) is registry

    output = generate_latest(registry).decode('utf-8')
    assert 'scrapes_total{source="bridge"} 1.0' in output


def test_trigger_failure_does_not_break_scrape():
    collector = Collector()
    collector.gauge(name='depth', help='queue depth').set(1, {'queue': 'a'})

    def boom(c):
        raise RuntimeError("boom")

    collector.add_trigger_function(boom)
    registry = CollectorRegistry()
    registry.register(PrometheusClientBridge(collector))

    output = generate_latest(registry).decode('utf-8')
    assert 'depth{queue="a"} 1.0' in output

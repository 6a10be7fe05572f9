"""Top-level Collector: owns named child collectors and serializes them."""
import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Mapping, Optional, Union

from promvec.collectors import COUNTER, GAUGE, HISTOGRAM, Counter, Gauge
from promvec.config import CollectorOptions, LibraryConfig, parse_options
from promvec.exceptions import (
    AlreadyRegisteredError,
    CollectionError,
    TypeConflictError,
    UnsupportedFormatError,
    ValidationError,
)
from promvec.exposition import FMT_PROM, SUPPORTED_FORMATS
from promvec.histogram import Histogram
from promvec.tracing import MetricObserver, NULL_OBSERVER

logger = logging.getLogger(__name__)

# Bounded fan-out when collecting
MAX_CONCURRENT_RENDERS = 10
MAX_CONCURRENT_TRIGGERS = 5

ChildCollector = Union[Counter, Gauge, Histogram]
TriggerFunction = Callable[["Collector"], object]

CHILD_TYPES = {
    COUNTER: Counter,
    GAUGE: Gauge,
    HISTOGRAM: Histogram,
}


class Collector:
    """
    A mostly dumb parent holding every child collector.

    Children are created through counter(), gauge() and histogram() and kept
    in a registry so that:
    1) collect() serializes all of them at once, and
    2) asking for the same name again returns the existing child (and its
       accumulated values) instead of starting over.

    Static labels given here are inherited by every child.
    """

    def __init__(self, options: Optional[Mapping] = None, observer: Optional[MetricObserver] = None, **kwargs):
        opts = parse_options(CollectorOptions, options, **kwargs)
        self.static_labels = opts.labels
        self.observer = observer or NULL_OBSERVER

        self.registry: Dict[str, ChildCollector] = {}
        self.triggers: List[TriggerFunction] = []
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: LibraryConfig, observer: Optional[MetricObserver] = None) -> "Collector":
        """Build a collector and every child declared in ``config``."""
        collector = cls(labels=config.labels, observer=observer)
        for definition in config.metrics:
            collector.create_child(definition.type, **definition.options())
        logger.info(f"Created {len(config.metrics)} collectors from config")
        return collector

    def counter(self, options: Optional[Mapping] = None, **kwargs) -> Counter:
        return self.create_child(COUNTER, options, **kwargs)

    def gauge(self, options: Optional[Mapping] = None, **kwargs) -> Gauge:
        return self.create_child(GAUGE, options, **kwargs)

    def histogram(self, options: Optional[Mapping] = None, **kwargs) -> Histogram:
        return self.create_child(HISTOGRAM, options, **kwargs)

    def create_child(self, child_type: str, options: Optional[Mapping] = None, **kwargs) -> ChildCollector:
        """
        Create (or return the existing) child of ``child_type``.

        - Same name, same type: the existing child is returned.
        - Same name, different type: TypeConflictError.
        - Otherwise a new child inheriting this collector's labels is
          registered and returned.
        """
        if child_type not in CHILD_TYPES:
            raise ValidationError(f"Unknown collector type: {child_type}")

        opts = dict(options or {})
        opts.update(kwargs)
        name = opts.get("name")

        with self._lock:
            child = self.registry.get(name) if isinstance(name, str) else None
            if child is not None:
                if child.type != child_type:
                    raise TypeConflictError(
                        f'collector with name "{name}" already registered as a {child.type}'
                    )
                return child

            opts["parent_labels"] = self.static_labels
            opts.pop("parentLabels", None)
            child = CHILD_TYPES[child_type](opts, observer=self.observer)
            self._register(child)

        logger.debug(f"Registered {child_type} {child.name} with labels {child.static_labels}")
        return child

    def register(self, child: ChildCollector) -> None:
        """Register an externally built child; names must be unique."""
        with self._lock:
            self._register(child)

    def _register(self, child: ChildCollector) -> None:
        # caller holds self._lock
        if child.name in self.registry:
            raise AlreadyRegisteredError(f"collector with name already registered: {child.name}")
        self.registry[child.name] = child

    def get_collector(self, name: str) -> Optional[ChildCollector]:
        """The named child collector, or None."""
        with self._lock:
            return self.registry.get(name)

    def children(self) -> List[ChildCollector]:
        """Snapshot of the registered child collectors."""
        with self._lock:
            return list(self.registry.values())

    def add_trigger_function(self, fn: TriggerFunction) -> None:
        """
        Run ``fn(collector)`` before every collect().

        Triggers can refresh metrics from elsewhere (e.g. set a gauge from an
        external source). A trigger may return a coroutine, which is run to
        completion.
        """
        if not callable(fn):
            raise ValidationError(f"trigger must be callable, got {type(fn).__name__}")
        with self._lock:
            self.triggers.append(fn)

    def collect(self, fmt: str = FMT_PROM) -> str:
        """
        Serialize every child collector.

        Triggers run first, then children render concurrently. If any of
        them fail, a CollectionError holding every error (and the text of the
        children that did render) is raised once all work has finished.
        """
        if fmt not in SUPPORTED_FORMATS:
            raise UnsupportedFormatError(f"Unknown serialization format: {fmt}")

        errors: List[BaseException] = self.run_triggers()

        children = self.children()

        chunks: List[str] = []
        if children:
            with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_RENDERS, thread_name_prefix="promvec-render") as pool:
                futures = [(child, pool.submit(child.render)) for child in children]
                for child, future in futures:
                    try:
                        chunks.append(future.result())
                    except Exception as e:
                        logger.error(f"Failed to render collector {child.name}: {e}")
                        errors.append(e)

        text = "".join(chunks)
        if errors:
            raise CollectionError(errors, text)
        return text

    def run_triggers(self) -> List[BaseException]:
        """Run every trigger, at most MAX_CONCURRENT_TRIGGERS at a time; returns their errors."""
        with self._lock:
            triggers = list(self.triggers)
        if not triggers:
            return []

        errors: List[BaseException] = []
        with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_TRIGGERS, thread_name_prefix="promvec-trigger") as pool:
            futures = [(fn, pool.submit(self._call_trigger, fn)) for fn in triggers]
            for fn, future in futures:
                try:
                    future.result()
                except Exception as e:
                    logger.error(f"Trigger {getattr(fn, '__name__', fn)} failed: {e}")
                    errors.append(e)
        return errors

    def _call_trigger(self, fn: TriggerFunction) -> None:
        result = fn(self)
        if asyncio.iscoroutine(result):
            # Each worker thread has no running loop of its own
            asyncio.run(result)

    def shutdown(self) -> None:
        """Cancel pending gauge expiry timers."""
        children = self.children()
        for child in children:
            child.shutdown()

    def __repr__(self) -> str:
        return f"Collector(labels={self.static_labels!r}, collectors={sorted(self.registry)})"


def create_collector(options: Optional[Mapping] = None, **kwargs) -> Collector:
    return Collector(options, **kwargs)

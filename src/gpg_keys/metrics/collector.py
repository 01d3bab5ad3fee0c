"""Metrics collector — Prometheus counters and histograms for the key engine.

- ``gpg_keys_added_total`` counter, labelled by record kind (primary, subkey)
- ``gpg_keys_rejected_total`` counter, labelled by error code
- ``gpg_keys_deleted_total`` counter of deleted rows
- ``gpg_keys_add_key_histogram`` duration of add-key operations
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator


_PREFIX = "gpg_keys"


class MetricsCollector:
    """Low-level Prometheus collector that owns the registry.

    Use :class:`EngineMetrics` for the high-level tracking interface.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._registry

    def histogram(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Histogram:
        """Register and return a Histogram."""
        return Histogram(name, doc, labels, registry=self._registry)

    def counter(self, name: str, doc: str, labels: tuple[str, ...] = ()) -> Counter:
        """Register and return a Counter."""
        return Counter(name, doc, labels, registry=self._registry)


class EngineMetrics:
    """High-level key engine metrics.

    Histograms track operation duration in seconds.
    """

    def __init__(self, collector: MetricsCollector | None = None) -> None:
        self._collector = collector or MetricsCollector()

        self._added = self._collector.counter(
            f"{_PREFIX}_added",
            "Key records stored",
            ("kind",),
        )
        self._rejected = self._collector.counter(
            f"{_PREFIX}_rejected",
            "Key submissions rejected",
            ("code",),
        )
        self._deleted = self._collector.counter(
            f"{_PREFIX}_deleted",
            "Key records deleted",
        )
        self._add_key = self._collector.histogram(
            f"{_PREFIX}_add_key_histogram",
            "Duration of add key operations",
        )

    @property
    def registry(self) -> CollectorRegistry:
        """Return the underlying Prometheus registry."""
        return self._collector.registry

    def record_key_added(self, subkeys: int) -> None:
        """Count one stored primary key and its *subkeys*."""
        self._added.labels(kind="primary").inc()
        if subkeys:
            self._added.labels(kind="subkey").inc(subkeys)

    def record_rejection(self, code: str) -> None:
        """Count a rejected submission by error code."""
        self._rejected.labels(code=code).inc()

    def record_keys_deleted(self, count: int) -> None:
        """Count deleted rows."""
        if count:
            self._deleted.inc(count)

    @contextmanager
    def track_add_key(self) -> Iterator[None]:
        """Track the duration of an add-key operation."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._add_key.observe(time.monotonic() - start)

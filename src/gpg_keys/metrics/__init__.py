"""Metrics — Prometheus metrics collection."""

from __future__ import annotations

from gpg_keys.metrics.collector import EngineMetrics, MetricsCollector

__all__ = ["EngineMetrics", "MetricsCollector"]

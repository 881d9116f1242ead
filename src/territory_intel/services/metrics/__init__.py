"""Metric aggregation services."""

from .aggregator import METRICS, MetricsAggregator, UnknownMetricError, get_metric, value_range

__all__ = ["METRICS", "MetricsAggregator", "UnknownMetricError", "get_metric", "value_range"]

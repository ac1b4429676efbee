"""Monitoring infrastructure for pingbadge"""
from pingbadge.monitoring.prometheus_metrics import PrometheusMetrics, metrics

__all__ = [
    "PrometheusMetrics",
    "metrics",
]

"""Prometheus metrics definitions and helpers"""
import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, REGISTRY

from pingbadge.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self, enabled: Optional[bool] = None, registry: Optional[CollectorRegistry] = None):
        self._enabled = ENABLE_PROMETHEUS if enabled is None else enabled
        if not self._enabled:
            logger.info("Prometheus metrics disabled")
            return

        registry = registry or REGISTRY

        # Gamification Metrics
        self.points_awarded_total = Counter(
            'gamification_points_awarded_total',
            'Total points awarded',
            ['category'],
            registry=registry
        )

        self.achievements_total = Counter(
            'gamification_achievements_total',
            'Total achievements recorded',
            ['category'],
            registry=registry
        )

        self.level_ups_total = Counter(
            'gamification_level_ups_total',
            'Total level ups',
            registry=registry
        )

        # Storage Metrics
        self.store_operations_total = Counter(
            'gamification_store_operations_total',
            'Total snapshot store operations',
            ['operation', 'status'],
            registry=registry
        )

        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled

    def record_achievement(self, category: str, points: int) -> None:
        if not self._enabled:
            return
        self.achievements_total.labels(category=category).inc()
        if points:
            self.points_awarded_total.labels(category=category).inc(points)

    def record_level_up(self) -> None:
        if not self._enabled:
            return
        self.level_ups_total.inc()

    def record_store_operation(self, operation: str, status: str) -> None:
        """Record a store operation ('load'/'save') with status ('ok', 'miss', 'corrupt', 'error')"""
        if not self._enabled:
            return
        self.store_operations_total.labels(operation=operation, status=status).inc()


# Global metrics instance
metrics = PrometheusMetrics()

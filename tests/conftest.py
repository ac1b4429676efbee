"""Global test fixtures and utilities for pingbadge tests"""
import pytest
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from pingbadge.gamification.controller import GamificationController
from pingbadge.gamification.engine import GamificationEngine
from pingbadge.gamification.store import GamificationStore, InMemoryBackend
from pingbadge.monitoring.prometheus_metrics import PrometheusMetrics


TEST_TIMEZONE = ZoneInfo("Europe/Stockholm")


class FakeClock:
    """Settable, timezone-aware clock for day-boundary tests"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Clock fixed at 2026-10-18 09:00 Stockholm time"""
    return FakeClock(datetime(2026, 10, 18, 9, 0, tzinfo=TEST_TIMEZONE))


@pytest.fixture
def today(clock):
    return clock().date()


@pytest.fixture
def yesterday(today):
    return today - timedelta(days=1)


# ============================================================================
# Gamification Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "user-123"


@pytest.fixture
def disabled_metrics():
    return PrometheusMetrics(enabled=False)


@pytest.fixture
def engine():
    """Engine with the default rules"""
    return GamificationEngine()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend, disabled_metrics):
    return GamificationStore(backend, metrics=disabled_metrics)


@pytest.fixture
def controller(engine, store, clock, disabled_metrics):
    """Controller that has not been initialized yet"""
    return GamificationController(engine, store, clock=clock, metrics=disabled_metrics)


@pytest.fixture
def session(controller, test_user_id):
    """Controller initialized for the test user"""
    controller.initialize(test_user_id)
    return controller


@pytest.fixture
def events(session):
    """Events broadcast by the session controller"""
    received = []
    session.subscribe(received.append)
    return received

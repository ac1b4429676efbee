"""
GamificationController - per-session gamification orchestrator

Holds one user's snapshot in memory, applies engine-computed transitions,
writes through the store and broadcasts each mutation to display
subscribers (stats widget, points animation, level-up modal, daily banner).

Every mutating operation runs to completion, persists, and only then
notifies subscribers, so a subscriber always sees a consistent snapshot.

join_activity() trusts its caller: it must only be invoked after the remote
join has been confirmed. There is no rollback if that join is later undone.
"""

from datetime import date, datetime
from typing import Callable, Dict, List, Optional
from zoneinfo import ZoneInfo
import logging

from pingbadge.exceptions import GamificationStateError
from pingbadge.gamification.achievement_system import AchievementTrigger
from pingbadge.gamification.engine import GamificationEngine
from pingbadge.gamification.store import GamificationStore
from pingbadge.models.gamification import (
    Achievement,
    AchievementCategory,
    GamificationEvent,
    GamificationEventKind,
    GamificationSnapshot,
)
from pingbadge.monitoring.prometheus_metrics import PrometheusMetrics, metrics as default_metrics
from pingbadge.utils.datetime_helpers import now_in_timezone

logger = logging.getLogger(__name__)

Subscriber = Callable[[GamificationEvent], None]
Clock = Callable[[], datetime]


class GamificationController:
    """
    Stateful gamification orchestrator for one user session.

    Responsibilities:
    - Load or create the user's snapshot
    - Apply joins, daily bonuses and point awards through the engine
    - Keep level consistent with total points
    - Persist every mutation and broadcast it to subscribers
    - Buffer newly earned achievements for one-shot UI animations
    """

    def __init__(
        self,
        engine: GamificationEngine,
        store: GamificationStore,
        clock: Optional[Clock] = None,
        timezone: str = "UTC",
        metrics: Optional[PrometheusMetrics] = None
    ):
        """
        Initialize GamificationController.

        Args:
            engine: Pure gamification logic
            store: Snapshot persistence
            clock: Returns the current timezone-aware time; defaults to now in `timezone`
            timezone: IANA name of the owner's timezone for calendar-day boundaries
            metrics: Metrics container (module default if omitted)
        """
        self.engine = engine
        self.store = store
        tz = ZoneInfo(timezone)
        self._clock = clock or (lambda: now_in_timezone(tz))
        self.metrics = metrics or default_metrics

        self._user_id: Optional[str] = None
        self._snapshot: Optional[GamificationSnapshot] = None
        self._new_achievements: List[Achievement] = []
        self._subscribers: List[Subscriber] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, user_id: str) -> GamificationSnapshot:
        """
        Load the user's snapshot, creating a fresh one if none is stored

        Re-initializing for the user already loaded is a no-op.

        Returns:
            Copy of the current snapshot
        """
        if self._snapshot is not None and self._user_id == user_id:
            return self.snapshot

        if self._user_id is not None and self._user_id != user_id:
            logger.info(f"Switching gamification session from user {self._user_id} to {user_id}")
            self._new_achievements = []

        snapshot = self.store.load(user_id)
        if snapshot is None:
            snapshot = GamificationSnapshot.fresh(user_id)
            self.store.save(user_id, snapshot)
            logger.info(f"Created new gamification data for user {user_id}")
        else:
            # Level is derived, never trusted from storage
            snapshot.level = self.engine.level_for_points(snapshot.total_points)
            logger.debug(
                f"Loaded gamification data for user {user_id}: "
                f"{snapshot.total_points} points, level {snapshot.level}"
            )

        self._user_id = user_id
        self._snapshot = snapshot
        return self.snapshot

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    def _require_snapshot(self) -> GamificationSnapshot:
        if self._snapshot is None:
            raise GamificationStateError(
                "Gamification controller used before initialize()",
                operation="require_snapshot"
            )
        return self._snapshot

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber for mutation events

        Returns:
            Function that removes the subscription (safe to call twice)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _broadcast(self, event: GamificationEvent) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    f"Gamification subscriber {callback!r} failed on {event.kind.value}: {e}",
                    exc_info=True
                )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    def _award(
        self,
        snapshot: GamificationSnapshot,
        achievements: List[Achievement],
        now: datetime
    ) -> List[Achievement]:
        """
        Append achievements to the log, add their points and re-derive level

        Shared award path for every operation. Appends a 0-point level
        achievement when the level rises.

        Returns:
            All achievements recorded, level-ups included
        """
        recorded = []
        old_level = snapshot.level

        for achievement in achievements:
            snapshot.achievements.append(achievement)
            snapshot.total_points += achievement.points
            recorded.append(achievement)
            self.metrics.record_achievement(achievement.category.value, achievement.points)

        new_level = self.engine.level_for_points(snapshot.total_points)
        snapshot.level = new_level

        if new_level > old_level:
            level_up = self.engine.level_achievement(new_level, now)
            snapshot.achievements.append(level_up)
            recorded.append(level_up)
            self.metrics.record_level_up()
            self.metrics.record_achievement(level_up.category.value, 0)
            logger.info(f"User {snapshot.user_id} leveled up from {old_level} to {new_level}!")

        return recorded

    def _commit(
        self,
        kind: GamificationEventKind,
        snapshot: GamificationSnapshot,
        recorded: List[Achievement]
    ) -> GamificationEvent:
        """Persist, buffer new achievements, then broadcast"""
        if not self.store.save(snapshot.user_id, snapshot):
            logger.warning(
                f"Gamification update for user {snapshot.user_id} kept in memory only ({kind.value})"
            )

        self._new_achievements.extend(recorded)

        event = GamificationEvent(
            kind=kind,
            snapshot=snapshot.model_copy(deep=True),
            new_achievements=list(recorded),
            leveled_up=any(a.category == AchievementCategory.LEVEL for a in recorded),
        )
        self._broadcast(event)
        return event

    def add_points(self, points: int, reason: str) -> GamificationEvent:
        """
        Award points with a reason

        Always records a "points" achievement, re-derives level, persists
        and broadcasts.

        Raises:
            ValueError: If points is negative
        """
        if points < 0:
            raise ValueError(f"points must not be negative, got {points}")

        snapshot = self._require_snapshot()
        now = self._now()

        achievement = self.engine.points_achievement(snapshot, points, reason, now)
        recorded = self._award(snapshot, [achievement], now)

        logger.info(
            f"Awarded {points} points to user {snapshot.user_id}: {reason}. "
            f"Total: {snapshot.total_points}, Level: {snapshot.level}"
        )
        return self._commit(GamificationEventKind.POINTS_ADDED, snapshot, recorded)

    def join_activity(self) -> GamificationEvent:
        """
        Record a confirmed activity join for the current user

        Resets the same-day counter on a new calendar day, awards base
        points plus the combo bonus on exactly the third join of the day,
        and derives milestone achievements.
        """
        snapshot = self._require_snapshot()
        now = self._now()
        today = now.date()

        if snapshot.last_login_date == today:
            activities_joined_today = snapshot.activities_joined_today + 1
        else:
            activities_joined_today = 1

        snapshot.activities_joined_today = activities_joined_today
        snapshot.total_activities_joined += 1
        snapshot.last_login_date = today

        points = self.engine.points_for_activity_join(activities_joined_today)
        reason = self.engine.activity_join_reason(activities_joined_today)

        earned = [self.engine.points_achievement(snapshot, points, reason, now)]
        recorded = self._award(snapshot, earned, now)
        recorded += self._award(
            snapshot,
            self.engine.derive_achievements(snapshot, AchievementTrigger.ACTIVITY_JOIN, now),
            now
        )

        logger.info(
            f"User {snapshot.user_id} joined activity #{activities_joined_today} today "
            f"(+{points} points, total {snapshot.total_points})"
        )
        return self._commit(GamificationEventKind.ACTIVITY_JOINED, snapshot, recorded)

    def check_daily_bonus(self) -> bool:
        """
        Claim the daily login bonus if it has not been claimed today

        Returns:
            True if the bonus was awarded; False means no state change and
            no broadcast
        """
        snapshot = self._require_snapshot()
        now = self._now()
        today = now.date()

        if not self.engine.is_daily_bonus_available(snapshot.last_login_date, today):
            logger.debug(f"Daily bonus already claimed today by user {snapshot.user_id}")
            return False

        snapshot.streak_days = self.engine.next_streak(
            snapshot.last_login_date, today, snapshot.streak_days
        )
        snapshot.last_login_date = today
        snapshot.activities_joined_today = 0

        recorded = self._award(
            snapshot,
            self.engine.derive_achievements(snapshot, AchievementTrigger.DAILY_BONUS, now),
            now
        )

        logger.info(
            f"Daily bonus for user {snapshot.user_id}: streak {snapshot.streak_days} days, "
            f"total {snapshot.total_points} points"
        )
        self._commit(GamificationEventKind.DAILY_BONUS, snapshot, recorded)
        return True

    def clear_achievements(self) -> None:
        """Clear the one-shot animation buffer. The persisted log is untouched."""
        self._new_achievements = []

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> GamificationSnapshot:
        """Copy of the current snapshot"""
        return self._require_snapshot().model_copy(deep=True)

    @property
    def new_achievements(self) -> List[Achievement]:
        return list(self._new_achievements)

    @property
    def current_level(self) -> int:
        return self._snapshot.level if self._snapshot else 1

    @property
    def total_points(self) -> int:
        return self._snapshot.total_points if self._snapshot else 0

    @property
    def activities_joined_today(self) -> int:
        """Same-day join count, 0 if the stored count belongs to an earlier day"""
        if self._snapshot is None or self._snapshot.last_login_date != self._today():
            return 0
        return self._snapshot.activities_joined_today

    @property
    def streak_days(self) -> int:
        return self._snapshot.streak_days if self._snapshot else 0

    @property
    def next_level_threshold(self) -> int:
        return self.engine.next_level_threshold(self.current_level)

    @property
    def progress_to_next_level(self) -> float:
        if self._snapshot is None:
            return 0.0
        return self.engine.progress_to_next_level(self._snapshot.total_points, self._snapshot.level)

    @property
    def level_benefits(self) -> Optional[Dict[str, any]]:
        return self.engine.level_benefits(self.current_level)

    def _today(self) -> date:
        return self._now().date()

    def get_stats(self) -> Dict[str, any]:
        """
        Summary for the stats widget

        Returns:
            {
                'user_id': str,
                'total_points': int,
                'current_level': int,
                'next_level_threshold': int,
                'progress_to_next_level': float,
                'activities_joined_today': int,
                'total_activities_joined': int,
                'streak_days': int,
                'daily_bonus_available': bool,
                'level_benefits': dict | None,
                'achievement_count': int
            }
        """
        snapshot = self._require_snapshot()
        return {
            "user_id": snapshot.user_id,
            "total_points": snapshot.total_points,
            "current_level": snapshot.level,
            "next_level_threshold": self.next_level_threshold,
            "progress_to_next_level": self.progress_to_next_level,
            "activities_joined_today": self.activities_joined_today,
            "total_activities_joined": snapshot.total_activities_joined,
            "streak_days": snapshot.streak_days,
            "daily_bonus_available": self.engine.is_daily_bonus_available(
                snapshot.last_login_date, self._today()
            ),
            "level_benefits": self.level_benefits,
            "achievement_count": len(snapshot.achievements),
        }

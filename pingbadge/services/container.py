"""
Session Container - Dependency Injection Container

Builds the shared gamification infrastructure (engine, store) once and hands
out one controller per user session. Views receive the controller from here
instead of reaching for a global or a singleton.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging

from pingbadge import config
from pingbadge.gamification.controller import Clock, GamificationController
from pingbadge.gamification.engine import GamificationEngine
from pingbadge.gamification.store import GamificationStore, create_store

logger = logging.getLogger(__name__)


@dataclass
class SessionContainer:
    """
    Dependency container for gamification sessions.

    Infrastructure (engine, store) is injected or built from configuration.
    Controllers are lazy-created per user on first access.
    """

    engine: GamificationEngine
    store: GamificationStore
    timezone: str = "UTC"
    clock: Optional[Clock] = None

    _controllers: Dict[str, GamificationController] = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_config(cls, clock: Optional[Clock] = None) -> "SessionContainer":
        """
        Build a container from environment configuration

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config.validate_config()
        return cls(
            engine=GamificationEngine(config.get_rules()),
            store=create_store(),
            timezone=config.GAMIFICATION_TIMEZONE,
            clock=clock,
        )

    def controller_for(self, user_id: str) -> GamificationController:
        """
        Get the session controller for a user (lazy-created)

        A new controller is initialized and has its daily bonus evaluated,
        matching session start.
        """
        controller = self._controllers.get(user_id)
        if controller is None:
            controller = GamificationController(
                self.engine,
                self.store,
                clock=self.clock,
                timezone=self.timezone,
            )
            controller.initialize(user_id)
            controller.check_daily_bonus()
            self._controllers[user_id] = controller
            logger.debug(f"GamificationController instantiated for user {user_id}")
        return controller

    def end_session(self, user_id: str) -> None:
        """Drop a user's controller; the persisted snapshot stays"""
        if self._controllers.pop(user_id, None) is not None:
            logger.debug(f"Gamification session ended for user {user_id}")

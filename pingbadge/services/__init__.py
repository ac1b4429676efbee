"""
Service layer for pingbadge

Session-scoped wiring between the gamification core and its collaborators.
"""

from pingbadge.services.container import SessionContainer

__all__ = [
    "SessionContainer",
]

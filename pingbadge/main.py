"""Command line entry point: drive one gamification session against the configured store"""
import argparse
import logging
import sys

from pingbadge.config import LOG_LEVEL
from pingbadge.exceptions import ConfigurationError
from pingbadge.gamification.streak_system import format_streak_display
from pingbadge.models.gamification import GamificationEvent
from pingbadge.services.container import SessionContainer

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


def print_achievements(achievements) -> None:
    """Console stand-in for the points animation and level-up modal"""
    for achievement in achievements:
        points = f" (+{achievement.points})" if achievement.points else ""
        print(f"{achievement.icon} {achievement.name}{points}: {achievement.description}")


def print_stats(stats: dict) -> None:
    print(f"User:        {stats['user_id']}")
    print(f"Level:       {stats['current_level']} ({stats['progress_to_next_level']:.0f}% to next, "
          f"next at {stats['next_level_threshold']} points)")
    print(f"Points:      {stats['total_points']}")
    print(f"Today:       {stats['activities_joined_today']} activities joined")
    print(f"Lifetime:    {stats['total_activities_joined']} activities joined")
    print(f"Streak:      {format_streak_display(stats['streak_days'])}")
    benefits = stats["level_benefits"]
    if benefits:
        print(f"Benefits:    {', '.join(benefits['benefits'])}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="PingBadge gamification session")
    parser.add_argument("user_id", help="User identifier")
    parser.add_argument("action", choices=["status", "daily", "join", "add"], help="Action to perform")
    parser.add_argument("--points", type=int, default=0, help="Points to award (for add)")
    parser.add_argument("--reason", default="Manual award", help="Reason for the award (for add)")
    args = parser.parse_args(argv)

    try:
        container = SessionContainer.from_config()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}")
        return 2

    # Session start claims the daily bonus, so "daily" only reports the result
    controller = container.controller_for(args.user_id)
    claimed_today = bool(controller.new_achievements)
    print_achievements(controller.new_achievements)
    controller.clear_achievements()

    def on_event(event: GamificationEvent) -> None:
        print_achievements(event.new_achievements)

    controller.subscribe(on_event)

    if args.action == "join":
        controller.join_activity()
    elif args.action == "add":
        if args.points < 0:
            parser.error("--points must not be negative")
        controller.add_points(args.points, args.reason)
    elif args.action == "daily" and not claimed_today:
        print("Daily bonus already claimed today")

    print_stats(controller.get_stats())
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Tool: Badge Evaluator
Purpose: Unlock achievements whose condition has become true

Badges are a static catalogue; each entry pairs display data with a
predicate over cumulative user state. Evaluation is stateless and runs after
every progression mutation. Unlocks are one-way: a badge is never revoked,
even if the counter behind it later drops (a streak reset keeps streak_3).
"""

from copy import deepcopy
from dataclasses import dataclass
from typing import Callable

from microquest.logging_config import get_logger

from .models import Notice, User

logger = get_logger(__name__)


@dataclass(frozen=True)
class Badge:
    id: str
    title: str
    emoji: str
    description: str
    predicate: Callable[[User], bool]

    def to_dict(self, unlocked: bool = False) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "emoji": self.emoji,
            "description": self.description,
            "unlocked": unlocked,
        }


BADGES: tuple[Badge, ...] = (
    Badge("first_quest", "First Step", "🐣", "Complete your first micro-quest.",
          lambda u: u.total_completed_tasks >= 1),
    Badge("tasks_10", "Momentum", "🚀", "Complete 10 micro-quests.",
          lambda u: u.total_completed_tasks >= 10),
    Badge("tasks_50", "Unstoppable", "🏆", "Complete 50 micro-quests.",
          lambda u: u.total_completed_tasks >= 50),
    Badge("streak_3", "On Fire", "🔥", "Keep a 3-day streak.",
          lambda u: u.streak_count >= 3),
    Badge("streak_7", "Week Warrior", "📅", "Keep a 7-day streak.",
          lambda u: u.streak_count >= 7),
    Badge("focus_60", "Deep Focus", "🧘", "Log 60 minutes of focus.",
          lambda u: u.total_focus_minutes >= 60),
    Badge("level_5", "Rising Star", "⭐", "Reach level 5.",
          lambda u: u.level >= 5),
    Badge("gardener", "Gardener", "🌱", "Grow 5 plants in your garden.",
          lambda u: len(u.garden) >= 5),
    Badge("reflective", "Mindful", "📝", "Write your first reflection.",
          lambda u: len(u.feedback_history) >= 1),
)

BADGES_BY_ID = {b.id: b for b in BADGES}


def evaluate_badges(user: User) -> tuple[User, list[Notice]]:
    """
    Append every newly satisfied badge to unlocked_badges.

    Returns:
        (updated user, one badge_unlocked notice per new badge). Calling it
        again with unchanged state unlocks nothing.
    """
    updated = deepcopy(user)
    notices: list[Notice] = []
    unlocked = set(updated.unlocked_badges)

    for badge in BADGES:
        if badge.id in unlocked or not badge.predicate(updated):
            continue
        updated.unlocked_badges.append(badge.id)
        unlocked.add(badge.id)
        logger.info(f"Badge unlocked: {badge.id}")
        notices.append(
            Notice("badge_unlocked", f"{badge.emoji} Badge unlocked: {badge.title}", {"badge_id": badge.id})
        )

    return updated, notices


def badge_overview(user: User) -> list[dict]:
    unlocked = set(user.unlocked_badges)
    return [b.to_dict(b.id in unlocked) for b in BADGES]


__all__ = ["BADGES", "BADGES_BY_ID", "Badge", "badge_overview", "evaluate_badges"]

"""
Tool: Progression Engine
Purpose: XP ledger for task completions, reflections, cheers and purchases

All functions are pure reducers over User: they return an updated copy and
a list of notices. Level is derived from XP, so every XP mutation keeps
level == floor(total_xp / 1000) + 1. XP only goes down through spend_xp,
which is all-or-nothing.

Usage:
    from microquest.progression.engine import apply_task_completion

    user, notices = apply_task_completion(user, task, actual_minutes=9, today=date.today())
"""

from copy import deepcopy
from datetime import date

from microquest.learning import DEFAULT_PACING_WINDOW
from microquest.learning.pacing import calibrate
from microquest.logging_config import get_logger
from microquest.tasks.models import MicroTask

from . import XP_PER_LEVEL
from .models import Notice, User, level_for_xp
from .streaks import register_activity

logger = get_logger(__name__)


def _level_notices(before: int, after: int) -> list[Notice]:
    if after <= before:
        return []
    logger.info(f"Level up: {before} -> {after}")
    return [Notice("level_up", f"Level up! You reached level {after}.", {"level": after})]


def grant_xp(user: User, amount: int, reason: str = "") -> tuple[User, list[Notice]]:
    """Add XP (never negative) and report any level-up."""
    updated = deepcopy(user)
    if amount <= 0:
        return updated, []

    updated.total_xp += amount
    if reason:
        logger.debug(f"Granted {amount} XP for {reason}")
    return updated, _level_notices(user.level, updated.level)


def apply_task_completion(
    user: User,
    task: MicroTask,
    actual_minutes: int,
    today: date,
    window: int = DEFAULT_PACING_WINDOW,
) -> tuple[User, list[Notice]]:
    """
    Fold one finished quest into the ledger.

    Args:
        user: Current user (not modified)
        task: The completed quest (its xp_reward and estimate are used)
        actual_minutes: Measured focus time, already floored at 1
        today: Calendar day of the completion
        window: Pacing window for the accuracy ratio

    Returns:
        (updated user, notices)
    """
    updated, notices = grant_xp(user, max(0, task.xp_reward), reason=f"quest {task.id}")
    updated.total_completed_tasks += 1
    updated.total_focus_minutes += max(0, actual_minutes)

    updated = register_activity(updated, today)
    updated = calibrate(updated, actual_minutes, task.duration_est_min, window)

    return updated, notices


def apply_feedback_reward(user: User, amount: int) -> tuple[User, list[Notice]]:
    """Flat XP for a submitted reflection. Once-per-day is the caller's guard."""
    return grant_xp(user, amount, reason="reflection")


def spend_xp(user: User, cost: int) -> tuple[User, bool]:
    """Debit XP atomically. Insufficient balance leaves the user unchanged."""
    if cost < 0 or user.total_xp < cost:
        return deepcopy(user), False

    updated = deepcopy(user)
    updated.total_xp -= cost
    return updated, True


def level_progress(user: User) -> dict:
    """XP into the current level, for progress bars."""
    into_level = user.total_xp % XP_PER_LEVEL
    return {
        "level": user.level,
        "xp_into_level": into_level,
        "xp_to_next": XP_PER_LEVEL - into_level,
    }


__all__ = [
    "apply_feedback_reward",
    "apply_task_completion",
    "grant_xp",
    "level_for_xp",
    "level_progress",
    "spend_xp",
]

"""
Tool: Streak & Daily-Reset Manager
Purpose: Apply the day-boundary policy to streaks and daily quests

Two entry points:

    roll_over()          - run once per session start (and whenever the
                           calendar day changes while the app is open).
                           Detects missed days, spends a streak freeze or
                           breaks the streak, and resets the daily quests.
    register_activity()  - run on each task completion. Increments the
                           streak at most once per calendar day.

Day arithmetic uses date objects from an injected "today", never wall-clock
strings, so every transition is testable without touching the system clock.

Transition table (gap = today - last_active_date, in calendar days):
    gap == 0   same day, no change
    gap == 1   completion increments the streak
    gap >= 2   at rollover: freeze available -> spend one, keep the streak
                             otherwise      -> streak resets to 0
"""

from copy import deepcopy
from datetime import date, timedelta
from typing import Optional

from microquest.logging_config import get_logger

from . import STREAK_FREEZE
from .models import DailyQuest, Notice, QuestBoard, User
from .quests import default_quests

logger = get_logger(__name__)


def days_between(earlier: date, later: date) -> int:
    """Calendar-day difference (later - earlier)."""
    return (later - earlier).days


def register_activity(user: User, today: date) -> User:
    """Completion-time streak update. Returns an updated copy."""
    updated = deepcopy(user)
    last = user.last_active_date

    if last is None:
        updated.streak_count = 1
    else:
        gap = days_between(last, today)
        if gap <= 0:
            # Same day (or the clock went backwards): only a zero streak moves
            if updated.streak_count == 0:
                updated.streak_count = 1
        elif gap == 1:
            updated.streak_count += 1
        else:
            updated.streak_count = 1

    updated.max_streak = max(updated.max_streak, updated.streak_count)
    if last is None or today > last:
        updated.last_active_date = today
    return updated


def is_new_day(board: QuestBoard, today: date) -> bool:
    return board.day != today


def roll_over(
    user: User,
    board: QuestBoard,
    today: date,
    template: Optional[list[DailyQuest]] = None,
) -> tuple[User, QuestBoard, list[Notice]]:
    """
    Session-start transition over streak and daily quests.

    Args:
        user: Current user (not modified)
        board: Current quest board (not modified)
        today: Calendar day from the injected clock
        template: Quest template for a fresh day (defaults to default_quests())

    Returns:
        (updated user, updated board, notices)
    """
    updated = deepcopy(user)
    notices: list[Notice] = []
    last = user.last_active_date

    if last is not None and days_between(last, today) >= 2 and updated.streak_count > 0:
        missed = days_between(last, today) - 1
        if updated.inventory.get(STREAK_FREEZE, 0) > 0:
            updated.inventory[STREAK_FREEZE] -= 1
            # Bridge the gap so the charge is spent once and today's quest continues the streak
            updated.last_active_date = today - timedelta(days=1)
            logger.info(f"Streak of {updated.streak_count} protected by a freeze ({missed} missed day(s))")
            notices.append(
                Notice(
                    "streak_protected",
                    f"A streak freeze saved your {updated.streak_count}-day streak!",
                    {"streak": updated.streak_count, "freezes_left": updated.inventory[STREAK_FREEZE]},
                )
            )
        else:
            logger.info(f"Streak of {updated.streak_count} broken after {missed} missed day(s)")
            notices.append(
                Notice(
                    "streak_broken",
                    f"Your {updated.streak_count}-day streak ended. Start a new one today!",
                    {"previous": updated.streak_count},
                )
            )
            updated.streak_count = 0

    if is_new_day(board, today):
        new_board = QuestBoard(day=today, quests=deepcopy(template) if template else default_quests())
    else:
        new_board = deepcopy(board)

    return updated, new_board, notices


__all__ = ["days_between", "is_new_day", "register_activity", "roll_over"]

"""
Tool: Friends
Purpose: Local friend list with a once-per-day cheer

There is no server: friends are local records. Cheering a friend is worth
a small XP award, once per friend per calendar day (the flags are cleared
at day rollover).
"""

import random
from copy import deepcopy
from typing import Optional

from microquest.tasks.models import generate_id

from .models import Friend


def add_friend(friends: list[Friend], handle: str, rng: Optional[random.Random] = None) -> tuple[list[Friend], Optional[Friend]]:
    """Add a friend by id or phone number. Blank handles are ignored."""
    handle = (handle or "").strip()
    if not handle:
        return deepcopy(friends), None

    friend = Friend(
        id=generate_id(rng),
        nickname=f"Explorer_{handle[-4:]}",
        last_active="just now",
    )
    return [friend] + deepcopy(friends), friend


def cheer_friend(friends: list[Friend], friend_id: str) -> tuple[list[Friend], bool]:
    """Mark a friend as cheered today. False if unknown or already cheered."""
    updated = deepcopy(friends)
    friend = next((f for f in updated if f.id == friend_id), None)
    if friend is None or friend.cheered_today:
        return updated, False

    friend.cheered_today = True
    return updated, True


def reset_cheers(friends: list[Friend]) -> list[Friend]:
    updated = deepcopy(friends)
    for friend in updated:
        friend.cheered_today = False
    return updated


def cohort_impact(friends: list[Friend]) -> int:
    """Combined level + streak of the friend group."""
    return sum(f.level + f.streak_count for f in friends)


__all__ = ["add_friend", "cheer_friend", "cohort_impact", "reset_cheers"]

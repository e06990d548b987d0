"""
Tool: Progression Models
Purpose: Data structures for the player profile and its progression state

Usage:
    from microquest.progression.models import (
        User,
        DailyQuest,
        QuestBoard,
        GardenPlant,
        FeedbackEntry,
        Friend,
        Notice,
    )

Records serialize with the app's camelCase keys (streakCount, totalXP,
inventory.streakFreeze, ...). Every from_dict() also reads the snake_case
keys of earlier versions, tolerates missing fields and falls back to
defaults field by field, so an older snapshot still loads.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from microquest.tasks.models import _get, _parse_datetime

from . import SEED_PACK, STREAK_FREEZE, XP_PER_LEVEL


def level_for_xp(total_xp: int) -> int:
    """Level is fully derived from XP: floor(xp / 1000) + 1."""
    return max(0, total_xp) // XP_PER_LEVEL + 1


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _count(value: Any, default: int = 0) -> int:
    """Non-negative int, or the default when the stored value is unusable."""
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return default


def _records(items: Any, factory) -> list:
    """Parse a list of dicts, dropping entries that can't be read."""
    if not isinstance(items, list):
        return []
    parsed = []
    for item in items:
        try:
            parsed.append(factory(item))
        except (AttributeError, KeyError, TypeError, ValueError):
            continue
    return parsed


@dataclass
class Notice:
    """Side-channel notification produced by a reducer (not state)."""

    kind: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "data": self.data}


@dataclass
class FeedbackEntry:
    id: str
    date: str
    reflection: str
    advice: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "userReflection": self.reflection,
            "aiAdvice": self.advice,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedbackEntry":
        return cls(
            id=str(data["id"]),
            date=str(data.get("date", "")),
            reflection=_get(data, "userReflection", "reflection", default=""),
            advice=_get(data, "aiAdvice", "advice", default=""),
        )


@dataclass
class GardenPlant:
    """Cosmetic plant. Non-authoritative; nothing reads it except badges."""

    id: str
    type: str
    position: int
    grown_at: Optional[datetime] = None
    category: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": self.position,
            "grownAt": self.grown_at.isoformat() if self.grown_at else None,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GardenPlant":
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "🌿")),
            position=int(data.get("position", 0)),
            grown_at=_parse_datetime(_get(data, "grownAt", "grown_at")),
            category=data.get("category"),
        )


def _default_inventory() -> dict[str, int]:
    return {STREAK_FREEZE: 0, SEED_PACK: 0}


@dataclass
class User:
    """Singleton player profile."""

    id: str = "1"
    nickname: str = "QuestMaster"
    avatar: str = "👨‍🚀"

    # Streak
    streak_count: int = 0
    max_streak: int = 0
    last_active_date: Optional[date] = None

    # Ledger
    total_xp: int = 0
    total_focus_minutes: int = 0
    total_completed_tasks: int = 0

    inventory: dict[str, int] = field(default_factory=_default_inventory)
    unlocked_badges: list[str] = field(default_factory=list)

    # Pacing
    recent_accuracy_ratio: float = 1.0
    recent_ratios: list[float] = field(default_factory=list)

    feedback_history: list[FeedbackEntry] = field(default_factory=list)
    garden: list[GardenPlant] = field(default_factory=list)

    @property
    def level(self) -> int:
        return level_for_xp(self.total_xp)

    @property
    def streak_freezes(self) -> int:
        return self.inventory.get(STREAK_FREEZE, 0)

    def stats_summary(self) -> dict[str, Any]:
        """Compact stats passed to the advice service."""
        return {
            "level": self.level,
            "streakCount": self.streak_count,
            "totalXP": self.total_xp,
            "totalCompletedTasks": self.total_completed_tasks,
            "totalFocusMinutes": self.total_focus_minutes,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nickname": self.nickname,
            "avatar": self.avatar,
            "streakCount": self.streak_count,
            "maxStreak": self.max_streak,
            "lastActiveDate": self.last_active_date.isoformat() if self.last_active_date else None,
            "level": self.level,
            "totalXP": self.total_xp,
            "totalFocusMinutes": self.total_focus_minutes,
            "totalCompletedTasks": self.total_completed_tasks,
            "inventory": {_camel(item): count for item, count in self.inventory.items()},
            "unlockedBadges": list(self.unlocked_badges),
            "recentAccuracyRatio": self.recent_accuracy_ratio,
            "recentRatios": list(self.recent_ratios),
            "feedbackHistory": [e.to_dict() for e in self.feedback_history],
            "garden": [p.to_dict() for p in self.garden],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        defaults = cls()

        # level is derived from totalXP and never read back
        inventory = _default_inventory()
        raw_inventory = data.get("inventory")
        if isinstance(raw_inventory, dict):
            for key, value in raw_inventory.items():
                if isinstance(value, int) and value >= 0:
                    inventory[_snake(str(key))] = value

        badges = _get(data, "unlockedBadges", "unlocked_badges")
        ratios = _get(data, "recentRatios", "recent_ratios")
        ratio = _get(data, "recentAccuracyRatio", "recent_accuracy_ratio", default=1.0)
        if not isinstance(ratio, (int, float)) or ratio <= 0:
            ratio = 1.0

        return cls(
            id=str(data.get("id", defaults.id)),
            nickname=data.get("nickname") or defaults.nickname,
            avatar=data.get("avatar") or defaults.avatar,
            streak_count=_count(_get(data, "streakCount", "streak_count")),
            max_streak=_count(_get(data, "maxStreak", "max_streak")),
            last_active_date=_parse_date(_get(data, "lastActiveDate", "last_active_date")),
            total_xp=_count(_get(data, "totalXP", "total_xp")),
            total_focus_minutes=_count(_get(data, "totalFocusMinutes", "total_focus_minutes")),
            total_completed_tasks=_count(_get(data, "totalCompletedTasks", "total_completed_tasks")),
            inventory=inventory,
            unlocked_badges=[str(b) for b in badges] if isinstance(badges, list) else [],
            recent_accuracy_ratio=ratio,
            recent_ratios=[r for r in ratios if isinstance(r, (int, float))] if isinstance(ratios, list) else [],
            feedback_history=_records(_get(data, "feedbackHistory", "feedback_history"), FeedbackEntry.from_dict),
            garden=_records(data.get("garden"), GardenPlant.from_dict),
        )


@dataclass
class DailyQuest:
    """Fixed daily objective. Progress never decreases within a day."""

    id: str
    title: str
    target_value: int
    current_value: int = 0
    xp_reward: int = 0
    claimed: bool = False

    @property
    def completed(self) -> bool:
        return self.current_value >= self.target_value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "targetValue": self.target_value,
            "currentValue": self.current_value,
            "completed": self.completed,
            "xpReward": self.xp_reward,
            "claimed": self.claimed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyQuest":
        target = int(_get(data, "targetValue", "target_value", default=None))
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            target_value=target,
            current_value=min(target, max(0, int(_get(data, "currentValue", "current_value", default=0)))),
            xp_reward=int(_get(data, "xpReward", "xp_reward", default=0)),
            claimed=bool(data.get("claimed", False)),
        )


@dataclass
class QuestBoard:
    """The day's quests plus the calendar day they belong to."""

    day: Optional[date] = None
    quests: list[DailyQuest] = field(default_factory=list)

    def get(self, quest_id: str) -> Optional[DailyQuest]:
        return next((q for q in self.quests if q.id == quest_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.isoformat() if self.day else None,
            "quests": [q.to_dict() for q in self.quests],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuestBoard":
        return cls(
            day=_parse_date(data.get("day")),
            quests=_records(data.get("quests"), DailyQuest.from_dict),
        )


@dataclass
class Friend:
    id: str
    nickname: str
    level: int = 1
    streak_count: int = 0
    avatar: str = "✨"
    current_task_title: Optional[str] = None
    last_active: str = ""
    cheered_today: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "nickname": self.nickname,
            "level": self.level,
            "streakCount": self.streak_count,
            "avatar": self.avatar,
            "currentTaskTitle": self.current_task_title,
            "lastActive": self.last_active,
            "cheeredToday": self.cheered_today,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Friend":
        return cls(
            id=str(data["id"]),
            nickname=str(data["nickname"]),
            level=int(data.get("level", 1)),
            streak_count=int(_get(data, "streakCount", "streak_count", default=0)),
            avatar=data.get("avatar", "✨"),
            current_task_title=_get(data, "currentTaskTitle", "current_task_title"),
            last_active=_get(data, "lastActive", "last_active", default=""),
            cheered_today=bool(_get(data, "cheeredToday", "cheered_today", default=False)),
        )


__all__ = [
    "DailyQuest",
    "FeedbackEntry",
    "Friend",
    "GardenPlant",
    "Notice",
    "QuestBoard",
    "User",
    "level_for_xp",
]

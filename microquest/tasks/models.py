"""
Tool: Task Models
Purpose: Data structures for goals (macro tasks) and their quests (micro tasks)

A MacroTask is what the user typed. MicroTasks are the steps the
decomposition service produced for it; they point back at their macro task
by id and are only ever mutated once, when completed.

Records serialize with the app's camelCase keys (macroTaskId,
durationEstMin, ...). from_dict() also reads the snake_case keys written by
earlier versions.

Usage:
    from microquest.tasks.models import MacroTask, MicroTask, generate_id
"""

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from . import TASK_STATUSES


def generate_id(rng: Optional[random.Random] = None) -> str:
    """Generate a short unique ID from the given (seedable) random source."""
    rng = rng or random.Random()
    return f"{rng.getrandbits(48):012x}"


def _get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins, so camelCase and legacy snake_case both load."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _status(value: Any) -> str:
    return value if value in TASK_STATUSES else "todo"


@dataclass
class MacroTask:
    """A high-level goal entered by the user."""

    id: str
    title: str
    category: str = "General"
    created_at: Optional[datetime] = None
    status: str = "todo"  # largely vestigial once micro tasks exist

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MacroTask":
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            category=data.get("category") or "General",
            created_at=_parse_datetime(_get(data, "createdAt", "created_at")),
            status=_status(data.get("status")),
        )


@dataclass
class MicroTask:
    """One time-boxed actionable step produced by decomposition."""

    id: str
    macro_task_id: str
    title: str
    category: str = "General"
    order_index: int = 0
    duration_est_min: float = 10
    difficulty: int = 1
    friction_score: int = 1
    xp_reward: int = 0
    success_criteria: str = ""
    next_hint: str = ""
    status: str = "todo"

    # Set only on completion
    actual_duration_min: Optional[int] = None
    completed_at: Optional[datetime] = None

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "macroTaskId": self.macro_task_id,
            "title": self.title,
            "category": self.category,
            "orderIndex": self.order_index,
            "durationEstMin": self.duration_est_min,
            "difficulty": self.difficulty,
            "frictionScore": self.friction_score,
            "xpReward": self.xp_reward,
            "successCriteria": self.success_criteria,
            "nextHint": self.next_hint,
            "status": self.status,
            "actualDurationMin": self.actual_duration_min,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MicroTask":
        actual = _get(data, "actualDurationMin", "actual_duration_min")
        return cls(
            id=str(data["id"]),
            macro_task_id=str(_get(data, "macroTaskId", "macro_task_id", default="")),
            title=str(data["title"]),
            category=data.get("category") or "General",
            order_index=int(_get(data, "orderIndex", "order_index", default=0)),
            duration_est_min=_number(_get(data, "durationEstMin", "duration_est_min"), 10),
            difficulty=int(data.get("difficulty", 1)),
            friction_score=int(_get(data, "frictionScore", "friction_score", default=1)),
            xp_reward=int(_get(data, "xpReward", "xp_reward", default=0)),
            success_criteria=_get(data, "successCriteria", "success_criteria", default=""),
            next_hint=_get(data, "nextHint", "next_hint", default=""),
            status=_status(data.get("status")),
            actual_duration_min=int(_number(actual, 1)) if actual is not None else None,
            completed_at=_parse_datetime(_get(data, "completedAt", "completed_at")),
        )

    @classmethod
    def from_draft(
        cls,
        draft: Any,
        task_id: str,
        macro_task_id: str,
        category: str,
        order_index: int,
    ) -> "MicroTask":
        """Build a todo micro task from a validated decomposition draft."""
        return cls(
            id=task_id,
            macro_task_id=macro_task_id,
            title=draft.title,
            category=category,
            order_index=order_index,
            duration_est_min=draft.duration_est_min,
            difficulty=draft.difficulty,
            friction_score=draft.friction_score,
            xp_reward=int(round(draft.xp_reward)),
            success_criteria=draft.success_criteria,
            next_hint=draft.next_hint,
        )


__all__ = ["MacroTask", "MicroTask", "generate_id"]

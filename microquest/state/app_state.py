"""
Tool: Application State
Purpose: The single document that holds everything the app persists

Usage:
    from microquest.state.app_state import AppState

    state = AppState.from_dict(json.loads(raw))
    raw = json.dumps(state.to_dict())

Document shape:
    {
        "user": {...},
        "friends": [...],
        "macroTasks": [...],
        "microTasks": [...],
        "dailyQuests": [...],
        "dailyQuestsDate": "2025-03-12",
        "activeTaskId": "..."
    }

from_dict() is tolerant field by field: a missing or unreadable section
falls back to its default, and unreadable list entries are dropped, so a
partially written or older document still loads. Documents written before
the camelCase layout (macro_tasks, quest_board, ...) load too.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from microquest.progression.models import Friend, QuestBoard, User, _records
from microquest.progression.quests import restore_missing
from microquest.tasks.models import MacroTask, MicroTask, _get


def _quest_board(data: dict[str, Any]) -> QuestBoard:
    if "dailyQuests" in data:
        board = QuestBoard.from_dict({"day": data.get("dailyQuestsDate"), "quests": data["dailyQuests"]})
    elif isinstance(data.get("quest_board"), dict):
        board = QuestBoard.from_dict(data["quest_board"])
    else:
        return QuestBoard()

    # A dated board is live for that day, so it must carry the full template
    return restore_missing(board) if board.day else board


@dataclass
class AppState:
    user: User = field(default_factory=User)
    friends: list[Friend] = field(default_factory=list)
    macro_tasks: list[MacroTask] = field(default_factory=list)
    micro_tasks: list[MicroTask] = field(default_factory=list)
    quest_board: QuestBoard = field(default_factory=QuestBoard)
    active_task_id: Optional[str] = None

    def task(self, task_id: Optional[str]) -> Optional[MicroTask]:
        if not task_id:
            return None
        return next((t for t in self.micro_tasks if t.id == task_id), None)

    def macro(self, macro_id: Optional[str]) -> Optional[MacroTask]:
        if not macro_id:
            return None
        return next((m for m in self.macro_tasks if m.id == macro_id), None)

    @property
    def active_task(self) -> Optional[MicroTask]:
        return self.task(self.active_task_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user": self.user.to_dict(),
            "friends": [f.to_dict() for f in self.friends],
            "macroTasks": [m.to_dict() for m in self.macro_tasks],
            "microTasks": [t.to_dict() for t in self.micro_tasks],
            "dailyQuests": [q.to_dict() for q in self.quest_board.quests],
            "dailyQuestsDate": self.quest_board.day.isoformat() if self.quest_board.day else None,
            "activeTaskId": self.active_task_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppState":
        if not isinstance(data, dict):
            return cls()

        user_data = data.get("user")
        micro_tasks = _records(_get(data, "microTasks", "micro_tasks"), MicroTask.from_dict)

        active_id = _get(data, "activeTaskId", "active_task_id")
        if not any(t.id == active_id and not t.is_done for t in micro_tasks):
            active_id = None

        return cls(
            user=User.from_dict(user_data) if isinstance(user_data, dict) else User(),
            friends=_records(data.get("friends"), Friend.from_dict),
            macro_tasks=_records(_get(data, "macroTasks", "macro_tasks"), MacroTask.from_dict),
            micro_tasks=micro_tasks,
            quest_board=_quest_board(data),
            active_task_id=active_id,
        )


__all__ = ["AppState"]

"""
Tool: Daily Quest Tracker
Purpose: Small fixed set of per-day objectives driven by progression events

Progress is clamped to the target and never decreases except through the
day rollover in streaks.roll_over(). Each event type is bound to one quest
id:

    task completed       -> complete_micro_task  (+1)
    XP gained            -> earn_xp              (+amount)
    reflection submitted -> submit_reflection    (+1)

Quest rewards are not paid automatically; claim_reward() pays a completed
quest's XP exactly once. restore_missing() puts back template quests a
stored board has lost, so a damaged snapshot never leaves the day without
quests.
"""

from copy import deepcopy
from typing import Optional

from .models import DailyQuest, QuestBoard

COMPLETE_MICRO_TASK = "complete_micro_task"
EARN_XP = "earn_xp"
SUBMIT_REFLECTION = "submit_reflection"


def default_quests() -> list[DailyQuest]:
    """Fresh quest template for a new day."""
    return [
        DailyQuest(id=COMPLETE_MICRO_TASK, title="Complete 1 micro-quest", target_value=1, xp_reward=50),
        DailyQuest(id=EARN_XP, title="Earn 100 XP", target_value=100, xp_reward=75),
        DailyQuest(id=SUBMIT_REFLECTION, title="Write today's reflection", target_value=1, xp_reward=30),
    ]


def restore_missing(board: QuestBoard, template: Optional[list[DailyQuest]] = None) -> QuestBoard:
    """
    Put back any template quest the board lacks, at its initial values.

    Quests the board already has keep their progress. Template order comes
    first; extra quests a stored board carries stay after it.
    """
    template = deepcopy(template) if template else default_quests()
    updated = deepcopy(board)
    template_ids = {q.id for q in template}
    updated.quests = [updated.get(q.id) or q for q in template] + [
        q for q in updated.quests if q.id not in template_ids
    ]
    return updated


def increment_progress(board: QuestBoard, quest_id: str, amount: int) -> tuple[QuestBoard, bool]:
    """
    Add progress to one quest.

    Returns:
        (updated board, newly completed?) - unknown ids and non-positive
        amounts leave the board unchanged.
    """
    updated = deepcopy(board)
    quest = updated.get(quest_id)
    if quest is None or amount <= 0:
        return updated, False

    was_completed = quest.completed
    quest.current_value = min(quest.target_value, quest.current_value + amount)
    return updated, quest.completed and not was_completed


def on_task_completed(board: QuestBoard) -> tuple[QuestBoard, bool]:
    return increment_progress(board, COMPLETE_MICRO_TASK, 1)


def on_xp_gained(board: QuestBoard, amount: int) -> tuple[QuestBoard, bool]:
    return increment_progress(board, EARN_XP, amount)


def on_reflection_submitted(board: QuestBoard) -> tuple[QuestBoard, bool]:
    return increment_progress(board, SUBMIT_REFLECTION, 1)


def claim_reward(board: QuestBoard, quest_id: str) -> tuple[QuestBoard, int, bool]:
    """Mark a completed quest as claimed and return its XP reward."""
    updated = deepcopy(board)
    quest = updated.get(quest_id)
    if quest is None or not quest.completed or quest.claimed:
        return updated, 0, False

    quest.claimed = True
    return updated, quest.xp_reward, True


__all__ = [
    "COMPLETE_MICRO_TASK",
    "EARN_XP",
    "SUBMIT_REFLECTION",
    "claim_reward",
    "default_quests",
    "increment_progress",
    "restore_missing",
    "on_reflection_submitted",
    "on_task_completed",
    "on_xp_gained",
]

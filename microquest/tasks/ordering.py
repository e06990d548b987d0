"""
Tool: Quest Ordering
Purpose: Pick the next pending quest and let the user reorder pending ones

order_index only defines presentation order. Completion order is not
enforced: any pending quest can be started.
"""

from dataclasses import replace
from typing import Optional

from .models import MicroTask


def sorted_tasks(tasks: list[MicroTask], macro_ids: Optional[list[str]] = None) -> list[MicroTask]:
    """
    Tasks in presentation order: goals in creation order, then order_index.

    Args:
        tasks: Micro tasks in any order
        macro_ids: Goal ids in creation order. Goals missing from it follow,
            in the order their first task appears.
    """
    position = {macro_id: i for i, macro_id in enumerate(macro_ids or [])}
    for task in tasks:
        position.setdefault(task.macro_task_id, len(position))
    return sorted(tasks, key=lambda t: (position[t.macro_task_id], t.order_index))


def next_pending(tasks: list[MicroTask], macro_task_id: Optional[str] = None) -> Optional[MicroTask]:
    """First todo quest, optionally restricted to one macro task."""
    for task in tasks:
        if task.status != "todo":
            continue
        if macro_task_id and task.macro_task_id != macro_task_id:
            continue
        return task
    return None


def move_task(tasks: list[MicroTask], task_id: str, direction: str) -> tuple[list[MicroTask], bool]:
    """
    Swap a pending quest with its neighbour inside the same macro task.

    Args:
        tasks: All micro tasks, in stored order
        task_id: Quest to move
        direction: "up" or "down"

    Returns:
        (new task list, moved?)
    """
    if direction not in ("up", "down"):
        return tasks, False

    target = next((t for t in tasks if t.id == task_id), None)
    if target is None or target.status != "todo":
        return tasks, False

    siblings = sorted(
        (t for t in tasks if t.macro_task_id == target.macro_task_id),
        key=lambda t: t.order_index,
    )
    pos = next(i for i, t in enumerate(siblings) if t.id == task_id)
    other_pos = pos - 1 if direction == "up" else pos + 1
    if other_pos < 0 or other_pos >= len(siblings):
        return tasks, False

    other = siblings[other_pos]
    new_index = {target.id: other.order_index, other.id: target.order_index}

    updated = [
        replace(t, order_index=new_index[t.id]) if t.id in new_index else t
        for t in tasks
    ]
    # Keep stored order consistent with presentation order
    pos_a = next(i for i, t in enumerate(updated) if t.id == target.id)
    pos_b = next(i for i, t in enumerate(updated) if t.id == other.id)
    updated[pos_a], updated[pos_b] = updated[pos_b], updated[pos_a]
    return updated, True


__all__ = ["move_task", "next_pending", "sorted_tasks"]

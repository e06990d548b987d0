"""Task Engine - goal decomposition and time-boxed micro-quests

Philosophy:
    The problem isn't the goal - it's the size of the first step.
    "Write the report" stalls because nobody knows where to start.
    This engine asks an LLM for 3-6 small quests, calibrated to how fast
    the user actually works, and runs them one at a time against a timer.

Components:
    models.py: MacroTask / MicroTask records and id generation
    decompose.py: decomposition gateway and reflection advice (LLM)
    timer.py: pausable time-box timer for the active quest
    ordering.py: pending-quest ordering helpers
"""

# Valid statuses (doing is only ever set on macro tasks)
TASK_STATUSES = ("todo", "doing", "done")

# User-declared focus capacity passed to the decomposition service
ENERGY_MODES = ("Low", "Normal")

DEFAULT_CATEGORIES = ("Work", "Study", "Chores", "Health", "General")

__all__ = [
    "TASK_STATUSES",
    "ENERGY_MODES",
    "DEFAULT_CATEGORIES",
]

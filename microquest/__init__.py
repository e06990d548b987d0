"""microquest - gamified micro-task tracker

Philosophy:
    Big goals stall because the first step is invisible.
    An LLM breaks the goal into small time-boxed quests, and every finished
    quest feeds a progression loop (XP, levels, streaks, badges, a garden)
    that makes the next one easier to start.

Components:
    tasks/: macro/micro task models, decomposition gateway, time-box timer
    learning/: pacing calibration from actual vs estimated durations
    progression/: XP engine, streaks, daily quests, badges, garden, shop
    state/: application state snapshot and local persistence
    session.py: event-driven orchestrator used by the CLI

Usage:
    from microquest.session import QuestSession

    session = QuestSession.from_config()
    session.start()
    await session.create_goal("write the quarterly report", "Work")
    session.start_timer()
    session.complete_active()
"""

from pathlib import Path

__version__ = "0.3.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "microquest.yaml"

__all__ = [
    "PROJECT_ROOT",
    "ARGS_DIR",
    "CONFIG_PATH",
    "__version__",
]

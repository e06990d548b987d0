"""
Tool: Quest Session
Purpose: Event-driven orchestrator that owns the app state for one run

Every user action is one method. Each applies its reducers in full, persists
the snapshot, and only then returns, so events are processed one at a time
in arrival order. The only awaited calls are the decomposition and advice
services; while one is in flight the session is "generating" and refuses
another LLM-backed request. Nothing is committed until the call resolves.

Usage:
    session = QuestSession.from_config()
    session.start()
    result = await session.create_goal("write the quarterly report", "Work")
    session.start_timer()
    ...
    result = session.complete_active()

Results follow the usual convention:
    {"success": True, "data": {...}} or {"success": False, "error": "..."}
"""

import random
import time
from copy import deepcopy
from datetime import date, datetime
from typing import Any, Optional, Protocol

from microquest.config import MicroquestConfig, load_config
from microquest.logging_config import bind_session_context, get_logger
from microquest.progression import badges, engine, friends, garden, quests, shop
from microquest.progression.models import FeedbackEntry, Notice, QuestBoard
from microquest.progression.streaks import is_new_day, roll_over
from microquest.state.app_state import AppState
from microquest.state.storage import SnapshotStore
from microquest.tasks import ENERGY_MODES
from microquest.tasks.decompose import (
    AdviceService,
    DecompositionGateway,
    MicroTaskDraft,
    PacingParams,
)
from microquest.tasks.models import MacroTask, MicroTask, generate_id
from microquest.tasks.ordering import move_task, next_pending, sorted_tasks
from microquest.tasks.timer import TimeBoxTimer

logger = get_logger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...

    def today(self) -> date: ...

    def monotonic(self) -> float: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> date:
        return date.today()

    def monotonic(self) -> float:
        return time.monotonic()


def _fail(error: str) -> dict[str, Any]:
    return {"success": False, "error": error}


def _notices(items: list[Notice]) -> list[dict[str, Any]]:
    return [n.to_dict() for n in items]


def _to_draft(task: MicroTask) -> MicroTaskDraft:
    return MicroTaskDraft(
        title=task.title,
        duration_est_min=task.duration_est_min,
        difficulty=task.difficulty,
        friction_score=task.friction_score,
        xp_reward=task.xp_reward,
        success_criteria=task.success_criteria,
        next_hint=task.next_hint,
    )


class QuestSession:
    """Owns AppState and the active quest's timer.

    Args:
        store: Snapshot persistence
        gateway: Decomposition service client
        advice: Reflection advice service client
        config: Tunables (defaults when omitted)
        clock: Wall-clock and monotonic time source
        rng: Random source for ids and garden growth
    """

    def __init__(
        self,
        store: SnapshotStore,
        gateway: Optional[DecompositionGateway] = None,
        advice: Optional[AdviceService] = None,
        config: Optional[MicroquestConfig] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or MicroquestConfig()
        self.store = store
        self.gateway = gateway or DecompositionGateway(self.config.decomposition)
        self.advice = advice or AdviceService(self.config.advice)
        self.clock = clock or SystemClock()
        self.rng = rng or random.Random()

        self.state = AppState()
        self.timer = TimeBoxTimer(clock=self.clock.monotonic)
        self.generating = False

    @classmethod
    def from_config(cls, config: Optional[MicroquestConfig] = None, **kwargs) -> "QuestSession":
        config = config or load_config()
        store = SnapshotStore(config.storage.db_path, config.storage.schema_version)
        return cls(store, config=config, **kwargs)

    # =========================================================================
    # Internals
    # =========================================================================

    def _persist(self) -> None:
        self.store.save(self.state)

    def _roll_over(self) -> list[Notice]:
        """Apply the day-boundary policy against the clock's today."""
        today = self.clock.today()
        new_day = is_new_day(self.state.quest_board, today)

        user, board, notices = roll_over(self.state.user, self.state.quest_board, today)
        self.state.user = user
        self.state.quest_board = board
        if new_day:
            self.state.friends = friends.reset_cheers(self.state.friends)
            logger.info(f"New day {today.isoformat()}: daily quests reset")
        return notices

    def _ensure_today(self) -> list[Notice]:
        if not is_new_day(self.state.quest_board, self.clock.today()):
            return []
        notices = self._roll_over()
        self._persist()
        return notices

    def _gain_xp(self, amount: int, reason: str, count_for_quest: bool = True) -> list[Notice]:
        """Grant XP, feed the XP quest, and report level-ups and quest completion."""
        self.state.user, notices = engine.grant_xp(self.state.user, amount, reason)
        if count_for_quest and amount > 0:
            notices += self._track_quest(quests.EARN_XP, quests.on_xp_gained(self.state.quest_board, amount))
        return notices

    def _track_quest(self, quest_id: str, update: tuple[QuestBoard, bool]) -> list[Notice]:
        """Store the board from a quest event binding and announce a completion."""
        board, newly_completed = update
        self.state.quest_board = board
        if not newly_completed:
            return []
        quest = board.get(quest_id)
        return [
            Notice(
                "quest_completed",
                f"Daily quest complete: {quest.title} (+{quest.xp_reward} XP to claim)",
                {"quest_id": quest_id, "xp_reward": quest.xp_reward},
            )
        ]

    def _evaluate_badges(self) -> list[Notice]:
        self.state.user, notices = badges.evaluate_badges(self.state.user)
        return notices

    def _set_active(self, task: Optional[MicroTask]) -> None:
        new_id = task.id if task else None
        if new_id != self.state.active_task_id:
            self.timer.reset()
        self.state.active_task_id = new_id

    def _ordered_tasks(self) -> list[MicroTask]:
        return sorted_tasks(self.state.micro_tasks, [m.id for m in self.state.macro_tasks])

    def _pacing(self, energy_mode: str) -> PacingParams:
        user = self.state.user
        return PacingParams(
            level=user.level,
            streak=user.streak_count,
            energy_mode=energy_mode,
            accuracy_ratio=user.recent_accuracy_ratio,
        )

    # =========================================================================
    # Startup
    # =========================================================================

    def start(self) -> dict[str, Any]:
        """Load the snapshot, apply the day rollover, persist."""
        self.state = self.store.load()
        self.timer.reset()
        bind_session_context(user_id=self.state.user.id)

        notices = self._roll_over()
        if self.state.active_task is None:
            self._set_active(next_pending(self._ordered_tasks()))
        self._persist()

        logger.info(
            f"Session started: level {self.state.user.level}, "
            f"streak {self.state.user.streak_count}, {len(self.state.micro_tasks)} quest(s)"
        )
        return {"success": True, "data": {"notices": _notices(notices)}}

    # =========================================================================
    # Goals
    # =========================================================================

    async def create_goal(
        self,
        goal: str,
        category: str = "General",
        energy_mode: str = "Normal",
    ) -> dict[str, Any]:
        """Decompose a goal and add its quests. Nothing is stored on failure."""
        if self.generating:
            return _fail("Already generating, please wait")
        if not goal or not goal.strip():
            return _fail("Goal is empty")
        if energy_mode not in ENERGY_MODES:
            return _fail(f"Invalid energy mode. Must be one of: {ENERGY_MODES}")

        self.generating = True
        try:
            result = await self.gateway.decompose(goal.strip(), category, self._pacing(energy_mode))
        finally:
            self.generating = False

        if not result.success:
            return _fail(f"Could not break the goal down ({result.reason}). Please try again.")

        self._ensure_today()
        macro = MacroTask(
            id=generate_id(self.rng),
            title=goal.strip(),
            category=category,
            created_at=self.clock.now(),
        )
        new_tasks = [
            MicroTask.from_draft(draft, generate_id(self.rng), macro.id, category, index)
            for index, draft in enumerate(result.drafts)
        ]
        self.state.macro_tasks.append(macro)
        self.state.micro_tasks.extend(new_tasks)

        if self.state.active_task is None:
            self._set_active(new_tasks[0])

        self._persist()
        logger.info(f"Goal {macro.id} decomposed into {len(new_tasks)} quest(s)")
        return {"success": True, "data": {"macro_task": macro, "tasks": new_tasks}}

    async def refine_goal(
        self,
        macro_id: str,
        refinement_note: str,
        energy_mode: str = "Normal",
    ) -> dict[str, Any]:
        """Replace a goal's pending quests using the user's feedback.

        Finished quests stay. On failure the current list is left untouched.
        """
        if self.generating:
            return _fail("Already generating, please wait")
        macro = self.state.macro(macro_id)
        if macro is None:
            return _fail(f"Unknown goal: {macro_id}")
        if not refinement_note or not refinement_note.strip():
            return _fail("Refinement note is empty")

        pending = [t for t in self.state.micro_tasks if t.macro_task_id == macro_id and not t.is_done]
        if not pending:
            return _fail("Nothing left to refine for this goal")

        self.generating = True
        try:
            result = await self.gateway.decompose(
                macro.title,
                macro.category,
                self._pacing(energy_mode),
                refinement_note=refinement_note.strip(),
                prior_drafts=[_to_draft(t) for t in pending],
            )
        finally:
            self.generating = False

        if not result.success:
            return _fail(f"Could not refine the plan ({result.reason}). Your current quests are unchanged.")

        pending_ids = {t.id for t in pending}
        kept = [t for t in self.state.micro_tasks if t.id not in pending_ids]
        start_index = max((t.order_index for t in kept if t.macro_task_id == macro_id), default=-1) + 1
        new_tasks = [
            MicroTask.from_draft(draft, generate_id(self.rng), macro.id, macro.category, start_index + i)
            for i, draft in enumerate(result.drafts)
        ]
        self.state.micro_tasks = kept + new_tasks

        if self.state.active_task_id in pending_ids or self.state.active_task is None:
            self._set_active(new_tasks[0])

        self._persist()
        logger.info(f"Goal {macro_id} refined: {len(pending)} pending quest(s) replaced by {len(new_tasks)}")
        return {"success": True, "data": {"macro_task": macro, "tasks": new_tasks}}

    # =========================================================================
    # Timer and completion
    # =========================================================================

    def activate(self, task_id: str) -> dict[str, Any]:
        task = self.state.task(task_id)
        if task is None:
            return _fail(f"Unknown quest: {task_id}")
        if task.is_done:
            return _fail("Quest is already done")

        self._set_active(task)
        self._persist()
        return {"success": True, "data": {"task": task}}

    def start_timer(self) -> dict[str, Any]:
        if self.state.active_task is None:
            return _fail("No active quest")
        self.timer.start()
        return {"success": True, "data": self.timer.to_dict()}

    def pause_timer(self) -> dict[str, Any]:
        self.timer.pause()
        return {"success": True, "data": self.timer.to_dict()}

    def complete_active(self, actual_minutes: Optional[int] = None) -> dict[str, Any]:
        """
        Finish the active quest and fold it into progression.

        Args:
            actual_minutes: Time tracked outside the timer. When omitted the
                timer's measurement is used.

        Returns:
            Result with the finished quest, minutes, XP and notices
        """
        task = self.state.active_task
        if task is None:
            return _fail("No active quest")

        notices = self._ensure_today()
        if actual_minutes is None:
            minutes = self.timer.finish()
        else:
            minutes = max(1, int(actual_minutes))
            self.timer.reset()

        today = self.clock.today()
        now = self.clock.now()

        user, engine_notices = engine.apply_task_completion(
            self.state.user, task, minutes, today, self.config.pacing.window
        )
        self.state.user = user
        notices += engine_notices

        done = deepcopy(task)
        done.status = "done"
        done.actual_duration_min = minutes
        done.completed_at = now
        self.state.micro_tasks = [done if t.id == task.id else t for t in self.state.micro_tasks]

        notices += self._track_quest(quests.COMPLETE_MICRO_TASK, quests.on_task_completed(self.state.quest_board))
        if task.xp_reward > 0:
            notices += self._track_quest(quests.EARN_XP, quests.on_xp_gained(self.state.quest_board, task.xp_reward))

        plants, plant = garden.maybe_grow(user.garden, task.category, self.rng, now, self.config.garden)
        self.state.user.garden = plants
        if plant is not None:
            notices.append(Notice("plant_grown", f"A new {plant.type} sprouted in your garden!", {"plant_id": plant.id}))

        notices += self._evaluate_badges()

        ordered = self._ordered_tasks()
        next_task = next_pending(ordered, task.macro_task_id) or next_pending(ordered)
        self._set_active(next_task)
        self._persist()

        logger.info(f"Quest {task.id} done in {minutes} min (+{task.xp_reward} XP)")
        return {
            "success": True,
            "data": {
                "task": done,
                "minutes": minutes,
                "xp": task.xp_reward,
                "next_task_id": self.state.active_task_id,
                "notices": _notices(notices),
            },
        }

    # =========================================================================
    # Progression actions
    # =========================================================================

    async def submit_reflection(self, reflection: str) -> dict[str, Any]:
        """Record a reflection with coaching advice.

        Feedback XP is paid only while today's reflection quest is open.
        """
        if self.generating:
            return _fail("Already generating, please wait")
        if not reflection or not reflection.strip():
            return _fail("Reflection is empty")

        self.generating = True
        try:
            advice = await self.advice.advise(reflection.strip(), self.state.user.stats_summary())
        finally:
            self.generating = False

        notices = self._ensure_today()
        entry = FeedbackEntry(
            id=generate_id(self.rng),
            date=self.clock.today().isoformat(),
            reflection=reflection.strip(),
            advice=advice,
        )
        self.state.user = deepcopy(self.state.user)
        self.state.user.feedback_history.insert(0, entry)

        quest = self.state.quest_board.get(quests.SUBMIT_REFLECTION)
        xp = 0
        if quest is not None and not quest.completed:
            xp = self.config.progression.feedback_xp
            self.state.user, reward_notices = engine.apply_feedback_reward(self.state.user, xp)
            notices += reward_notices
            notices += self._track_quest(quests.EARN_XP, quests.on_xp_gained(self.state.quest_board, xp))
        notices += self._track_quest(quests.SUBMIT_REFLECTION, quests.on_reflection_submitted(self.state.quest_board))
        notices += self._evaluate_badges()

        self._persist()
        return {"success": True, "data": {"entry": entry, "xp": xp, "notices": _notices(notices)}}

    def buy(self, item_id: str) -> dict[str, Any]:
        user, ok, reason = shop.buy_item(self.state.user, item_id, self.config.shop.items)
        if not ok:
            return _fail(reason)

        self.state.user = user
        self._persist()
        return {"success": True, "data": {"item_id": item_id, "owned": user.inventory.get(item_id, 0)}}

    def plant_seed(self) -> dict[str, Any]:
        user, plant = garden.plant_seed(self.state.user, self.rng, self.clock.now(), self.config.garden)
        if plant is None:
            return _fail("No seed packs to plant, or the garden is full")

        self.state.user = user
        notices = self._evaluate_badges()
        self._persist()
        return {"success": True, "data": {"plant": plant, "notices": _notices(notices)}}

    def claim_quest(self, quest_id: str) -> dict[str, Any]:
        """Pay a completed daily quest's reward once. Claimed XP does not feed the XP quest."""
        self._ensure_today()
        board, xp, ok = quests.claim_reward(self.state.quest_board, quest_id)
        if not ok:
            return _fail(f"Quest {quest_id} is not completed or was already claimed")

        self.state.quest_board = board
        notices = self._gain_xp(xp, f"daily quest {quest_id}", count_for_quest=False)
        notices += self._evaluate_badges()
        self._persist()
        return {"success": True, "data": {"quest_id": quest_id, "xp": xp, "notices": _notices(notices)}}

    def cheer(self, friend_id: str) -> dict[str, Any]:
        self._ensure_today()
        updated, ok = friends.cheer_friend(self.state.friends, friend_id)
        if not ok:
            return _fail("Unknown friend, or already cheered today")

        self.state.friends = updated
        notices = self._gain_xp(self.config.progression.cheer_xp, f"cheering {friend_id}")
        notices += self._evaluate_badges()
        self._persist()
        return {"success": True, "data": {"friend_id": friend_id, "notices": _notices(notices)}}

    def add_friend(self, handle: str) -> dict[str, Any]:
        updated, friend = friends.add_friend(self.state.friends, handle, self.rng)
        if friend is None:
            return _fail("Enter a friend id or phone number")

        self.state.friends = updated
        self._persist()
        return {"success": True, "data": {"friend": friend}}

    def move_task(self, task_id: str, direction: str) -> dict[str, Any]:
        updated, moved = move_task(self.state.micro_tasks, task_id, direction)
        if not moved:
            return _fail(f"Cannot move quest {task_id} {direction}")

        self.state.micro_tasks = updated
        self._persist()
        return {"success": True, "data": {"task_id": task_id}}

    def update_profile(self, nickname: Optional[str] = None, avatar: Optional[str] = None) -> dict[str, Any]:
        if nickname is not None and not nickname.strip():
            return _fail("Nickname cannot be empty")

        user = deepcopy(self.state.user)
        if nickname is not None:
            user.nickname = nickname.strip()
        if avatar:
            user.avatar = avatar
        self.state.user = user
        self._persist()
        return {"success": True, "data": {"nickname": user.nickname, "avatar": user.avatar}}

    # =========================================================================
    # Data management
    # =========================================================================

    def reset_progress(self, confirm: bool = False) -> dict[str, Any]:
        """Clear all goals and quests and restart today's daily quests.

        The profile (XP, streak, badges, garden) is kept.
        """
        if not confirm:
            return _fail("Reset requires confirmation")

        self.state.macro_tasks = []
        self.state.micro_tasks = []
        self.state.quest_board = QuestBoard(day=self.clock.today(), quests=quests.default_quests())
        self._set_active(None)
        self.timer.reset()
        self._persist()
        logger.info("Progress reset by user")
        return {"success": True, "data": {}}

    def export(self, path: str) -> dict[str, Any]:
        return self.store.export_to(path, self.state)

    def import_snapshot(self, path: str) -> dict[str, Any]:
        result = self.store.import_from(path)
        if not result["success"]:
            return result
        return self.start()

    # =========================================================================
    # Views
    # =========================================================================

    def status(self) -> dict[str, Any]:
        user = self.state.user
        return {
            "user": user.to_dict(),
            "progress": engine.level_progress(user),
            "active_task": self.state.active_task,
            "timer": self.timer.to_dict(),
            "quests": [q.to_dict() for q in self.state.quest_board.quests],
            "pending": [t for t in self._ordered_tasks() if not t.is_done],
            "generating": self.generating,
        }


__all__ = ["Clock", "QuestSession", "SystemClock"]

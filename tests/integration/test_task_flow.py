"""
Integration tests for the quest flow: goal -> decompose -> focus -> complete.

Tests the complete lifecycle through QuestSession:
- Decomposing a goal into quests and activating the first one
- Timing and completing a quest, and its effect on progression
- Refining a plan with feedback
- The generating guard and failure handling

LLM calls are served by the fake client from conftest.
"""

import asyncio
import json
from datetime import timedelta
from types import SimpleNamespace

import pytest

from microquest.progression.models import User
from microquest.progression.quests import COMPLETE_MICRO_TASK, EARN_XP
from microquest.state.app_state import AppState
from microquest.tasks.models import MacroTask, MicroTask


def _draft(title: str, est: float, xp: float) -> dict:
    return {
        "title": title,
        "durationEstMin": est,
        "difficulty": 2,
        "frictionScore": 2,
        "xpReward": xp,
        "successCriteria": f"{title} is done",
        "nextHint": "Keep going",
    }


class BlockingMessages:
    """messages.create that waits until released."""

    def __init__(self, text: str):
        self.text = text
        self.release = asyncio.Event()
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        await self.release.wait()
        return SimpleNamespace(content=[SimpleNamespace(text=self.text)])


class BlockingClient:
    def __init__(self, text: str):
        self.messages = BlockingMessages(text)


# ─────────────────────────────────────────────────────────────────────────────
# End-to-end Completion
# ─────────────────────────────────────────────────────────────────────────────


class TestCompletionFlow:
    """A fresh user finishing their first quest."""

    @pytest.mark.asyncio
    async def test_first_quest_after_yesterday(self, store, make_session, fixed_clock, llm_client_factory):
        store.save(AppState(user=User(last_active_date=fixed_clock.today() - timedelta(days=1))))
        drafts = [_draft("Open the laptop", 10, 50), _draft("List 3 metrics", 10, 40), _draft("Write intro", 15, 60)]
        session = make_session(decompose_client=llm_client_factory(json.dumps(drafts)))

        created = await session.create_goal("write the quarterly report", "Work")
        assert created["success"] is True
        assert session.state.active_task.title == "Open the laptop"

        session.start_timer()
        fixed_clock.advance(9 * 60)
        result = session.complete_active()

        assert result["success"] is True
        assert result["data"]["minutes"] == 9
        user = session.state.user
        assert user.total_xp == 50
        assert user.level == 1
        assert user.total_completed_tasks == 1
        assert user.streak_count == 1
        assert user.recent_accuracy_ratio == pytest.approx(0.9)
        quest = session.state.quest_board.get(COMPLETE_MICRO_TASK)
        assert quest.current_value == 1
        assert quest.completed is True
        assert session.state.quest_board.get(EARN_XP).current_value == 50
        assert "first_quest" in user.unlocked_badges

    @pytest.mark.asyncio
    async def test_completion_is_persisted_and_advances(self, store, make_session, fixed_clock, fake_llm):
        session = make_session(decompose_client=fake_llm)
        await session.create_goal("write report", "Work")
        first_id = session.state.active_task_id

        session.start_timer()
        fixed_clock.advance(4 * 60)
        result = session.complete_active()

        reloaded = store.load()
        done = reloaded.task(first_id)
        assert done.status == "done"
        assert done.actual_duration_min == 4
        assert done.completed_at == fixed_clock.now()
        assert reloaded.active_task_id == result["data"]["next_task_id"]
        assert reloaded.active_task_id != first_id

    def test_stored_text_estimate_still_calibrates(self, store, make_session):
        store.write_raw(json.dumps({
            "microTasks": [{"id": "t1", "macroTaskId": "m1", "title": "Tidy desk", "durationEstMin": "10", "xpReward": 20}],
        }))
        session = make_session()

        result = session.complete_active(actual_minutes=5)

        assert result["success"] is True
        assert session.state.user.recent_accuracy_ratio == pytest.approx(0.5)

    def test_complete_without_active_quest(self, make_session):
        session = make_session()

        assert session.complete_active()["success"] is False

    @pytest.mark.asyncio
    async def test_switching_quest_resets_timer(self, make_session, fixed_clock, fake_llm):
        session = make_session(decompose_client=fake_llm)
        created = await session.create_goal("write report", "Work")
        second = created["data"]["tasks"][1]

        session.start_timer()
        fixed_clock.advance(300)
        session.activate(second.id)

        assert session.timer.elapsed() == 0
        assert session.timer.running is False

    @pytest.mark.asyncio
    async def test_manual_minutes(self, make_session, fake_llm):
        session = make_session(decompose_client=fake_llm)
        await session.create_goal("write report", "Work")

        result = session.complete_active(actual_minutes=0)

        assert result["data"]["minutes"] == 1


# ─────────────────────────────────────────────────────────────────────────────
# Goal Creation
# ─────────────────────────────────────────────────────────────────────────────


class TestGoalCreation:
    """Tests for decomposition through the session."""

    @pytest.mark.asyncio
    async def test_tasks_inherit_category_and_order(self, make_session, fake_llm):
        session = make_session(decompose_client=fake_llm)

        result = await session.create_goal("write report", "Study")

        tasks = result["data"]["tasks"]
        assert [t.order_index for t in tasks] == [0, 1, 2]
        assert {t.category for t in tasks} == {"Study"}
        assert {t.macro_task_id for t in tasks} == {result["data"]["macro_task"].id}

    @pytest.mark.asyncio
    async def test_pacing_comes_from_user(self, store, make_session, fake_llm):
        store.save(AppState(user=User(total_xp=2100, recent_accuracy_ratio=1.4, recent_ratios=[1.4])))
        session = make_session(decompose_client=fake_llm)

        await session.create_goal("write report", "Work", energy_mode="Low")

        pacing = fake_llm.last_request()["pacing"]
        assert pacing == {"level": 3, "streak": 0, "energyMode": "Low", "accuracyRatio": 1.4}

    @pytest.mark.asyncio
    async def test_failure_commits_nothing(self, store, make_session, llm_client_factory):
        session = make_session(decompose_client=llm_client_factory(TimeoutError("slow")))

        result = await session.create_goal("write report", "Work")

        assert result["success"] is False
        assert session.state.macro_tasks == []
        assert store.load().micro_tasks == []
        assert session.generating is False

    @pytest.mark.asyncio
    async def test_second_goal_keeps_active_quest(self, make_session, fake_llm):
        session = make_session(decompose_client=fake_llm)
        await session.create_goal("first", "Work")
        active = session.state.active_task_id

        await session.create_goal("second", "Work")

        assert session.state.active_task_id == active
        assert len(session.state.micro_tasks) == 6

    @pytest.mark.asyncio
    async def test_concurrent_request_is_refused(self, make_session, sample_drafts):
        client = BlockingClient(json.dumps(sample_drafts))
        session = make_session(decompose_client=client)

        first = asyncio.create_task(session.create_goal("first", "Work"))
        await asyncio.sleep(0)
        assert session.generating is True

        second = await session.create_goal("second", "Work")
        client.messages.release.set()
        first_result = await first

        assert second["success"] is False
        assert first_result["success"] is True
        assert client.messages.calls == 1
        assert session.generating is False


# ─────────────────────────────────────────────────────────────────────────────
# Refinement
# ─────────────────────────────────────────────────────────────────────────────


class TestRefinement:
    """Tests for replacing a plan with refined quests."""

    @pytest.mark.asyncio
    async def test_refine_replaces_pending_only(self, make_session, llm_client_factory, sample_drafts):
        refined = [_draft("Tiny step A", 3, 10), _draft("Tiny step B", 3, 10)]
        client = llm_client_factory(json.dumps(sample_drafts), json.dumps(refined))
        session = make_session(decompose_client=client)
        created = await session.create_goal("write report", "Work")
        macro_id = created["data"]["macro_task"].id
        session.complete_active(actual_minutes=5)

        result = await session.refine_goal(macro_id, "steps are too big")

        assert result["success"] is True
        titles = [t.title for t in session.state.micro_tasks]
        assert titles == [sample_drafts[0]["title"], "Tiny step A", "Tiny step B"]
        assert [t.order_index for t in session.state.micro_tasks] == [0, 1, 2]
        assert session.state.active_task.title == "Tiny step A"

        request = client.last_request()
        assert request["refinementNote"] == "steps are too big"
        assert [d["title"] for d in request["priorDrafts"]] == [d["title"] for d in sample_drafts[1:]]

    @pytest.mark.asyncio
    async def test_failed_refine_keeps_plan(self, make_session, llm_client_factory, sample_drafts):
        client = llm_client_factory(json.dumps(sample_drafts), "not json at all")
        session = make_session(decompose_client=client)
        created = await session.create_goal("write report", "Work")
        before = list(session.state.micro_tasks)

        result = await session.refine_goal(created["data"]["macro_task"].id, "smaller")

        assert result["success"] is False
        assert session.state.micro_tasks == before

    @pytest.mark.asyncio
    async def test_refine_unknown_goal(self, make_session, fake_llm):
        session = make_session(decompose_client=fake_llm)

        result = await session.refine_goal("missing", "smaller")

        assert result["success"] is False
        assert fake_llm.calls == []


# ─────────────────────────────────────────────────────────────────────────────
# Reset
# ─────────────────────────────────────────────────────────────────────────────


class TestReset:
    """Tests for the confirmed manual reset."""

    @pytest.mark.asyncio
    async def test_reset_requires_confirmation(self, make_session, fake_llm):
        session = make_session(decompose_client=fake_llm)
        await session.create_goal("write report", "Work")

        result = session.reset_progress()

        assert result["success"] is False
        assert len(session.state.micro_tasks) == 3

    @pytest.mark.asyncio
    async def test_confirmed_reset_clears_tasks_and_quests(self, store, make_session, fake_llm):
        session = make_session(decompose_client=fake_llm)
        await session.create_goal("write report", "Work")
        session.complete_active(actual_minutes=5)

        result = session.reset_progress(confirm=True)

        assert result["success"] is True
        reloaded = store.load()
        assert reloaded.macro_tasks == []
        assert reloaded.micro_tasks == []
        assert reloaded.active_task_id is None
        assert all(q.current_value == 0 for q in reloaded.quest_board.quests)
        assert reloaded.user.total_completed_tasks == 1


# ─────────────────────────────────────────────────────────────────────────────
# Quest Order
# ─────────────────────────────────────────────────────────────────────────────


class TestQuestOrder:
    """Goals are worked through in the order they were created."""

    def _state(self) -> AppState:
        # Ids sort the opposite way to creation order
        return AppState(
            macro_tasks=[MacroTask(id="ffff", title="older goal"), MacroTask(id="0000", title="newer goal")],
            micro_tasks=[
                MicroTask(id="n1", macro_task_id="0000", title="newer first", order_index=0),
                MicroTask(id="o2", macro_task_id="ffff", title="older second", order_index=1),
                MicroTask(id="o1", macro_task_id="ffff", title="older first", order_index=0),
            ],
        )

    def test_start_activates_oldest_goal(self, store, make_session):
        store.save(self._state())

        session = make_session()

        assert session.state.active_task_id == "o1"
        assert [t.id for t in session.status()["pending"]] == ["o1", "o2", "n1"]

    def test_completion_moves_on_in_the_same_order(self, store, make_session):
        store.save(self._state())
        session = make_session()

        first = session.complete_active(actual_minutes=2)
        second = session.complete_active(actual_minutes=2)

        assert first["data"]["next_task_id"] == "o2"
        assert second["data"]["next_task_id"] == "n1"

"""Tests for microquest/cli.py

Commands run against a session on the temporary database; output is
checked through capsys.
"""

import json
import sys

import pytest

from microquest import cli
from microquest.progression import STREAK_FREEZE
from microquest.progression.badges import BADGES
from microquest.progression.models import Friend, User
from microquest.session import QuestSession
from microquest.state.app_state import AppState


@pytest.fixture
def run_cli(monkeypatch, store, fixed_clock, rng):
    """Run `microquest <args>` against the test store; returns the exit code."""

    def _from_config(cls, config=None, **kwargs):
        return cls(store, clock=fixed_clock, rng=rng)

    monkeypatch.setattr(QuestSession, "from_config", classmethod(_from_config))
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    def _run(*argv):
        monkeypatch.setattr(sys, "argv", ["microquest", *argv])
        return cli.main()

    return _run


# ─────────────────────────────────────────────────────────────────────────────
# Profile Views
# ─────────────────────────────────────────────────────────────────────────────


class TestStatus:
    """Tests for the status command."""

    def test_shows_freezes_and_badges(self, run_cli, store, capsys):
        store.save(AppState(user=User(inventory={STREAK_FREEZE: 2}, unlocked_badges=["first_quest"])))

        assert run_cli("status") == 0

        out = capsys.readouterr().out
        assert "freezes 2" in out
        assert "Badges 🐣" in out

    def test_json_dump_uses_document_keys(self, run_cli, capsys):
        run_cli("status", "--json")

        document = json.loads(capsys.readouterr().out)
        assert {"macroTasks", "microTasks", "dailyQuests"} <= set(document)


class TestBadges:
    """Tests for the badge list."""

    def test_lists_all_badges_unlocked_first(self, run_cli, store, capsys):
        store.save(AppState(user=User(total_completed_tasks=1, unlocked_badges=["first_quest"])))

        assert run_cli("badges") == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == f"Badges 1/{len(BADGES)}"
        assert "🐣 First Step" in lines[2]
        assert len(lines) == len(BADGES) + 2


# ─────────────────────────────────────────────────────────────────────────────
# Friends
# ─────────────────────────────────────────────────────────────────────────────


class TestFriendCommand:
    def test_lists_cohort_impact(self, run_cli, store, capsys):
        store.save(AppState(friends=[Friend(id="f1", nickname="Ana", level=3, streak_count=2)]))

        run_cli("friend")

        out = capsys.readouterr().out
        assert "Cohort impact today: 5" in out
        assert "Ana" in out

    def test_empty_list_hint(self, run_cli, capsys):
        run_cli("friend")

        assert "No friends yet" in capsys.readouterr().out

    def test_unknown_cheer_fails(self, run_cli, capsys):
        assert run_cli("cheer", "nobody") == 1
        assert "Error" in capsys.readouterr().out

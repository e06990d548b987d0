"""Shared test fixtures for microquest tests.

This module provides common fixtures used across all test modules:
- Database isolation with temporary files
- A controllable clock and a seeded random source
- Sample decomposition drafts and a fake LLM client

Usage:
    def test_something(temp_db, fixed_clock):
        # temp_db is automatically cleaned up after the test
        ...
"""

import json
import os
import random
import tempfile
from collections.abc import Generator
from datetime import date, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "microquest"

TODAY = date(2025, 3, 12)


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    The database file is automatically deleted after the test completes.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup
    if db_path.exists():
        os.unlink(db_path)


@pytest.fixture
def store(temp_db: Path):
    """SnapshotStore backed by the temporary database."""
    from microquest.state.storage import SnapshotStore

    return SnapshotStore(temp_db, schema_version=1)


# ─────────────────────────────────────────────────────────────────────────────
# Time and Randomness
# ─────────────────────────────────────────────────────────────────────────────


class FixedClock:
    """Clock whose day and monotonic time only move when told to."""

    def __init__(self, today: date = TODAY):
        self.current_day = today
        self.seconds = 1000.0

    def now(self) -> datetime:
        return datetime.combine(self.current_day, datetime.min.time()) + timedelta(hours=9)

    def today(self) -> date:
        return self.current_day

    def monotonic(self) -> float:
        return self.seconds

    def advance(self, seconds: float) -> None:
        self.seconds += seconds

    def next_day(self, days: int = 1) -> None:
        self.current_day += timedelta(days=days)


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


# ─────────────────────────────────────────────────────────────────────────────
# Decomposition Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sample_drafts() -> list[dict]:
    """Three well-formed drafts as the decomposition service returns them."""
    return [
        {
            "title": "Sit at your desk and open the report template",
            "durationEstMin": 5,
            "difficulty": 1,
            "frictionScore": 1,
            "xpReward": 10,
            "successCriteria": "Template is open on screen",
            "nextHint": "Next you'll list the three key metrics",
        },
        {
            "title": "Pick 3 key metrics from last quarter's data",
            "durationEstMin": 10,
            "difficulty": 2,
            "frictionScore": 3,
            "xpReward": 50,
            "successCriteria": "Three metrics written in the doc",
            "nextHint": "Next you'll write one sentence per metric",
        },
        {
            "title": "Write one sentence explaining each metric",
            "durationEstMin": 15,
            "difficulty": 3,
            "frictionScore": 2,
            "xpReward": 90,
            "successCriteria": "Three sentences drafted",
            "nextHint": "You're done - share it!",
        },
    ]


class FakeMessages:
    """Stands in for client.messages with scripted responses."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(content=[SimpleNamespace(text=response)])


class FakeLLMClient:
    """AsyncAnthropic-shaped client. Each response is text or an exception to raise."""

    def __init__(self, *responses):
        self.messages = FakeMessages(responses or ("[]",))

    @property
    def calls(self) -> list[dict]:
        return self.messages.calls

    def last_request(self) -> dict:
        """Decode the JSON request block from the last user prompt."""
        prompt = self.calls[-1]["messages"][0]["content"]
        body = prompt.split("Request:\n", 1)[1]
        decoder = json.JSONDecoder()
        request, _ = decoder.raw_decode(body)
        return request


@pytest.fixture
def llm_client_factory():
    """The FakeLLMClient class, for tests that script their own responses."""
    return FakeLLMClient


@pytest.fixture
def fake_llm(sample_drafts) -> FakeLLMClient:
    """Client that always answers with the sample drafts."""
    return FakeLLMClient(json.dumps(sample_drafts))


# ─────────────────────────────────────────────────────────────────────────────
# Session Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_session(store, fixed_clock, rng):
    """Build a started QuestSession with injectable LLM clients."""
    from microquest.config import MicroquestConfig
    from microquest.session import QuestSession
    from microquest.tasks.decompose import AdviceService, DecompositionGateway

    def _make(decompose_client=None, advice_client=None, config=None):
        config = config or MicroquestConfig()
        session = QuestSession(
            store,
            gateway=DecompositionGateway(config.decomposition, client=decompose_client),
            advice=AdviceService(config.advice, client=advice_client),
            config=config,
            clock=fixed_clock,
            rng=rng,
        )
        session.start()
        return session

    return _make


# ─────────────────────────────────────────────────────────────────────────────
# Async Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def anyio_backend() -> str:
    """Backend for async tests."""
    return "asyncio"

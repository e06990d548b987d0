"""Tests for microquest/tasks/decompose.py

The decomposition gateway turns a goal into quest drafts via an LLM.
Key functionality:
- Request payload carries goal, category and pacing unmodified
- Refinement adds the note and prior drafts
- Every failure becomes DecomposeErr, never an exception
- Advice service always returns text
"""

import json

import pytest

from microquest.config import AdviceConfig, DecompositionConfig
from microquest.tasks.decompose import (
    AdviceService,
    DecomposeErr,
    DecomposeOk,
    DecompositionGateway,
    MicroTaskDraft,
    PacingParams,
    build_request,
    extract_json,
    parse_drafts,
)


# ─────────────────────────────────────────────────────────────────────────────
# Response Parsing
# ─────────────────────────────────────────────────────────────────────────────


class TestParseDrafts:
    """Tests for response validation."""

    def test_valid_list(self, sample_drafts):
        result = parse_drafts(json.dumps(sample_drafts))

        assert isinstance(result, DecomposeOk)
        assert len(result.drafts) == 3
        assert result.drafts[1].duration_est_min == 10
        assert result.drafts[1].friction_score == 3

    def test_code_fenced_response(self, sample_drafts):
        text = f"Here you go:\n```json\n{json.dumps(sample_drafts)}\n```"

        assert parse_drafts(text).success is True

    def test_extract_json_plain_fence(self):
        assert extract_json("```\n[1]\n```") == "[1]"

    def test_malformed_json(self):
        result = parse_drafts("[{not json")

        assert isinstance(result, DecomposeErr)
        assert "JSON" in result.reason

    def test_empty_text(self):
        assert parse_drafts("   ").success is False

    def test_empty_list(self):
        assert parse_drafts("[]").success is False

    def test_object_instead_of_list(self, sample_drafts):
        assert parse_drafts(json.dumps(sample_drafts[0])).success is False

    def test_out_of_range_difficulty(self, sample_drafts):
        sample_drafts[0]["difficulty"] = 7

        assert parse_drafts(json.dumps(sample_drafts)).success is False

    def test_missing_field(self, sample_drafts):
        del sample_drafts[2]["successCriteria"]

        assert parse_drafts(json.dumps(sample_drafts)).success is False

    def test_non_positive_duration(self, sample_drafts):
        sample_drafts[0]["durationEstMin"] = 0

        assert parse_drafts(json.dumps(sample_drafts)).success is False

    def test_long_list_is_truncated(self, sample_drafts):
        drafts = sample_drafts * 3

        result = parse_drafts(json.dumps(drafts), max_steps=6)

        assert result.success is True
        assert len(result.drafts) == 6


# ─────────────────────────────────────────────────────────────────────────────
# Request Payload
# ─────────────────────────────────────────────────────────────────────────────


class TestBuildRequest:
    """Tests for the request contract."""

    def test_fresh_request(self):
        pacing = PacingParams(level=3, streak=4, energy_mode="Low", accuracy_ratio=1.4)

        request = build_request("clean the garage", "Chores", pacing)

        assert request == {
            "goal": "clean the garage",
            "category": "Chores",
            "pacing": {"level": 3, "streak": 4, "energyMode": "Low", "accuracyRatio": 1.4},
        }

    def test_refinement_request(self, sample_drafts):
        prior = [MicroTaskDraft.model_validate(d) for d in sample_drafts]

        request = build_request("clean", "Chores", PacingParams(), "too big", prior)

        assert request["refinementNote"] == "too big"
        assert request["priorDrafts"][0]["durationEstMin"] == 5
        assert request["priorDrafts"][0]["title"] == sample_drafts[0]["title"]

    def test_note_without_drafts_is_fresh(self):
        request = build_request("clean", "Chores", PacingParams(), "too big", [])

        assert "refinementNote" not in request


# ─────────────────────────────────────────────────────────────────────────────
# Gateway
# ─────────────────────────────────────────────────────────────────────────────


class TestDecompositionGateway:
    """Tests for the async gateway with a fake client."""

    @pytest.mark.asyncio
    async def test_success(self, fake_llm):
        gateway = DecompositionGateway(DecompositionConfig(), client=fake_llm)

        result = await gateway.decompose("write report", "Work", PacingParams(level=2))

        assert result.success is True
        assert [d.xp_reward for d in result.drafts] == [10, 50, 90]

    @pytest.mark.asyncio
    async def test_pacing_passed_through(self, fake_llm):
        gateway = DecompositionGateway(client=fake_llm)
        pacing = PacingParams(level=5, streak=9, energy_mode="Low", accuracy_ratio=0.75)

        await gateway.decompose("write report", "Work", pacing)

        assert fake_llm.last_request()["pacing"] == pacing.to_dict()
        assert fake_llm.calls[0]["model"] == DecompositionConfig().llm_model

    @pytest.mark.asyncio
    async def test_empty_goal_is_rejected_without_call(self, fake_llm):
        gateway = DecompositionGateway(client=fake_llm)

        result = await gateway.decompose("   ", "Work", PacingParams())

        assert result.success is False
        assert fake_llm.calls == []

    @pytest.mark.asyncio
    async def test_invalid_energy_mode(self, fake_llm):
        gateway = DecompositionGateway(client=fake_llm)

        result = await gateway.decompose("goal", "Work", PacingParams(energy_mode="Hyper"))

        assert result.success is False

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("MICROQUEST_TEST_KEY", raising=False)
        gateway = DecompositionGateway(DecompositionConfig(api_key_env="MICROQUEST_TEST_KEY"))

        result = await gateway.decompose("goal", "Work", PacingParams())

        assert isinstance(result, DecomposeErr)
        assert "MICROQUEST_TEST_KEY" in result.reason

    @pytest.mark.asyncio
    async def test_network_error_becomes_err(self, llm_client_factory):
        client = llm_client_factory(ConnectionError("boom"))
        gateway = DecompositionGateway(client=client)

        result = await gateway.decompose("goal", "Work", PacingParams())

        assert result.success is False
        assert "boom" in result.reason

    @pytest.mark.asyncio
    async def test_malformed_response_becomes_err(self, llm_client_factory):
        gateway = DecompositionGateway(client=llm_client_factory("I can't help with that"))

        result = await gateway.decompose("goal", "Work", PacingParams())

        assert result.success is False

    @pytest.mark.asyncio
    async def test_refinement_prompt_asks_for_replacement(self, fake_llm, sample_drafts):
        gateway = DecompositionGateway(client=fake_llm)
        prior = [MicroTaskDraft.model_validate(d) for d in sample_drafts]

        await gateway.decompose("goal", "Work", PacingParams(), "smaller steps", prior)

        prompt = fake_llm.calls[0]["messages"][0]["content"]
        assert "REPLACEMENT" in prompt
        assert fake_llm.last_request()["refinementNote"] == "smaller steps"


# ─────────────────────────────────────────────────────────────────────────────
# Advice
# ─────────────────────────────────────────────────────────────────────────────


class TestAdviceService:
    """Tests for reflection advice."""

    @pytest.mark.asyncio
    async def test_returns_model_text(self, llm_client_factory):
        service = AdviceService(client=llm_client_factory("  Nice focus today!  "))

        assert await service.advise("did stuff", {"level": 1}) == "Nice focus today!"

    @pytest.mark.asyncio
    async def test_error_returns_fallback(self, llm_client_factory):
        config = AdviceConfig()
        service = AdviceService(config, client=llm_client_factory(RuntimeError("quota")))

        assert await service.advise("did stuff", {}) == config.fallback_text

    @pytest.mark.asyncio
    async def test_empty_text_returns_default(self, llm_client_factory):
        config = AdviceConfig()
        service = AdviceService(config, client=llm_client_factory("   "))

        assert await service.advise("did stuff", {}) == config.empty_text

    @pytest.mark.asyncio
    async def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("MICROQUEST_TEST_KEY", raising=False)
        config = AdviceConfig(api_key_env="MICROQUEST_TEST_KEY")

        assert await AdviceService(config).advise("x", {}) == config.missing_key_text

"""
Tool: Decomposition Gateway
Purpose: Turn a high-level goal into 3-6 time-boxed micro-quests using an LLM

The decomposition service is an external collaborator. This module owns the
request contract (goal, category, pacing parameters, optional refinement
feedback) and the response contract (a JSON array of quest drafts). Every
failure mode - missing key, network error, quota, malformed JSON, schema
violations, empty list - comes back as DecomposeErr with a reason; nothing
is raised to the caller.

Pacing parameters are passed through untouched. The calibration policy
(low energy -> shorter steps, accuracy ratio > 1 -> longer estimates and
finer steps) is guidance for the service, not something enforced here.

Usage:
    python -m microquest.tasks.decompose --goal "write the quarterly report" --category Work
    python -m microquest.tasks.decompose --goal "clean the garage" --energy Low --ratio 1.4

Dependencies:
    - anthropic (LLM calls)
    - pydantic (response validation)

Output:
    JSON list of drafts, or an error
"""

import argparse
import asyncio
import json
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import anthropic
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from microquest.config import AdviceConfig, DecompositionConfig
from microquest.logging_config import get_logger

from . import ENERGY_MODES

logger = get_logger(__name__)


SYSTEM_PROMPT = """You are a productivity coach for people who procrastinate or have ADHD.
Your goal is to bring the psychological resistance of starting close to zero.

RULES:
1. The first step must be overwhelmingly easy ("sit at the desk", "open the laptop").
2. Each step is one concrete action that fits in roughly 5-15 minutes.
3. Use concrete actions ("pick 3 key metrics from the data"), never abstractions ("analyze").
4. Keep a logical flow and place small checkpoints that feel like wins.
5. The more complex the goal, the more steps - wins should come often.

CALIBRATION (use the pacing block of the request):
- energyMode "Low": keep every step at the short end of the range.
- accuracyRatio > 1: the user takes longer than estimated. Inflate durations
  by that ratio and split steps finer.
- accuracyRatio < 1: the user is faster than estimated. Tighten durations;
  steps may be coarser.

Respond with a JSON array only. Each item:
{"title": str, "durationEstMin": number, "difficulty": 1-5, "frictionScore": 1-5,
 "xpReward": number (based on duration x difficulty), "successCriteria": str, "nextHint": str}
"""


class MicroTaskDraft(BaseModel):
    """One quest as returned by the decomposition service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = Field(min_length=1)
    duration_est_min: float = Field(alias="durationEstMin", gt=0)
    difficulty: int = Field(ge=1, le=5)
    friction_score: int = Field(alias="frictionScore", ge=1, le=5)
    xp_reward: float = Field(alias="xpReward", ge=0)
    success_criteria: str = Field(alias="successCriteria")
    next_hint: str = Field(alias="nextHint")


@dataclass
class PacingParams:
    """User pacing passed through to the service unmodified."""

    level: int = 1
    streak: int = 0
    energy_mode: str = "Normal"
    accuracy_ratio: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "streak": self.streak,
            "energyMode": self.energy_mode,
            "accuracyRatio": self.accuracy_ratio,
        }


@dataclass(frozen=True)
class DecomposeOk:
    drafts: list[MicroTaskDraft] = field(default_factory=list)
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class DecomposeErr:
    reason: str
    success: bool = field(default=False, init=False)


DecomposeResult = Union[DecomposeOk, DecomposeErr]


def build_request(
    goal: str,
    category: str,
    pacing: PacingParams,
    refinement_note: Optional[str] = None,
    prior_drafts: Optional[list[MicroTaskDraft]] = None,
) -> dict[str, Any]:
    """Build the request payload sent to the decomposition service."""
    request: dict[str, Any] = {
        "goal": goal,
        "category": category,
        "pacing": pacing.to_dict(),
    }
    if refinement_note and prior_drafts:
        request["refinementNote"] = refinement_note
        request["priorDrafts"] = [d.model_dump(by_alias=True) for d in prior_drafts]
    return request


def render_prompt(request: dict[str, Any], min_steps: int, max_steps: int) -> str:
    """Render the user message for a request payload."""
    prompt = f"Request:\n{json.dumps(request, ensure_ascii=False, indent=2)}\n\n"
    if "refinementNote" in request:
        prompt += (
            "The user gave feedback on the prior drafts. Produce a complete "
            "REPLACEMENT list (not a merge) that reflects the feedback."
        )
    else:
        prompt += f"Create {min_steps}-{max_steps} micro-quests that achieve the goal."
    return prompt + "\n\nRespond with valid JSON only."


def extract_json(response_text: str) -> str:
    """Strip markdown code fences around a JSON payload."""
    text = response_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0]
    elif "```" in text:
        text = text.split("```")[1].split("```")[0]
    return text.strip()


def parse_drafts(response_text: str, max_steps: int = 6) -> DecomposeResult:
    """
    Parse and validate the service response.

    Args:
        response_text: Raw text returned by the model
        max_steps: Longer lists are truncated to this many drafts

    Returns:
        DecomposeOk with validated drafts, or DecomposeErr
    """
    if not response_text or not response_text.strip():
        return DecomposeErr("empty response")

    try:
        data = json.loads(extract_json(response_text))
    except json.JSONDecodeError as e:
        return DecomposeErr(f"Failed to parse LLM response as JSON: {e}")

    if not isinstance(data, list):
        return DecomposeErr("LLM response is not a JSON array")
    if not data:
        return DecomposeErr("LLM returned no steps")

    try:
        drafts = [MicroTaskDraft.model_validate(item) for item in data]
    except ValidationError as e:
        return DecomposeErr(f"LLM response failed validation: {e.error_count()} error(s)")

    if len(drafts) > max_steps:
        drafts = drafts[:max_steps]

    return DecomposeOk(drafts=drafts)


class DecompositionGateway:
    """Async client for the decomposition service.

    Args:
        config: Model and step-count settings
        client: Pre-built AsyncAnthropic-compatible client (tests inject fakes).
            When omitted, one is created from the configured API key env var.
    """

    def __init__(self, config: Optional[DecompositionConfig] = None, client: Any = None):
        self.config = config or DecompositionConfig()
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = os.environ.get(self.config.api_key_env)
        if not api_key:
            return None
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        return self._client

    async def decompose(
        self,
        goal: str,
        category: str,
        pacing: PacingParams,
        refinement_note: Optional[str] = None,
        prior_drafts: Optional[list[MicroTaskDraft]] = None,
    ) -> DecomposeResult:
        if not goal or not goal.strip():
            return DecomposeErr("goal is empty")
        if pacing.energy_mode not in ENERGY_MODES:
            return DecomposeErr(f"Invalid energy mode. Must be one of: {ENERGY_MODES}")

        client = self._get_client()
        if client is None:
            return DecomposeErr(f"{self.config.api_key_env} not set")

        request = build_request(goal.strip(), category, pacing, refinement_note, prior_drafts)
        prompt = render_prompt(request, self.config.min_steps, self.config.max_steps)

        try:
            message = await client.messages.create(
                model=self.config.llm_model,
                max_tokens=self.config.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
            response_text = message.content[0].text
        except Exception as e:
            logger.warning(f"Decomposition call failed: {e}")
            return DecomposeErr(f"LLM decomposition failed: {e}")

        result = parse_drafts(response_text, self.config.max_steps)
        if not result.success:
            logger.warning(f"Decomposition response rejected: {result.reason}")
        elif len(result.drafts) < self.config.min_steps and "refinementNote" not in request:
            logger.debug(f"Decomposition returned only {len(result.drafts)} steps")
        return result


class AdviceService:
    """Short coaching feedback on a user's daily reflection.

    Never raises: any failure returns a fixed fallback string.
    """

    def __init__(self, config: Optional[AdviceConfig] = None, client: Any = None):
        self.config = config or AdviceConfig()
        self._client = client

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        api_key = os.environ.get(self.config.api_key_env)
        if not api_key:
            return None
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        return self._client

    async def advise(self, reflection: str, stats: dict[str, Any]) -> str:
        client = self._get_client()
        if client is None:
            return self.config.missing_key_text

        prompt = (
            f'User reflection: "{reflection}"\n'
            f"Stats: {json.dumps(stats, ensure_ascii=False)}\n"
            "Give warm, specific feedback in 2-3 sentences."
        )

        try:
            message = await client.messages.create(
                model=self.config.llm_model,
                max_tokens=self.config.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
            text = message.content[0].text.strip()
        except Exception as e:
            logger.warning(f"Advice call failed: {e}")
            return self.config.fallback_text

        return text or self.config.empty_text


def main():
    parser = argparse.ArgumentParser(
        description="Decomposition Gateway - break a goal into micro-quests"
    )
    parser.add_argument("--goal", required=True, help="Goal to decompose")
    parser.add_argument("--category", default="General", help="Goal category")
    parser.add_argument("--level", type=int, default=1, help="User level")
    parser.add_argument("--streak", type=int, default=0, help="Current streak")
    parser.add_argument("--energy", choices=ENERGY_MODES, default="Normal", help="Energy mode")
    parser.add_argument("--ratio", type=float, default=1.0, help="Accuracy ratio (actual/estimated)")

    args = parser.parse_args()

    from microquest.config import load_config

    gateway = DecompositionGateway(load_config().decomposition)
    pacing = PacingParams(
        level=args.level,
        streak=args.streak,
        energy_mode=args.energy,
        accuracy_ratio=args.ratio,
    )
    result = asyncio.run(gateway.decompose(args.goal, args.category, pacing))

    if result.success:
        print(json.dumps([d.model_dump(by_alias=True) for d in result.drafts], indent=2, ensure_ascii=False))
    else:
        print(json.dumps({"success": False, "error": result.reason}))
        sys.exit(1)


if __name__ == "__main__":
    main()

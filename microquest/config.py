from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from microquest import CONFIG_PATH

logger = logging.getLogger(__name__)


# =============================================================================
# Decomposition / advice (LLM collaborators)
# =============================================================================

class DecompositionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    llm_model: str = Field(default="claude-3-haiku-20240307")
    max_tokens: int = Field(default=1024, ge=1)
    min_steps: int = Field(default=3, ge=1)
    max_steps: int = Field(default=6, ge=1)
    api_key_env: str = Field(default="ANTHROPIC_API_KEY")


class AdviceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    llm_model: str = Field(default="claude-3-haiku-20240307")
    max_tokens: int = Field(default=300, ge=1)
    api_key_env: str = Field(default="ANTHROPIC_API_KEY")
    fallback_text: str = Field(
        default="Something went wrong while reading your reflection, but your effort has been recorded."
    )
    missing_key_text: str = Field(default="Set an API key to receive personalised advice.")
    empty_text: str = Field(default="Good work today.")


# =============================================================================
# Progression
# =============================================================================

class ProgressionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    feedback_xp: int = Field(default=20, ge=0)
    cheer_xp: int = Field(default=2, ge=0)


class PacingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    window: int = Field(default=5, ge=1)


class GardenConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    growth_probability: float = Field(default=0.65, ge=0.0, le=1.0)
    max_plants: int = Field(default=12, ge=1)
    plant_type_mode: str = Field(default="category", pattern="^(category|random)$")
    palette: list[str] = Field(default_factory=lambda: ["🌸", "🌿", "🌳", "🌻", "🌵", "🍀", "🌲"])
    category_types: dict[str, str] = Field(
        default_factory=lambda: {
            "Work": "🌳",
            "Study": "🌻",
            "Chores": "🌵",
            "Health": "🍀",
            "General": "🌿",
        }
    )


class ShopItemConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str
    description: str = ""
    cost: int = Field(ge=0)
    icon: str = ""
    enabled: bool = True


def _default_shop() -> dict[str, ShopItemConfig]:
    return {
        "streak_freeze": ShopItemConfig(
            name="Streak Freeze",
            description="Protects your streak through one missed day.",
            cost=300,
            icon="❄️",
        ),
        "seed_pack": ShopItemConfig(
            name="Rare Seed Pack",
            description="A seed you can plant in your garden at any time.",
            cost=150,
            icon="🎒",
        ),
        "focus_potion": ShopItemConfig(
            name="Focus Potion",
            description="Double XP on the next quest. Coming soon.",
            cost=500,
            icon="🧪",
            enabled=False,
        ),
    }


class ShopConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    items: dict[str, ShopItemConfig] = Field(default_factory=_default_shop)


class RivalConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str
    xp: int = Field(default=0, ge=0)
    avatar: str = "🙂"


def _default_rivals() -> list[RivalConfig]:
    return [
        RivalConfig(name="TaskHero", xp=3200, avatar="🥷"),
        RivalConfig(name="DuoMaster", xp=2950, avatar="🦉"),
        RivalConfig(name="StudyBuddy", xp=2800, avatar="👑"),
        RivalConfig(name="SlowAndSteady", xp=2100, avatar="🐢"),
        RivalConfig(name="TodoBot", xp=1800, avatar="🤖"),
        RivalConfig(name="EarlyBird", xp=1500, avatar="🐦"),
    ]


class LeagueConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    # Minimum XP for each tier, lowest first
    tiers: dict[str, int] = Field(
        default_factory=lambda: {"Bronze": 0, "Silver": 1000, "Gold": 2500, "Diamond": 5000}
    )
    rivals: list[RivalConfig] = Field(default_factory=_default_rivals)


# =============================================================================
# Logging / storage
# =============================================================================

class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    level: str = Field(default="INFO")
    format: str = Field(default="console", pattern="^(console|json)$")
    # Rotating JSON log file; relative paths resolve against the project root
    file: Optional[str] = Field(default=None)
    max_bytes: int = Field(default=1_000_000, gt=0)
    backup_count: int = Field(default=3, ge=0)
    quiet_loggers: list[str] = Field(default_factory=lambda: ["anthropic", "httpx", "httpcore"])


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    db_path: str = Field(default="data/microquest.db")
    schema_version: int = Field(default=1, ge=1)


# =============================================================================
# Root config (args/microquest.yaml)
# =============================================================================

class MicroquestConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    decomposition: DecompositionConfig = Field(default_factory=DecompositionConfig)
    advice: AdviceConfig = Field(default_factory=AdviceConfig)
    progression: ProgressionConfig = Field(default_factory=ProgressionConfig)
    pacing: PacingConfig = Field(default_factory=PacingConfig)
    garden: GardenConfig = Field(default_factory=GardenConfig)
    shop: ShopConfig = Field(default_factory=ShopConfig)
    league: LeagueConfig = Field(default_factory=LeagueConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: Optional[Path] = None) -> MicroquestConfig:
    yaml_path = path or CONFIG_PATH

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return MicroquestConfig.model_validate(raw)
    except Exception as e:
        logger.warning(f"Config validation failed for {yaml_path.name}: {e}, using defaults")
        return MicroquestConfig()


__all__ = [
    "AdviceConfig",
    "DecompositionConfig",
    "GardenConfig",
    "LeagueConfig",
    "LoggingConfig",
    "MicroquestConfig",
    "PacingConfig",
    "ProgressionConfig",
    "RivalConfig",
    "ShopConfig",
    "ShopItemConfig",
    "StorageConfig",
    "load_config",
]

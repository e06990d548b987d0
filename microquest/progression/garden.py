"""
Tool: Garden Growth
Purpose: Cosmetic plant growth as a side effect of finishing quests

Purely decorative - nothing but the gardener badge reads the garden. A
finished quest grows a plant with a tunable probability while the garden
has free slots. Plants prefer unoccupied slots. Randomness comes from an
injected random.Random so tests are deterministic.
"""

import random
from copy import deepcopy
from datetime import datetime
from typing import Optional

from microquest.config import GardenConfig
from microquest.tasks.models import generate_id

from . import SEED_PACK
from .models import GardenPlant, User

RARE_SEED_TYPES = ("🌺", "🪷", "🌷")


def pick_slot(garden: list[GardenPlant], rng: random.Random, max_plants: int) -> int:
    """Random free slot, or any slot if every slot is somehow taken."""
    occupied = {p.position for p in garden}
    free = [i for i in range(max_plants) if i not in occupied]
    if free:
        return rng.choice(free)
    return rng.randrange(max_plants)


def pick_type(category: Optional[str], rng: random.Random, config: GardenConfig) -> str:
    if config.plant_type_mode == "category" and category in config.category_types:
        return config.category_types[category]
    return rng.choice(config.palette)


def maybe_grow(
    garden: list[GardenPlant],
    category: Optional[str],
    rng: random.Random,
    now: datetime,
    config: Optional[GardenConfig] = None,
) -> tuple[list[GardenPlant], Optional[GardenPlant]]:
    """
    Roll for a new plant after a completed quest.

    Returns:
        (updated garden, new plant or None)
    """
    config = config or GardenConfig()
    updated = deepcopy(garden)
    if len(updated) >= config.max_plants:
        return updated, None
    if rng.random() >= config.growth_probability:
        return updated, None

    plant = GardenPlant(
        id=generate_id(rng),
        type=pick_type(category, rng, config),
        position=pick_slot(updated, rng, config.max_plants),
        grown_at=now,
        category=category,
    )
    updated.append(plant)
    return updated, plant


def plant_seed(
    user: User,
    rng: random.Random,
    now: datetime,
    config: Optional[GardenConfig] = None,
) -> tuple[User, Optional[GardenPlant]]:
    """Spend one seed pack for a guaranteed rare plant."""
    config = config or GardenConfig()
    updated = deepcopy(user)
    if updated.inventory.get(SEED_PACK, 0) <= 0 or len(updated.garden) >= config.max_plants:
        return updated, None

    plant = GardenPlant(
        id=generate_id(rng),
        type=rng.choice(RARE_SEED_TYPES),
        position=pick_slot(updated.garden, rng, config.max_plants),
        grown_at=now,
    )
    updated.inventory[SEED_PACK] -= 1
    updated.garden.append(plant)
    return updated, plant


def render_garden(garden: list[GardenPlant], max_plants: int = 12, empty: str = "·") -> str:
    slots = [empty] * max_plants
    for plant in garden:
        if 0 <= plant.position < max_plants:
            slots[plant.position] = plant.type
    rows = [slots[i:i + 6] for i in range(0, max_plants, 6)]
    return "\n".join(" ".join(row) for row in rows)


__all__ = ["maybe_grow", "pick_slot", "pick_type", "plant_seed", "render_garden"]

"""
Tool: XP Shop
Purpose: Spend XP on inventory items

A purchase is atomic: either the full cost is debited and exactly one unit
is granted, or nothing changes. Unknown, disabled and unaffordable items are
rejected with a reason.
"""

from copy import deepcopy
from typing import Any, Optional

from microquest.config import ShopItemConfig
from microquest.logging_config import get_logger

from .engine import spend_xp
from .models import User

logger = get_logger(__name__)


def buy_item(
    user: User,
    item_id: str,
    catalogue: dict[str, ShopItemConfig],
) -> tuple[User, bool, Optional[str]]:
    """
    Buy one unit of an item.

    Returns:
        (updated user, success, failure reason or None)
    """
    item = catalogue.get(item_id)
    if item is None:
        return deepcopy(user), False, f"Unknown item: {item_id}"
    if not item.enabled:
        return deepcopy(user), False, f"{item.name} is not available yet"

    updated, ok = spend_xp(user, item.cost)
    if not ok:
        logger.debug(f"Purchase of {item_id} rejected: {user.total_xp} XP < {item.cost}")
        return updated, False, f"Not enough XP ({user.total_xp}/{item.cost})"

    updated.inventory[item_id] = updated.inventory.get(item_id, 0) + 1
    logger.info(f"Bought {item_id} for {item.cost} XP")
    return updated, True, None


def list_items(user: User, catalogue: dict[str, ShopItemConfig]) -> list[dict[str, Any]]:
    return [
        {
            "id": item_id,
            "name": item.name,
            "description": item.description,
            "cost": item.cost,
            "icon": item.icon,
            "enabled": item.enabled,
            "owned": user.inventory.get(item_id, 0),
            "affordable": item.enabled and user.total_xp >= item.cost,
        }
        for item_id, item in catalogue.items()
    ]


__all__ = ["buy_item", "list_items"]

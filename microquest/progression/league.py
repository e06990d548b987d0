"""
Tool: League
Purpose: Tier and standings among a fixed rival roster

The tier is derived from total XP using configured thresholds; standings
rank the user against the rival roster by XP (ties keep the user below
the rival already holding that score).
"""

from typing import Any, Optional

from microquest.config import LeagueConfig

from .models import User


def tier_for_xp(total_xp: int, tiers: dict[str, int]) -> str:
    """Highest tier whose threshold the XP meets."""
    ranked = sorted(tiers.items(), key=lambda kv: kv[1])
    current = ranked[0][0] if ranked else "Bronze"
    for name, threshold in ranked:
        if total_xp >= threshold:
            current = name
    return current


def next_tier(total_xp: int, tiers: dict[str, int]) -> Optional[dict[str, Any]]:
    for name, threshold in sorted(tiers.items(), key=lambda kv: kv[1]):
        if total_xp < threshold:
            return {"tier": name, "xp_needed": threshold - total_xp}
    return None


def standings(user: User, config: Optional[LeagueConfig] = None) -> dict[str, Any]:
    config = config or LeagueConfig()

    rows = [
        {"name": r.name, "xp": r.xp, "avatar": r.avatar, "is_user": False}
        for r in config.rivals
    ]
    rows.append({"name": f"{user.nickname} (you)", "xp": user.total_xp, "avatar": user.avatar, "is_user": True})
    # Stable sort: rivals listed first win ties
    rows.sort(key=lambda r: r["xp"], reverse=True)

    for rank, row in enumerate(rows, start=1):
        row["rank"] = rank

    user_rank = next(r["rank"] for r in rows if r["is_user"])
    return {
        "tier": tier_for_xp(user.total_xp, config.tiers),
        "next_tier": next_tier(user.total_xp, config.tiers),
        "rank": user_rank,
        "rows": rows,
    }


__all__ = ["next_tier", "standings", "tier_for_xp"]

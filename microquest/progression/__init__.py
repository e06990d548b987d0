"""Progression - XP, levels, streaks, daily quests, badges and the garden

Every function in this package is a reducer: it takes the current state,
returns an updated copy plus any notices (level up, streak protected, badge
unlocked), and never mutates its input.

Components:
    models.py: User, DailyQuest, GardenPlant, Friend, Notice records
    engine.py: XP ledger (task completion, feedback reward, spending)
    streaks.py: day rollover, streak decay/protection, daily quest reset
    quests.py: daily quest template and progress tracking
    badges.py: achievement catalogue and evaluator
    garden.py: cosmetic plant growth
    shop.py: XP shop with atomic purchases
    league.py: league tier and rival standings
    friends.py: friend list and daily cheers
"""

XP_PER_LEVEL = 1000

# Inventory item ids
STREAK_FREEZE = "streak_freeze"
SEED_PACK = "seed_pack"

__all__ = [
    "XP_PER_LEVEL",
    "STREAK_FREEZE",
    "SEED_PACK",
]

"""microquest Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - tasks/: timer, decomposition gateway, quest ordering
  - learning/: pacing calibrator
  - progression/: XP engine, streaks, daily quests, badges, garden, shop, league, friends
  - state/: snapshot store and app state
- integration/: Session-level flows (goal -> quests -> completion -> progression)

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/progression/
"""

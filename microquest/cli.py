#!/usr/bin/env python3
"""
microquest Command Line Interface

Main entry point for the `microquest` command.

Usage:
    microquest status                          # Profile, active quest, daily quests
    microquest goal "clean the garage" --category Chores --energy Low
    microquest refine <goal_id> "steps are too big"
    microquest focus                           # Time-boxed focus on the active quest
    microquest done --minutes 12               # Complete with time tracked elsewhere
    microquest reflect "today went well"
    microquest buy streak_freeze
    microquest badges
    microquest reset --yes
"""

import argparse
import asyncio
import json
import sys

from microquest import __version__
from microquest.config import load_config
from microquest.logging_config import setup_logging
from microquest.progression.badges import BADGES_BY_ID, badge_overview
from microquest.tasks import DEFAULT_CATEGORIES, ENERGY_MODES


def _print_notices(result):
    for notice in result.get("data", {}).get("notices", []):
        print(f"  * {notice['message']}")


def _report(result, ok_message=None):
    """Print a session result and return the exit code."""
    if not result["success"]:
        print(f"Error: {result['error']}")
        return 1
    if ok_message:
        print(ok_message)
    _print_notices(result)
    return 0


def _session():
    from microquest.session import QuestSession

    session = QuestSession.from_config()
    result = session.start()
    _print_notices(result)
    return session


def cmd_status(args):
    """Show the profile, active quest and daily quests."""
    session = _session()
    status = session.status()
    user = status["user"]
    progress = status["progress"]

    if args.json:
        print(json.dumps(session.state.to_dict(), indent=2, ensure_ascii=False))
        return

    print(f"{user['avatar']} {user['nickname']}")
    print("=" * 50)
    print(f"  Level {progress['level']}  ({progress['xp_into_level']}/1000 XP, {user['totalXP']} total)")
    print(f"  Streak {user['streakCount']} day(s)  (best {user['maxStreak']}, freezes {session.state.user.streak_freezes})")
    print(f"  Quests done {user['totalCompletedTasks']}  |  Focus {user['totalFocusMinutes']} min")
    print(f"  Pace {user['recentAccuracyRatio']:.2f}x estimate")
    if user["unlockedBadges"]:
        print("  Badges " + " ".join(BADGES_BY_ID[b].emoji for b in user["unlockedBadges"] if b in BADGES_BY_ID))

    active = status["active_task"]
    print("\n[Active quest]")
    if active:
        print(f"  {active.title}  (~{active.duration_est_min:g} min, +{active.xp_reward} XP)")
        if active.success_criteria:
            print(f"  Done when: {active.success_criteria}")
    else:
        print("  None - add a goal with: microquest goal \"...\"")

    if status["pending"]:
        print("\n[Up next]")
        for task in status["pending"]:
            marker = ">" if active and task.id == active.id else " "
            print(f"  {marker} {task.id}  {task.title}")

    print("\n[Daily quests]")
    for quest in status["quests"]:
        mark = "x" if quest["completed"] else " "
        claimed = " (claimed)" if quest["claimed"] else ""
        print(f"  [{mark}] {quest['id']}  {quest['title']}: {quest['currentValue']}/{quest['targetValue']}{claimed}")


def cmd_badges(args):
    """List every badge, unlocked ones first."""
    session = _session()
    overview = badge_overview(session.state.user)
    unlocked = sum(1 for b in overview if b["unlocked"])
    print(f"Badges {unlocked}/{len(overview)}")
    print("-" * 50)
    for badge in sorted(overview, key=lambda b: not b["unlocked"]):
        icon = badge["emoji"] if badge["unlocked"] else "·"
        print(f"  {icon} {badge['title']:<14} {badge['description']}")


def cmd_goal(args):
    """Decompose a goal into quests."""
    session = _session()
    print("Breaking your goal into quests...")
    result = asyncio.run(session.create_goal(args.goal, args.category, args.energy))
    if not result["success"]:
        return _report(result)

    print(f"Goal {result['data']['macro_task'].id}:")
    for task in result["data"]["tasks"]:
        print(f"  - {task.title} (~{task.duration_est_min:g} min, +{task.xp_reward} XP)")
    return 0


def cmd_refine(args):
    """Replace a goal's pending quests based on feedback."""
    session = _session()
    result = asyncio.run(session.refine_goal(args.goal_id, args.note, args.energy))
    if not result["success"]:
        return _report(result)

    print("New plan:")
    for task in result["data"]["tasks"]:
        print(f"  - {task.title} (~{task.duration_est_min:g} min)")
    return 0


def cmd_activate(args):
    session = _session()
    return _report(session.activate(args.task_id), f"Active quest: {args.task_id}")


def cmd_focus(args):
    """Run the timer on the active quest interactively."""
    session = _session()
    task = session.state.active_task
    if task is None:
        print("No active quest.")
        return 1

    print(f"Focus: {task.title}")
    if task.next_hint:
        print(f"Hint: {task.next_hint}")
    print("Press Enter to pause/resume, 'd' + Enter when done, 'q' + Enter to quit.\n")

    session.start_timer()
    while True:
        try:
            command = input(f"[{session.timer.to_dict()['display']}] ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            command = "q"

        if command == "d":
            result = session.complete_active()
            return _report(result, f"Done in {result.get('data', {}).get('minutes')} min!")
        if command == "q":
            session.pause_timer()
            print("Left without completing; elapsed time is discarded.")
            return 0
        if session.timer.running:
            session.pause_timer()
            print("Paused.")
        else:
            session.start_timer()
            print("Resumed.")


def cmd_done(args):
    """Complete the active quest with time tracked outside the timer."""
    session = _session()
    result = session.complete_active(actual_minutes=args.minutes)
    if not result["success"]:
        return _report(result)
    data = result["data"]
    return _report(result, f"Quest done: {data['task'].title} ({data['minutes']} min, +{data['xp']} XP)")


def cmd_reflect(args):
    session = _session()
    result = asyncio.run(session.submit_reflection(args.text))
    if not result["success"]:
        return _report(result)

    entry = result["data"]["entry"]
    print(f"Coach: {entry.advice}")
    if result["data"]["xp"]:
        print(f"  +{result['data']['xp']} XP")
    _print_notices(result)
    return 0


def cmd_buy(args):
    session = _session()
    if args.item is None:
        from microquest.progression.shop import list_items

        for item in list_items(session.state.user, session.config.shop.items):
            state = "" if item["enabled"] else "  (coming soon)"
            print(f"  {item['icon']} {item['id']:<15} {item['cost']:>5} XP  owned {item['owned']}{state}")
        return 0
    return _report(session.buy(args.item), f"Bought {args.item}.")


def cmd_plant(args):
    session = _session()
    if args.show:
        from microquest.progression.garden import render_garden

        print(render_garden(session.state.user.garden, session.config.garden.max_plants))
        return 0
    return _report(session.plant_seed(), "Planted a rare seed.")


def cmd_claim(args):
    session = _session()
    result = session.claim_quest(args.quest_id)
    return _report(result, f"Claimed +{result.get('data', {}).get('xp', 0)} XP.")


def cmd_friend(args):
    from microquest.progression.friends import cohort_impact

    session = _session()
    if args.add:
        result = session.add_friend(args.add)
        return _report(result, f"Added {result['data']['friend'].nickname}." if result["success"] else None)

    if session.state.friends:
        print(f"Cohort impact today: {cohort_impact(session.state.friends)}")
    for friend in session.state.friends:
        cheered = " (cheered)" if friend.cheered_today else ""
        print(f"  {friend.avatar} {friend.id}  {friend.nickname}  Lv.{friend.level}  streak {friend.streak_count}{cheered}")
    if not session.state.friends:
        print("No friends yet. Add one with: microquest friend --add <id>")
    return 0


def cmd_cheer(args):
    session = _session()
    return _report(session.cheer(args.friend_id), "Cheer sent!")


def cmd_move(args):
    session = _session()
    return _report(session.move_task(args.task_id, args.direction), f"Moved {args.task_id} {args.direction}.")


def cmd_profile(args):
    session = _session()
    return _report(session.update_profile(args.nickname, args.avatar), "Profile updated.")


def cmd_league(args):
    from microquest.progression.league import standings

    session = _session()
    table = standings(session.state.user, session.config.league)
    print(f"{table['tier']} League  -  rank #{table['rank']}")
    print("-" * 40)
    for row in table["rows"]:
        print(f"  {row['rank']:>2}. {row['avatar']} {row['name']:<22} {row['xp']:>6} XP")
    if table["next_tier"]:
        print(f"\n{table['next_tier']['xp_needed']} XP to {table['next_tier']['tier']}")


def cmd_export(args):
    session = _session()
    return _report(session.export(args.path), f"Exported to {args.path}")


def cmd_import(args):
    session = _session()
    return _report(session.import_snapshot(args.path), f"Imported {args.path}")


def cmd_reset(args):
    session = _session()
    return _report(session.reset_progress(confirm=args.yes), "All goals and quests cleared.")


def cmd_version(args):
    print(f"microquest version {__version__}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="microquest",
        description="microquest - turn goals into tiny, rewarding quests",
    )
    parser.add_argument("--version", "-v", action="store_true", help="Show version information")
    parser.add_argument("--log-level", help="Log level (overrides MICROQUEST_LOG_LEVEL)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    status_parser = subparsers.add_parser("status", help="Show profile and quests")
    status_parser.add_argument("--json", action="store_true", help="Dump the full state as JSON")
    status_parser.set_defaults(func=cmd_status)

    badges_parser = subparsers.add_parser("badges", help="Show unlocked and locked badges")
    badges_parser.set_defaults(func=cmd_badges)

    goal_parser = subparsers.add_parser("goal", help="Break a goal into quests")
    goal_parser.add_argument("goal", help="What you want to get done")
    goal_parser.add_argument(
        "--category", default="General", help=f"Goal category, e.g. {', '.join(DEFAULT_CATEGORIES)}"
    )
    goal_parser.add_argument("--energy", choices=ENERGY_MODES, default="Normal", help="Current energy")
    goal_parser.set_defaults(func=cmd_goal)

    refine_parser = subparsers.add_parser("refine", help="Rework a goal's pending quests")
    refine_parser.add_argument("goal_id", help="Goal ID")
    refine_parser.add_argument("note", help="What should change")
    refine_parser.add_argument("--energy", choices=ENERGY_MODES, default="Normal", help="Current energy")
    refine_parser.set_defaults(func=cmd_refine)

    activate_parser = subparsers.add_parser("activate", help="Switch the active quest")
    activate_parser.add_argument("task_id", help="Quest ID")
    activate_parser.set_defaults(func=cmd_activate)

    focus_parser = subparsers.add_parser("focus", help="Start the focus timer on the active quest")
    focus_parser.set_defaults(func=cmd_focus)

    done_parser = subparsers.add_parser("done", help="Complete the active quest")
    done_parser.add_argument("--minutes", type=int, required=True, help="Minutes spent")
    done_parser.set_defaults(func=cmd_done)

    reflect_parser = subparsers.add_parser("reflect", help="Write today's reflection")
    reflect_parser.add_argument("text", help="How did today go?")
    reflect_parser.set_defaults(func=cmd_reflect)

    buy_parser = subparsers.add_parser("buy", help="Spend XP in the shop (no item lists the shop)")
    buy_parser.add_argument("item", nargs="?", help="Item ID")
    buy_parser.set_defaults(func=cmd_buy)

    plant_parser = subparsers.add_parser("plant", help="Plant a seed pack")
    plant_parser.add_argument("--show", action="store_true", help="Show the garden instead")
    plant_parser.set_defaults(func=cmd_plant)

    claim_parser = subparsers.add_parser("claim", help="Claim a completed daily quest")
    claim_parser.add_argument("quest_id", help="Quest ID")
    claim_parser.set_defaults(func=cmd_claim)

    friend_parser = subparsers.add_parser("friend", help="List or add friends")
    friend_parser.add_argument("--add", metavar="HANDLE", help="Friend id or phone number")
    friend_parser.set_defaults(func=cmd_friend)

    cheer_parser = subparsers.add_parser("cheer", help="Cheer a friend (once a day)")
    cheer_parser.add_argument("friend_id", help="Friend ID")
    cheer_parser.set_defaults(func=cmd_cheer)

    move_parser = subparsers.add_parser("move", help="Reorder a pending quest")
    move_parser.add_argument("task_id", help="Quest ID")
    move_parser.add_argument("direction", choices=["up", "down"])
    move_parser.set_defaults(func=cmd_move)

    profile_parser = subparsers.add_parser("profile", help="Update nickname or avatar")
    profile_parser.add_argument("--nickname")
    profile_parser.add_argument("--avatar")
    profile_parser.set_defaults(func=cmd_profile)

    league_parser = subparsers.add_parser("league", help="Show league standings")
    league_parser.set_defaults(func=cmd_league)

    export_parser = subparsers.add_parser("export", help="Export state to a JSON file")
    export_parser.add_argument("path")
    export_parser.set_defaults(func=cmd_export)

    import_parser = subparsers.add_parser("import", help="Replace state from a JSON file")
    import_parser.add_argument("path")
    import_parser.set_defaults(func=cmd_import)

    reset_parser = subparsers.add_parser("reset", help="Clear all goals and quests")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm the reset")
    reset_parser.set_defaults(func=cmd_reset)

    args = parser.parse_args()

    if args.version:
        cmd_version(args)
        return 0

    if not args.command:
        parser.print_help()
        return 0

    setup_logging(load_config().logging, level=args.log_level)
    return args.func(args) or 0


if __name__ == "__main__":
    sys.exit(main())

"""
Pal Plant — Entry Point.

Single entry point: `python main.py <command>` runs one action against the
local SQLite garden and prints the result.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from src.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from src.core.friend_service import FriendService, ResponseKind, ServiceResponse
from src.data.db import FriendDB, MeetingDB, ReminderLogDB
from src.data.models import ContactChannel, ContactType, parse_iso


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _service() -> FriendService:
    return FriendService(FriendDB(), MeetingDB())


def _print_response(response: ServiceResponse) -> int:
    print(response.message)
    return 1 if response.kind == ResponseKind.ERROR else 0


def cmd_add(args: argparse.Namespace) -> int:
    details = {
        key: getattr(args, key)
        for key in ("phone", "email", "notes", "birthday")
        if getattr(args, key)
    }
    return _print_response(
        _service().add_friend(args.name, args.category, args.every, _now(), **details)
    )


def cmd_list(args: argparse.Namespace) -> int:
    overview = _service().overview(_now())
    print(overview.message)
    for entry in overview.friends:
        status = entry.status
        when = f"{status.days_left}d left" if not status.is_overdue else f"overdue {-status.days_left}d"
        print(
            f"  [{entry.friend.id}] {entry.friend.name:<20} {entry.friend.category:<10} "
            f"score {entry.friend.individual_score:>3}  {status.percentage_left:6.1f}%  {when}  "
            f"tokens {entry.friend.quick_touches_available}"
        )
    return 0


def cmd_contact(args: argparse.Namespace) -> int:
    channel = ContactChannel(args.channel) if args.channel else None
    response = _service().log_contact(
        args.friend_id, ContactType(args.type.upper()), _now(), channel,
    )
    return _print_response(response)


def cmd_remove_log(args: argparse.Namespace) -> int:
    return _print_response(_service().delete_log(args.friend_id, args.log_id))


def cmd_cadence(args: argparse.Namespace) -> int:
    return _print_response(_service().update_cadence(args.friend_id, args.days))


def cmd_garden(args: argparse.Namespace) -> int:
    print(f"Garden score: {_service().garden_score(_now())}")
    return 0


def cmd_nudges(args: argparse.Namespace) -> int:
    service = _service()
    nudges = service.smart_nudges()
    if not nudges:
        print("No cadence suggestions right now.")
        return 0
    for nudge in nudges:
        print(
            f"  {nudge.friend_name}: {nudge.type} {nudge.current_days}d -> "
            f"{nudge.suggested_days}d. {nudge.reason}"
        )
        if args.apply:
            _print_response(service.apply_nudge(nudge))
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    from src.core.stats import calculate_streaks, get_upcoming_birthdays

    now = _now()
    overview = _service().overview(now)
    friends = [entry.friend for entry in overview.friends]
    for category, stats in sorted(overview.cohorts.items()):
        print(
            f"  {category:<12} {stats.count} friends, avg {stats.avg_score}, "
            f"{stats.total_interactions} contacts, {stats.overdue_count} overdue"
        )
    streaks = calculate_streaks(friends, now.date())
    print(f"Streak: {streaks.current_streak} days (best {streaks.longest_streak})")
    for friend, day in get_upcoming_birthdays(friends, now.date()):
        print(f"  🎂 {friend.name} on {day.isoformat()}")
    return 0


def cmd_meeting(args: argparse.Namespace) -> int:
    service = _service()
    if args.action == "request":
        return _print_response(service.request_meeting(args.target, _now()))
    if args.action == "schedule":
        if not args.at:
            print("Error: --at is required to schedule a meeting")
            return 1
        try:
            scheduled = parse_iso(args.at)
        except ValueError as exc:
            print(f"Error: {exc}")
            return 1
        return _print_response(service.schedule_meeting(args.target, scheduled))
    return _print_response(service.complete_meeting(args.target, verified=args.verified))


def cmd_remind(args: argparse.Namespace) -> int:
    from src.adapters.console_notifier import ConsoleNotifier
    from src.core.reminders import send_due_reminders

    sent = asyncio.run(send_due_reminders(
        ConsoleNotifier(), FriendDB(), MeetingDB(), ReminderLogDB(), _now(),
    ))
    print(f"{sent} reminder(s) sent.")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    from src.data.models import meeting_to_dict

    payload = {
        "friends": FriendDB().export_json(),
        "meetings": [meeting_to_dict(m) for m in MeetingDB().list_all()],
    }
    Path(args.path).write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"Exported {len(payload['friends'])} friends to {args.path}")
    return 0


def cmd_import(args: argparse.Namespace) -> int:
    from src.data.models import meeting_from_dict

    path = Path(args.path)
    if not path.exists():
        print(f"Error: backup file not found: {path}")
        return 1
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        meetings = [meeting_from_dict(record) for record in payload.get("meetings", [])]
        count = FriendDB().import_json(payload.get("friends", []))
        meeting_db = MeetingDB()
        for meeting in meetings:
            meeting_db.save_meeting(meeting)
    except (ValueError, KeyError) as exc:
        logger.error("Import of %s failed: %s", path, exc)
        print(f"Error: invalid backup file: {exc}")
        return 1
    print(f"Imported {count} friends from {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Pal Plant — keep your friendships growing")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("add", help="Add a friend")
    p.add_argument("name")
    p.add_argument("--category", default="Friends")
    p.add_argument("--every", type=int, default=14, help="Target days between contacts")
    p.add_argument("--phone")
    p.add_argument("--email")
    p.add_argument("--notes")
    p.add_argument("--birthday", help="MM-DD")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("list", help="List friends, most urgent first")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("contact", help="Log a contact")
    p.add_argument("friend_id")
    p.add_argument("type", choices=["regular", "deep", "quick"])
    p.add_argument("--channel", choices=[c.value for c in ContactChannel])
    p.set_defaults(func=cmd_contact)

    p = sub.add_parser("remove-log", help="Delete a logged contact")
    p.add_argument("friend_id")
    p.add_argument("log_id")
    p.set_defaults(func=cmd_remove_log)

    p = sub.add_parser("cadence", help="Set a friend's contact cadence")
    p.add_argument("friend_id")
    p.add_argument("days", type=int)
    p.set_defaults(func=cmd_cadence)

    p = sub.add_parser("garden", help="Show the garden score")
    p.set_defaults(func=cmd_garden)

    p = sub.add_parser("nudges", help="Show cadence suggestions")
    p.add_argument("--apply", action="store_true", help="Accept every suggestion")
    p.set_defaults(func=cmd_nudges)

    p = sub.add_parser("stats", help="Category stats, streaks, birthdays")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("meeting", help="Manage meeting requests")
    p.add_argument("action", choices=["request", "schedule", "complete"])
    p.add_argument("target", help="Name (request) or meeting id")
    p.add_argument("--at", help="ISO datetime for schedule")
    p.add_argument("--verified", action="store_true", help="Attendance confirmed")
    p.set_defaults(func=cmd_meeting)

    p = sub.add_parser("remind", help="Send due reminders")
    p.set_defaults(func=cmd_remind)

    p = sub.add_parser("export", help="Write a JSON backup")
    p.add_argument("path")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("import", help="Restore a JSON backup")
    p.add_argument("path")
    p.set_defaults(func=cmd_import)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""CLI handler for `miniremind reminder` subcommand."""

import argparse
import sys
from datetime import datetime, timedelta

from miniremind.classify import classify
from miniremind.insights import category_progress, count_by_status, filter_reminders, overall_progress
from miniremind.scheduling.countdown import project
from miniremind.scheduling.reminders import (
    Category,
    IntervalSchedule,
    OnceSchedule,
    Priority,
    Reminder,
    RepeatScope,
    append_reminder,
    find_reminder,
    list_reminders,
    remove_reminder,
    schedule_changes,
    toggle_completed,
    update_reminders,
)
from miniremind.scheduling.scheduler import ReminderScheduler, ReminderStore
from miniremind.storage import TZ


def _fmt_schedule(r: Reminder) -> str:
    schedule = r.schedule
    if isinstance(schedule, OnceSchedule):
        sched = f"at {schedule.due_at.isoformat()[:16]}"
    elif isinstance(schedule, IntervalSchedule):
        scope = "workdays" if schedule.repeat is RepeatScope.WORKDAYS else "daily"
        sched = (
            f"every {schedule.period_minutes}m "
            f"{schedule.window_start}-{schedule.window_end} {scope}"
        )
    else:
        sched = f"[malformed {r.mode.value}]"
    if r.is_completed:
        sched = f"[done] {sched}"
    return sched


def _summary(r: Reminder) -> str:
    tag = f"[{r.category.value}]"
    return f"{tag} {r.title}" + (f" -- {r.description}" if r.description else "")


def _parse_at(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=TZ)
    return parsed


def run_reminder_command(argv: list[str]) -> None:
    parser = argparse.ArgumentParser(prog="miniremind reminder")
    sub = parser.add_subparsers(dest="action")

    add_p = sub.add_parser("add", help="Create a reminder")
    add_p.add_argument("--title", "-t", required=True, help="What to do")
    add_p.add_argument("--description", "-d", default="", help="Extra detail")
    when = add_p.add_mutually_exclusive_group(required=True)
    when.add_argument("--at", help="Fire once at ISO datetime (local time if no offset)")
    when.add_argument("--delay", type=int, help="Fire once in N minutes")
    when.add_argument("--every", type=int, help="Fire every N minutes inside the window")
    add_p.add_argument("--from", dest="window_start", default="09:00", help="Window start HH:MM")
    add_p.add_argument("--to", dest="window_end", default="18:00", help="Window end HH:MM")
    add_p.add_argument("--workdays", action="store_true", help="Monday to Friday only")
    add_p.add_argument(
        "--category",
        choices=[c.value for c in Category],
        default=None,
        help="Defaults to a guess from the title",
    )
    add_p.add_argument(
        "--priority", choices=[p.value for p in Priority], default=Priority.MEDIUM.value
    )
    add_p.add_argument("--sound", default=None, help="Custom alert sound URL or path")

    list_p = sub.add_parser("list", help="Show reminders")
    list_p.add_argument(
        "--filter", choices=["upcoming", "all", "completed"], default="upcoming"
    )
    list_p.add_argument("--search", "-s", default="", help="Match title text")

    sub.add_parser("status", help="Show countdowns for pending reminders")
    sub.add_parser("stats", help="Show counts and health-goal progress")

    done_p = sub.add_parser("done", help="Toggle a reminder's completed flag")
    done_p.add_argument("id", help="Reminder ID")

    edit_p = sub.add_parser("edit", help="Change a reminder; firing history is kept")
    edit_p.add_argument("id", help="Reminder ID")
    edit_p.add_argument("--title", "-t", default=None)
    edit_p.add_argument("--description", "-d", default=None)
    edit_when = edit_p.add_mutually_exclusive_group()
    edit_when.add_argument("--at", help="Reschedule to fire once at ISO datetime")
    edit_when.add_argument("--delay", type=int, help="Reschedule to fire once in N minutes")
    edit_when.add_argument("--every", type=int, help="Repeat every N minutes")
    edit_p.add_argument("--from", dest="window_start", default=None, help="Window start HH:MM")
    edit_p.add_argument("--to", dest="window_end", default=None, help="Window end HH:MM")
    scope = edit_p.add_mutually_exclusive_group()
    scope.add_argument(
        "--workdays", dest="repeat", action="store_const", const=RepeatScope.WORKDAYS
    )
    scope.add_argument(
        "--daily", dest="repeat", action="store_const", const=RepeatScope.EVERY_DAY
    )
    edit_p.add_argument("--category", choices=[c.value for c in Category], default=None)
    edit_p.add_argument("--priority", choices=[p.value for p in Priority], default=None)
    edit_p.add_argument("--sound", default=None, help="Custom alert sound URL or path")

    cancel_p = sub.add_parser("cancel", help="Delete a reminder by ID")
    cancel_p.add_argument("id", help="Reminder ID")

    args = parser.parse_args(argv)

    if args.action == "add":
        _handle_add(args)
    elif args.action == "list":
        _handle_list(args.filter, args.search)
    elif args.action == "status":
        _handle_status()
    elif args.action == "stats":
        _handle_stats()
    elif args.action == "done":
        _handle_done(args.id)
    elif args.action == "edit":
        _handle_edit(args)
    elif args.action == "cancel":
        _handle_cancel(args.id)
    else:
        parser.print_help()
        sys.exit(1)


def _build(args: argparse.Namespace) -> Reminder:
    category = Category(args.category) if args.category else classify(args.title)
    common = dict(
        category=category,
        description=args.description,
        priority=Priority(args.priority),
        sound=args.sound,
    )
    if args.every is not None:
        return Reminder.new_interval(
            args.title,
            window_start=args.window_start,
            window_end=args.window_end,
            period_minutes=args.every,
            repeat=RepeatScope.WORKDAYS if args.workdays else RepeatScope.EVERY_DAY,
            **common,
        )
    if args.delay is not None:
        due_at = datetime.now(TZ) + timedelta(minutes=args.delay)
    else:
        due_at = _parse_at(args.at)
    return Reminder.new_once(args.title, due_at=due_at, **common)


def _handle_add(args: argparse.Namespace) -> None:
    try:
        reminder = _build(args)
    except ValueError as e:
        print(f"invalid reminder: {e}")
        sys.exit(1)
    append_reminder(reminder)
    print(f"scheduled {reminder.id}: {_fmt_schedule(reminder)} -- {_summary(reminder)}")


def _handle_list(status: str, search: str) -> None:
    reminders = filter_reminders(list_reminders(), status, search)  # type: ignore[arg-type]
    if not reminders:
        print("no reminders")
        return
    for r in reminders:
        print(f"  {r.id}  {_fmt_schedule(r):36s}  {_summary(r)}")


def _handle_status() -> None:
    now = datetime.now(TZ)
    reminders = filter_reminders(list_reminders(), "upcoming")
    if not reminders:
        print("no pending reminders")
        return
    for r in reminders:
        proj = project(now, r)
        print(f"  {r.id}  {proj.display:>7s}  {proj.urgency.value:6s}  {r.title}")


def _handle_stats() -> None:
    reminders = list_reminders()
    counts = count_by_status(reminders)
    print(f"total {counts.total}, upcoming {counts.upcoming}, completed {counts.completed}")
    progress = category_progress(reminders)
    print(f"health goals: {overall_progress(progress):.0f}%")
    for goal in progress:
        mark = " ✓" if goal.met else ""
        print(f"  {goal.category.value:8s} {goal.current}/{goal.target}{mark}")


def _handle_done(reminder_id: str) -> None:
    if find_reminder(list_reminders(), reminder_id) is None:
        print(f"reminder {reminder_id} not found")
        sys.exit(1)
    updated = update_reminders(lambda rs: toggle_completed(rs, reminder_id))
    reminder = find_reminder(updated, reminder_id)
    assert reminder is not None
    state = "completed" if reminder.is_completed else "reopened"
    print(f"{state} {reminder_id}")


def _edit_changes(target: Reminder, args: argparse.Namespace) -> dict[str, object]:
    if args.delay is not None:
        due_at: datetime | None = datetime.now(TZ) + timedelta(minutes=args.delay)
    elif args.at is not None:
        due_at = _parse_at(args.at)
    else:
        due_at = None
    changes = schedule_changes(
        target,
        due_at=due_at,
        period_minutes=args.every,
        window_start=args.window_start,
        window_end=args.window_end,
        repeat=args.repeat,
    )
    if args.title is not None:
        changes["title"] = args.title.strip()
    if args.description is not None:
        changes["description"] = args.description
    if args.category is not None:
        changes["category"] = Category(args.category)
    if args.priority is not None:
        changes["priority"] = Priority(args.priority)
    if args.sound is not None:
        changes["sound"] = args.sound
    return changes


def _handle_edit(args: argparse.Namespace) -> None:
    service = ReminderScheduler(ReminderStore())
    target = find_reminder(service.get(), args.id)
    if target is None:
        print(f"reminder {args.id} not found")
        sys.exit(1)
    try:
        changes = _edit_changes(target, args)
        if not changes:
            print("nothing to change")
            sys.exit(1)
        edited = service.edit(args.id, **changes)
    except ValueError as e:
        print(f"invalid edit: {e}")
        sys.exit(1)
    assert edited is not None
    print(f"updated {edited.id}: {_fmt_schedule(edited)} -- {_summary(edited)}")


def _handle_cancel(reminder_id: str) -> None:
    if remove_reminder(reminder_id):
        print(f"cancelled {reminder_id}")
    else:
        print(f"reminder {reminder_id} not found")
        sys.exit(1)

#!/usr/bin/env python3
"""
blockplan CLI - schedule tasks from the command line.

  blockplan schedule TEMPLATE TASKS [--now ISO] [--json] [--out FILE]
  blockplan event TEMPLATE TASKS --date D --start HH:MM --end HH:MM [--name N]
  blockplan validate TASKS
  blockplan utilization TEMPLATE TASKS

TEMPLATE may be "-" for the default template. --now defaults to the
current local time; it is the only place the wall clock is read.
"""

import argparse
import json
import logging
import sys
from datetime import datetime

from pydantic import ValidationError

from blockplan.batch import schedule_all
from blockplan.displacement import apply_event, event_commitment, is_event_commitment
from blockplan.report import schedule_utilization, validate_schedule
from blockplan.schema import parse_event
from blockplan.template_store import dump_tasks, load_tasks, load_template

logger = logging.getLogger(__name__)


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def print_table(headers: list, rows: list, widths: list = None):
    """Print a simple table."""
    if not widths:
        widths = [max(len(str(row[i])) for row in [headers] + rows) for i in range(len(headers))]

    header_str = " │ ".join(str(h).ljust(w) for h, w in zip(headers, widths, strict=False))
    print(header_str)
    print("─" * len(header_str))

    for row in rows:
        print(" │ ".join(str(c)[:w].ljust(w) for c, w in zip(row, widths, strict=False)))


def _now(args) -> datetime:
    if args.now:
        return datetime.fromisoformat(args.now).replace(tzinfo=None)
    return datetime.now().replace(second=0, microsecond=0)


def _template(args):
    return load_template(None if args.template == "-" else args.template)


def _print_tasks(tasks):
    rows = []
    for t in tasks:
        when = f"{t.scheduled_at:%a %Y-%m-%d %H:%M}" if t.scheduled_at else "-"
        rows.append(
            [
                t.id,
                (t.title or t.activity_type)[:30],
                t.priority.value,
                t.duration_minutes,
                when,
                t.assigned_block_id or "-",
                t.confidence if t.scheduled_at else (t.failure_reason or "-"),
            ]
        )
    print_table(["ID", "Task", "Prio", "Min", "Scheduled", "Block", "Conf/Reason"], rows)


def cmd_schedule(args) -> int:
    """Batch-schedule every task in TASKS."""
    template = _template(args)
    tasks = load_tasks(args.tasks)
    # Events saved by "event --out" hold their slot
    fixed = [t for t in tasks if is_event_commitment(t)]
    movable = [t for t in tasks if not is_event_commitment(t)]
    results = fixed + schedule_all(
        movable, template.blocks, fixed, template.constraints, _now(args)
    )

    if args.out:
        dump_tasks(results, args.out)
    if args.json:
        print(json.dumps([t.to_dict() for t in results], indent=2))
        return 0

    print_header(f"SCHEDULE: {template.name or 'template'}")
    _print_tasks(results)
    failed = [t for t in results if t.failure_reason]
    print(f"\n{len(results) - len(failed)} scheduled, {len(failed)} unscheduled")
    return 0


def cmd_event(args) -> int:
    """Insert a fixed event and re-place the tasks it displaces."""
    try:
        event = parse_event(
            {"date": args.date, "start": args.start, "end": args.end, "name": args.name}
        )
    except ValidationError as exc:
        print(f"Invalid event: {exc}")
        return 2

    template = _template(args)
    tasks = load_tasks(args.tasks)
    report = apply_event(event, tasks, template.blocks, template.constraints, _now(args))

    if args.out:
        blocker = event_commitment(event)
        kept = [t for t in report.updated_tasks if t.id != blocker.id]
        dump_tasks([blocker] + kept, args.out)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return 0

    window = event.window
    span = f"{window.start:%Y-%m-%d %H:%M}-{window.end:%H:%M}"
    print_header(f"EVENT: {event.name or 'event'} {span}")
    if not report.displaced_tasks:
        print("No tasks displaced.")
        return 0
    rows = []
    for entry in report.rescheduled:
        new = f"{entry.new_scheduled_at:%a %Y-%m-%d %H:%M}" if entry.new_scheduled_at else "-"
        rows.append([entry.task_id, new, entry.failure_reason or ""])
    print_table(["Displaced", "New time", "Reason"], rows)
    return 0


def cmd_validate(args) -> int:
    """Check a task file for overlapping placements."""
    result = validate_schedule(load_tasks(args.tasks))
    if args.json:
        print(json.dumps({"valid": result.valid, "issues": result.issues, "stats": result.stats}))
        return 0 if result.valid else 1

    print_header("VALIDATION")
    print(f"Valid: {'yes' if result.valid else 'no'}")
    for issue in result.issues:
        print(f"  - {issue}")
    print(f"Stats: {result.stats}")
    return 0 if result.valid else 1


def cmd_utilization(args) -> int:
    """Template minutes versus scheduled minutes per activity type."""
    template = _template(args)
    stats = schedule_utilization(template.blocks, load_tasks(args.tasks))
    if args.json:
        print(json.dumps(stats, indent=2))
        return 0

    print_header("UTILIZATION")
    rows = [
        [k, v["total_minutes"], v["scheduled_minutes"], f"{v['utilization']}%", v["task_count"]]
        for k, v in sorted(stats.items())
    ]
    print_table(["Type", "Template min", "Scheduled min", "Util", "Tasks"], rows)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="blockplan", description="Template-based task scheduler")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    def common(sp, template=True):
        if template:
            sp.add_argument("template", help="Template YAML/JSON file, or - for the default")
        sp.add_argument("tasks", help="Task YAML/JSON file")
        sp.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    sp = sub.add_parser("schedule", help="Schedule all tasks in a file")
    common(sp)
    sp.add_argument("--now", help="Reference time (ISO), defaults to now")
    sp.add_argument("--out", help="Write the scheduled tasks to this YAML file")
    sp.set_defaults(func=cmd_schedule)

    sp = sub.add_parser("event", help="Insert a fixed event and repair displaced tasks")
    common(sp)
    sp.add_argument("--date", required=True, help="Event date (YYYY-MM-DD)")
    sp.add_argument("--start", required=True, help="Event start (HH:MM)")
    sp.add_argument("--end", required=True, help="Event end (HH:MM)")
    sp.add_argument("--name", default="", help="Event name")
    sp.add_argument("--now", help="Reference time (ISO), defaults to now")
    sp.add_argument("--out", help="Write the updated tasks to this YAML file")
    sp.set_defaults(func=cmd_event)

    sp = sub.add_parser("validate", help="Check a task file for overlaps")
    common(sp, template=False)
    sp.set_defaults(func=cmd_validate)

    sp = sub.add_parser("utilization", help="Template utilization per activity type")
    common(sp)
    sp.set_defaults(func=cmd_utilization)

    return p


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

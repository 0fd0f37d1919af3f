#!/usr/bin/env python3
"""
EventKit Gateway CLI - JSON access to macOS Calendar and Reminders.

Every command prints exactly one JSON object on stdout and exits 0 on
success, 1 on an operation error and 2 on a usage error. Logs go to stderr.

Commands:
  list calendars                      List calendars and reminder lists
  list events --calendar C            List events in a date range
  list reminders --list L             List reminders in a list
  show event|reminder ID              Show one item
  add event|reminder                  Create an item
  update event ID                     Update an event
  delete event|reminder ID            Delete an item
  complete reminder ID                Mark a reminder completed
  alias set|remove|list               Manage calendar/list aliases
  calendar create|update|delete       Manage calendars

Usage:
  ekgw list events --calendar work --from 2026-02-01T00:00:00Z --to 2026-02-07T23:59:59Z
  ekgw add event --calendar work --title "Standup" --start 2026-02-02T09:00:00 \\
      --end 2026-02-02T09:15:00 --recurrence-frequency weekly --recurrence-days mon,wed,fri
  ekgw alias set work 1A2B3C4D-...
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from eventkit_gateway import __version__
from eventkit_gateway.core.config import Config
from eventkit_gateway.core.errors import GatewayError
from eventkit_gateway.core.models import GatewayResult, RecurrenceSpec
from eventkit_gateway.core.store import CalendarStore
from eventkit_gateway.manager import CalendarManager
from eventkit_gateway.serializers import emit_error, emit_json

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


class JsonArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors as a JSON object."""

    def error(self, message: str) -> None:
        emit_error(f"{self.prog}: {message}")
        sys.exit(EXIT_USAGE)


# =============================================================================
# LOGGING
# =============================================================================

def configure_logging(config: Optional[Config] = None, verbose: bool = False) -> None:
    """
    Send log records to stderr (stdout carries the JSON result).

    Args:
        config: Loaded config; settings.log_level and settings.log_file apply
        verbose: Force DEBUG level
    """
    level_name = "WARNING"
    log_file = None
    if config is not None:
        level_name = str(config.get("log_level", "WARNING")).upper()
        log_file = config.get("log_file")
    if verbose:
        level_name = "DEBUG"

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(Path(log_file).expanduser()))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


# =============================================================================
# COMMAND HANDLERS
# =============================================================================

def recurrence_from_args(args: argparse.Namespace) -> RecurrenceSpec:
    return RecurrenceSpec(
        frequency=args.recurrence_frequency,
        interval=args.recurrence_interval,
        end_count=args.recurrence_end_count,
        end_date=args.recurrence_end_date,
        days=args.recurrence_days,
        months=args.recurrence_months,
        days_of_month=args.recurrence_days_of_month,
        weeks_of_year=args.recurrence_weeks_of_year,
        days_of_year=args.recurrence_days_of_year,
        set_positions=args.recurrence_set_positions,
    )


def cmd_list_calendars(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    """List all calendars and reminder lists."""
    return manager.list_calendars()


def cmd_list_events(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    """List events in a calendar within a date range."""
    return manager.list_events(args.calendar, args.start, args.end)


def cmd_list_reminders(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    """List reminders in a reminder list."""
    return manager.list_reminders(args.list, args.completed)


def cmd_show_event(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.show_event(args.event_id)


def cmd_show_reminder(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.show_reminder(args.reminder_id)


def cmd_add_event(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    """Create a new calendar event."""
    return manager.add_event(
        calendar=args.calendar,
        title=args.title,
        start=args.start,
        end=args.end,
        location=args.location,
        notes=args.notes,
        all_day=args.all_day,
        url=args.url,
        availability=args.availability,
        travel_time=args.travel_time,
        alarms=args.alarms,
        recurrence=recurrence_from_args(args),
    )


def cmd_add_reminder(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    """Create a new reminder."""
    return manager.add_reminder(
        list_name=args.list,
        title=args.title,
        due=args.due,
        priority=args.priority,
        notes=args.notes,
    )


def cmd_update_event(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    """Update an existing event."""
    return manager.update_event(
        args.event_id,
        title=args.title,
        start=args.start,
        end=args.end,
        location=args.location,
        notes=args.notes,
        all_day=args.all_day,
        url=args.url,
        availability=args.availability,
        travel_time=args.travel_time,
        alarms=args.alarms,
    )


def cmd_delete_event(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.delete_event(args.event_id)


def cmd_delete_reminder(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.delete_reminder(args.reminder_id)


def cmd_complete_reminder(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.complete_reminder(args.reminder_id)


def cmd_alias_set(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.set_alias(args.name, args.id)


def cmd_alias_remove(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.remove_alias(args.name)


def cmd_alias_list(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.list_aliases()


def cmd_calendar_create(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.create_calendar(args.title, color=args.color, calendar_type=args.type)


def cmd_calendar_update(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.update_calendar(args.calendar_id, title=args.title, color=args.color)


def cmd_calendar_delete(args: argparse.Namespace, manager: CalendarManager) -> GatewayResult:
    return manager.delete_calendar(args.calendar_id)


# =============================================================================
# PARSER
# =============================================================================

def add_recurrence_args(parser: argparse.ArgumentParser) -> None:
    """Recurrence options for add event; all values are parsed by the planner."""
    group = parser.add_argument_group("recurrence")
    group.add_argument("--recurrence-frequency", help="daily, weekly, monthly or yearly")
    group.add_argument("--recurrence-interval", help="Repeat every N periods (default: 1)")
    group.add_argument("--recurrence-end-count", help="Stop after N occurrences (wins over end date)")
    group.add_argument("--recurrence-end-date", help="Stop after this ISO 8601 date")
    group.add_argument(
        "--recurrence-days",
        help="Days of week, e.g. 'mon,tue', '1mon' for 1st Monday, '-1fri' for last Friday"
    )
    group.add_argument("--recurrence-months", help="Months of the year: 1-12 or jan,feb...")
    group.add_argument("--recurrence-days-of-month", help="Days of the month: 1-31 or -1 for last")
    group.add_argument("--recurrence-weeks-of-year", help="Weeks of the year: 1-53 or -1 for last")
    group.add_argument("--recurrence-days-of-year", help="Days of the year: 1-366 or -1 for last")
    group.add_argument("--recurrence-set-positions", help="Set positions: 1 for 1st, -1 for last")


def add_event_detail_args(parser: argparse.ArgumentParser) -> None:
    """Event options shared by add and update."""
    parser.add_argument("--location", help="Location; geocoded when possible")
    parser.add_argument("--notes", help="Notes")
    parser.add_argument("--url", help="URL for the event")
    parser.add_argument("--availability", help="busy, free, tentative or unavailable")
    parser.add_argument("--travel-time", dest="travel_time", help="Travel time in minutes")
    parser.add_argument(
        "--alarms",
        help="Alarms in minutes before start, comma-separated (e.g. '30,60'); '' removes all"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = JsonArgumentParser(
        prog="ekgw",
        description="EventKit Gateway - JSON access to macOS Calendar and Reminders.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config file (default: $EVENTKIT_GATEWAY_CONFIG or ~/.eventkit-gateway/config.json)")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on stderr")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # list
    p_list = commands.add_parser("list", help="List calendars, events, or reminders")
    list_sub = p_list.add_subparsers(dest="target", metavar="TARGET")
    list_sub.required = True

    p = list_sub.add_parser("calendars", help="List all calendars and reminder lists")
    p.set_defaults(handler=cmd_list_calendars)

    p = list_sub.add_parser("events", help="List events in a calendar within a date range")
    p.add_argument("--calendar", required=True, help="Calendar ID or alias")
    p.add_argument("--from", dest="start", required=True, help="Start date (ISO 8601, e.g. 2026-02-01T00:00:00Z)")
    p.add_argument("--to", dest="end", required=True, help="End date (ISO 8601, e.g. 2026-02-07T23:59:59Z)")
    p.set_defaults(handler=cmd_list_events)

    p = list_sub.add_parser("reminders", help="List reminders in a reminder list")
    p.add_argument("--list", required=True, help="Reminder list ID or alias")
    p.add_argument("--completed", help="Filter by completion status (true/false)")
    p.set_defaults(handler=cmd_list_reminders)

    # show
    p_show = commands.add_parser("show", help="Show details of a specific item")
    show_sub = p_show.add_subparsers(dest="target", metavar="TARGET")
    show_sub.required = True

    p = show_sub.add_parser("event", help="Show details of a specific event")
    p.add_argument("event_id", help="Event ID")
    p.set_defaults(handler=cmd_show_event)

    p = show_sub.add_parser("reminder", help="Show details of a specific reminder")
    p.add_argument("reminder_id", help="Reminder ID")
    p.set_defaults(handler=cmd_show_reminder)

    # add
    p_add = commands.add_parser("add", help="Add a new event or reminder")
    add_sub = p_add.add_subparsers(dest="target", metavar="TARGET")
    add_sub.required = True

    p = add_sub.add_parser("event", help="Create a new calendar event")
    p.add_argument("--calendar", required=True, help="Calendar ID or alias")
    p.add_argument("--title", required=True, help="Event title")
    p.add_argument("--start", required=True, help="Start date (ISO 8601)")
    p.add_argument("--end", required=True, help="End date (ISO 8601)")
    p.add_argument("--all-day", dest="all_day", action="store_true", help="Mark as all-day event")
    add_event_detail_args(p)
    add_recurrence_args(p)
    p.set_defaults(handler=cmd_add_event)

    p = add_sub.add_parser("reminder", help="Create a new reminder")
    p.add_argument("--list", required=True, help="Reminder list ID or alias")
    p.add_argument("--title", required=True, help="Reminder title")
    p.add_argument("--due", help="Due date (ISO 8601)")
    p.add_argument("--priority", help="0-9 or none/high/medium/low (1=high, 5=medium, 9=low)")
    p.add_argument("--notes", help="Notes")
    p.set_defaults(handler=cmd_add_reminder)

    # update
    p_update = commands.add_parser("update", help="Update an existing event")
    update_sub = p_update.add_subparsers(dest="target", metavar="TARGET")
    update_sub.required = True

    p = update_sub.add_parser("event", help="Update a calendar event")
    p.add_argument("event_id", help="Event ID")
    p.add_argument("--title", help="New title")
    p.add_argument("--start", help="New start date (ISO 8601)")
    p.add_argument("--end", help="New end date (ISO 8601)")
    p.add_argument("--all-day", dest="all_day", help="All-day event (true/false)")
    add_event_detail_args(p)
    p.set_defaults(handler=cmd_update_event)

    # delete
    p_delete = commands.add_parser("delete", help="Delete an event or reminder")
    delete_sub = p_delete.add_subparsers(dest="target", metavar="TARGET")
    delete_sub.required = True

    p = delete_sub.add_parser("event", help="Delete a calendar event")
    p.add_argument("event_id", help="Event ID")
    p.set_defaults(handler=cmd_delete_event)

    p = delete_sub.add_parser("reminder", help="Delete a reminder")
    p.add_argument("reminder_id", help="Reminder ID")
    p.set_defaults(handler=cmd_delete_reminder)

    # complete
    p_complete = commands.add_parser("complete", help="Mark items as completed")
    complete_sub = p_complete.add_subparsers(dest="target", metavar="TARGET")
    complete_sub.required = True

    p = complete_sub.add_parser("reminder", help="Mark a reminder as completed")
    p.add_argument("reminder_id", help="Reminder ID")
    p.set_defaults(handler=cmd_complete_reminder)

    # alias
    p_alias = commands.add_parser("alias", help="Manage calendar and reminder list aliases")
    alias_sub = p_alias.add_subparsers(dest="target", metavar="ACTION")
    alias_sub.required = True

    p = alias_sub.add_parser("set", help="Create or update an alias")
    p.add_argument("name", help="Alias name (e.g. work, personal, groceries)")
    p.add_argument("id", help="Calendar or reminder list ID")
    p.set_defaults(handler=cmd_alias_set)

    p = alias_sub.add_parser("remove", help="Remove an alias")
    p.add_argument("name", help="Alias name")
    p.set_defaults(handler=cmd_alias_remove)

    p = alias_sub.add_parser("list", help="List all configured aliases")
    p.set_defaults(handler=cmd_alias_list)

    # calendar
    p_calendar = commands.add_parser("calendar", help="Manage calendars")
    calendar_sub = p_calendar.add_subparsers(dest="target", metavar="ACTION")
    calendar_sub.required = True

    p = calendar_sub.add_parser("create", help="Create a new calendar")
    p.add_argument("--title", required=True, help="Calendar title")
    p.add_argument("--color", help="Color hex code (e.g. #FF0000)")
    p.add_argument("--type", choices=["event", "reminder"], default="event",
                   help="Create an event calendar or a reminder list (default: event)")
    p.set_defaults(handler=cmd_calendar_create)

    p = calendar_sub.add_parser("update", help="Update a calendar")
    p.add_argument("calendar_id", help="Calendar ID or alias")
    p.add_argument("--title", help="New title")
    p.add_argument("--color", help="New color hex code")
    p.set_defaults(handler=cmd_calendar_update)

    p = calendar_sub.add_parser("delete", help="Delete a calendar")
    p.add_argument("calendar_id", help="Calendar ID or alias")
    p.set_defaults(handler=cmd_calendar_delete)

    return parser


# =============================================================================
# MAIN
# =============================================================================

def main(argv: Optional[List[str]] = None, store: Optional[CalendarStore] = None) -> int:
    """
    Run one command.

    Args:
        argv: Arguments without the program name (defaults to sys.argv[1:])
        store: Calendar store to use (defaults to the EventKit store)

    Returns:
        Process exit code
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = Config(Path(args.config) if args.config else None)
    except GatewayError as e:
        configure_logging(verbose=args.verbose)
        emit_error(e.message, pretty=args.pretty)
        return EXIT_FAILURE

    configure_logging(config, verbose=args.verbose)

    try:
        if store is None:
            # Lazy import keeps PyObjC out of alias-only and --help paths
            from eventkit_gateway.eventkit.store import EventKitStore
            store = EventKitStore(fetch_timeout=float(config.get("reminder_fetch_timeout")))
        manager = CalendarManager(store, config)
        result = args.handler(args, manager)
    except GatewayError as e:
        logger.debug(f"{type(e).__name__}: {e.message}")
        emit_error(e.message, pretty=args.pretty)
        return EXIT_FAILURE
    except Exception as e:
        logger.exception(f"Unexpected error running '{args.command}'")
        emit_error(str(e), pretty=args.pretty)
        return EXIT_FAILURE

    emit_json(result, pretty=args.pretty)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

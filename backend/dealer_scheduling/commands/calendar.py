#!/usr/bin/env python3
"""
Calendar management CLI.

Usage:
    python -m dealer_scheduling.commands.calendar seed [--year 2026]
    python -m dealer_scheduling.commands.calendar show [--day 1]
"""

import argparse
import logging
import sys
from typing import List, Optional

from ..database import get_db_session, init_db
from ..services.calendar_config_service import CalendarConfigService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def seed_calendar(year: Optional[int] = None) -> int:
    init_db()
    with get_db_session() as db:
        created = CalendarConfigService(db).seed_default_calendar(year=year)
    if not any(created.values()):
        logger.info("Calendar already configured; nothing seeded")
    else:
        logger.info(
            f"Seeded {created['time_slots']} time slots and {created['holidays']} holidays"
        )
    return 0


def show_calendar(day_of_week: Optional[int] = None) -> int:
    with get_db_session() as db:
        service = CalendarConfigService(db)
        templates = service.list_time_slots(day_of_week=day_of_week, include_inactive=True)
        for t in templates:
            state = "" if t.is_active else " (inactive)"
            print(
                f"{DAY_NAMES[t.day_of_week]:<10} {t.start_time:%H:%M}-{t.end_time:%H:%M} "
                f"capacity {t.max_bookings}  {t.id}{state}"
            )
        for h in service.list_holidays():
            kind = "every year" if h.is_recurring else "once"
            print(f"Holiday    {h.date:%Y-%m-%d} {h.name} ({kind})")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Manage the scheduling calendar")
    sub = parser.add_subparsers(dest="command", required=True)

    seed = sub.add_parser("seed", help="Install default time slots and recurring holidays")
    seed.add_argument("--year", type=int, default=None, help="Year stored on recurring holidays")

    show = sub.add_parser("show", help="Print configured time slots and holidays")
    show.add_argument("--day", type=int, choices=range(7), default=None, help="0 = Sunday")

    args = parser.parse_args(argv)
    if args.command == "seed":
        return seed_calendar(args.year)
    return show_calendar(args.day)


if __name__ == "__main__":
    sys.exit(main())

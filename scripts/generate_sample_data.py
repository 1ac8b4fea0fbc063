"""Generate a synthetic day of people count observations.

Fills a SQLite database with observations spread over opening hours,
with a midday peak, from a few door sensors. Useful for the dashboard
and for trying the HTTP API.
"""

import random
from datetime import date, datetime, time, timedelta
from typing import Optional

import click

from people_counter.store.event_store import EventStore, resolve_timezone
from people_counter.utils.database import Database

SOURCES = ["doorA", "doorB", None]


class _SteppingClock:
    """Clock returning whatever instant was last assigned to ``current``."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current


def generate_sample_data(
    db_path: str = "data/sample/people.db",
    day: Optional[date] = None,
    tz_name: str = "UTC",
    open_hour: int = 8,
    close_hour: int = 20,
    interval_minutes: int = 10,
    seed: int = 42,
) -> int:
    """Write one observation per interval between opening and closing hours.

    Args:
        db_path: Path of the database to fill.
        day: Day to generate. Defaults to today.
        tz_name: Store time zone.
        open_hour: First hour with observations.
        close_hour: Hour at which observations stop.
        interval_minutes: Minutes between two observations.
        seed: Random seed.

    Returns:
        Number of observations written.
    """
    rng = random.Random(seed)
    day = day or date.today()
    tz = resolve_timezone(tz_name)
    instant = datetime.combine(day, time(hour=open_hour), tzinfo=tz)
    end = datetime.combine(day, time(hour=close_hour), tzinfo=tz)

    clock = _SteppingClock(instant)
    db = Database(db_path)
    store = EventStore(db, tz_name=tz_name, clock=clock)

    written = 0
    try:
        while clock.current < end:
            distance_to_noon = abs(clock.current.hour + clock.current.minute / 60 - 13)
            expected = max(1, int(20 - 3 * distance_to_noon))
            store.append(rng.randint(0, expected), rng.choice(SOURCES))
            written += 1
            clock.current += timedelta(minutes=interval_minutes)
    finally:
        db.close()
    return written


@click.command()
@click.option("--database", "-db", default="data/sample/people.db", help="Database path")
@click.option("--day", "-d", type=click.DateTime(formats=["%Y-%m-%d"]), help="Day to fill")
@click.option("--timezone", "-tz", "tz_name", default="UTC", help="Store time zone")
def main(database: str, day: Optional[datetime], tz_name: str) -> None:
    """Fill DATABASE with a synthetic day of observations."""
    written = generate_sample_data(database, day.date() if day else None, tz_name)
    click.echo(f"Sample data written to: {database} ({written} observations)")


if __name__ == "__main__":
    main()

"""Time-windowed queries over the people count log.

Translates the supported read shapes (latest N, one calendar day, today,
yesterday and per-hour totals of a day) into event store reads, and maps
their results to :class:`ResultItem` projections with ``HH:MM`` times.

Day windows are half-open ``[00:00, next day 00:00)`` in the store time
zone. Day-scoped queries return every matching row with no size cap.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from people_counter.exceptions import InvalidArgument
from people_counter.store.event_store import (
    SQLITE_MAX_INTEGER,
    SQLITE_MIN_INTEGER,
    EventStore,
    HourBucket,
    Observation,
)

logger = logging.getLogger(__name__)

DATE_FORMAT = "%Y-%m-%d"

DateLike = Union[str, date]


@dataclass(frozen=True)
class ResultItem:
    """Caller-facing projection of an observation or an hour bucket."""

    time: str
    nb_people: int
    source: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


def format_time(instant: datetime) -> str:
    """Render the time of day of ``instant`` as zero-padded ``HH:MM``."""
    return f"{instant.hour:02d}:{instant.minute:02d}"


def format_hour(instant: datetime) -> str:
    """Render the hour of ``instant`` as ``HH:00``."""
    return f"{instant.hour:02d}:00"


def parse_date(value: DateLike) -> date:
    """Parse a ``YYYY-MM-DD`` calendar date.

    Args:
        value: Date string, or a ``date`` which is returned as is.

    Raises:
        InvalidArgument: If ``value`` is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidArgument(f"Date must be a YYYY-MM-DD string, got {value!r}")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise InvalidArgument(f"Invalid date {value!r}: expected YYYY-MM-DD") from exc


def _observation_item(observation: Observation) -> ResultItem:
    return ResultItem(
        time=format_time(observation.time),
        nb_people=observation.nb_people,
        source=observation.source,
    )


def _bucket_item(bucket: HourBucket) -> ResultItem:
    # Aggregates may span several sources, so no source is reported.
    return ResultItem(time=format_hour(bucket.start), nb_people=bucket.total)


class QueryEngine:
    """Read shapes over an :class:`EventStore`.

    Args:
        store: Event store sharing the process-wide database handle.
    """

    def __init__(self, store: EventStore) -> None:
        self.store = store

    def day_window(self, day: date) -> tuple[datetime, datetime]:
        """Return the ``[start, end)`` window of ``day`` in the store time zone.

        Raises:
            InvalidArgument: If the window cannot be expressed in UTC, as for
                9999-12-31, or 0001-01-01 in a zone ahead of UTC.
        """
        tz = self.store.tz
        try:
            start = datetime.combine(day, time.min, tzinfo=tz)
            end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
            start.astimezone(timezone.utc)
            end.astimezone(timezone.utc)
        except OverflowError as exc:
            raise InvalidArgument(f"Date out of supported range: {day.isoformat()}") from exc
        return start, end

    def today_date(self) -> date:
        """Return the store's current calendar date."""
        return self.store.now().date()

    def record(self, nb_people: int, source: Optional[str] = None) -> ResultItem:
        """Append a new observation and return its projection.

        Raises:
            InvalidArgument: If ``nb_people`` is not a 64-bit integer.
            StoreUnavailable: If the write fails.
        """
        if isinstance(nb_people, bool) or not isinstance(nb_people, int):
            raise InvalidArgument(f"nb_people must be an integer, got {nb_people!r}")
        if not SQLITE_MIN_INTEGER <= nb_people <= SQLITE_MAX_INTEGER:
            raise InvalidArgument(f"nb_people out of range: {nb_people}")
        observation = self.store.append(nb_people, source)
        logger.info(
            "Recorded %d people at %s (source=%s)",
            observation.nb_people,
            observation.time.isoformat(),
            observation.source,
        )
        return _observation_item(observation)

    def latest(self, n: int) -> list[ResultItem]:
        """Return the ``n`` most recent observations, newest first.

        ``n`` of zero or less yields an empty list; an ``n`` larger than the
        log yields the whole log.
        """
        if isinstance(n, bool) or not isinstance(n, int):
            raise InvalidArgument(f"Limit must be an integer, got {n!r}")
        n = min(n, SQLITE_MAX_INTEGER)
        return [_observation_item(o) for o in self.store.query_latest(n)]

    def day(self, value: DateLike) -> list[ResultItem]:
        """Return every observation of a calendar day, newest first."""
        start, end = self.day_window(parse_date(value))
        return [_observation_item(o) for o in self.store.query_range(start, end)]

    def today(self) -> list[ResultItem]:
        return self.day(self.today_date())

    def yesterday(self) -> list[ResultItem]:
        return self.day(self.today_date() - timedelta(days=1))

    def hourly_totals(self, value: DateLike) -> list[ResultItem]:
        """Return per-hour people totals for a calendar day.

        Buckets come back in ascending hour order. Hours without any
        observation are omitted: a missing hour means no data, not zero.
        """
        start, end = self.day_window(parse_date(value))
        return [_bucket_item(b) for b in self.store.query_hour_buckets(start, end)]

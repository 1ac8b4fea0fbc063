"""Append-only event store for people count observations.

Observations are written with a time taken from the store's own clock and
persisted as UTC. Reads are by predicate: latest N, a half-open time
window, or a window grouped into hour buckets in the store time zone.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from people_counter.exceptions import InvalidArgument
from people_counter.utils.database import Database

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# SQLite INTEGER is a signed 64-bit value.
SQLITE_MIN_INTEGER = -(2**63)
SQLITE_MAX_INTEGER = 2**63 - 1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Observation:
    """One persisted people count."""

    id: int
    time: datetime
    nb_people: int
    source: Optional[str] = None


@dataclass(frozen=True)
class HourBucket:
    """Sum of ``nb_people`` over the observations of one hour."""

    start: datetime
    total: int


def resolve_timezone(name: str):
    """Return the tzinfo for an IANA zone name.

    Raises:
        ValueError: If the zone is unknown.
    """
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name}") from exc


def _to_db_time(instant: datetime) -> str:
    # Fixed width keeps lexical order equal to chronological order.
    return instant.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _check_bound(name: str, instant: datetime) -> None:
    if not isinstance(instant, datetime):
        raise InvalidArgument(f"{name} must be a datetime, got {instant!r}")
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise InvalidArgument(f"{name} must be timezone-aware")
    try:
        instant.astimezone(timezone.utc)
    except OverflowError as exc:
        raise InvalidArgument(f"{name} is outside the supported date range") from exc


class EventStore:
    """Durable log of observations on top of a shared :class:`Database`.

    Args:
        db: Shared database handle.
        tz_name: IANA name of the store time zone. Day and hour grouping
            and the times handed back to callers use this zone.
        clock: Zero-argument callable returning an aware datetime; the
            source of every write time. Defaults to the system UTC clock.
    """

    def __init__(
        self,
        db: Database,
        tz_name: str = "UTC",
        clock: Optional[Clock] = None,
    ) -> None:
        self.db = db
        self.tz = resolve_timezone(tz_name)
        self._clock = clock or utc_now

    def now(self) -> datetime:
        """Return the store's current instant in the store time zone."""
        return self._clock().astimezone(self.tz)

    def _row_to_observation(self, row) -> Observation:
        return Observation(
            id=row["id"],
            time=datetime.fromisoformat(row["time"]).astimezone(self.tz),
            nb_people=row["nb_people"],
            source=row["source"],
        )

    def append(self, nb_people: int, source: Optional[str] = None) -> Observation:
        """Persist a new observation stamped with the store's current time.

        Args:
            nb_people: People count. Negative values are stored as given.
            source: Optional label of the observation's origin.

        Returns:
            The stored observation, including its assigned time.

        Raises:
            InvalidArgument: If ``nb_people`` does not fit a SQLite integer.
            StoreUnavailable: If the write cannot be committed.
        """
        if not SQLITE_MIN_INTEGER <= nb_people <= SQLITE_MAX_INTEGER:
            raise InvalidArgument(f"nb_people out of range: {nb_people}")
        instant = self.now()
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO line (time, nb_people, source) VALUES (?, ?, ?)",
                (_to_db_time(instant), nb_people, source),
            )
            row_id = cursor.lastrowid
        logger.debug("Appended observation %d: %d people from %s", row_id, nb_people, source)
        return Observation(id=row_id, time=instant, nb_people=nb_people, source=source)

    def query_latest(self, limit: int) -> list[Observation]:
        """Return at most ``limit`` observations, newest first.

        A ``limit`` of zero or less returns an empty list without reading.
        Limits beyond the SQLite integer range read the whole log.
        """
        if limit <= 0:
            return []
        limit = min(limit, SQLITE_MAX_INTEGER)
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                SELECT id, time, nb_people, source FROM line
                ORDER BY time DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            )
            rows = cursor.fetchall()
        return [self._row_to_observation(row) for row in rows]

    def query_range(self, start: datetime, end: datetime) -> list[Observation]:
        """Return every observation with ``start <= time < end``, newest first."""
        _check_bound("start", start)
        _check_bound("end", end)
        with self.db.transaction() as cursor:
            cursor.execute(
                """
                SELECT id, time, nb_people, source FROM line
                WHERE time >= ? AND time < ?
                ORDER BY time DESC, id DESC
                """,
                (_to_db_time(start), _to_db_time(end)),
            )
            rows = cursor.fetchall()
        return [self._row_to_observation(row) for row in rows]

    def query_hour_buckets(self, start: datetime, end: datetime) -> list[HourBucket]:
        """Sum ``nb_people`` per hour over ``[start, end)``.

        Times are truncated to the start of their hour in the store time
        zone. Hours without observations are absent from the result, which
        is ordered by bucket start ascending.
        """
        _check_bound("start", start)
        _check_bound("end", end)
        with self.db.transaction() as cursor:
            cursor.execute(
                "SELECT time, nb_people FROM line WHERE time >= ? AND time < ?",
                (_to_db_time(start), _to_db_time(end)),
            )
            rows = cursor.fetchall()

        # Keyed on the offset-qualified start so a repeated DST hour stays apart.
        totals: dict[str, int] = defaultdict(int)
        starts: dict[str, datetime] = {}
        for row in rows:
            local = datetime.fromisoformat(row["time"]).astimezone(self.tz)
            bucket = local.replace(minute=0, second=0, microsecond=0)
            key = bucket.isoformat()
            starts[key] = bucket
            totals[key] += row["nb_people"]

        ordered = sorted(starts, key=lambda k: starts[k].astimezone(timezone.utc))
        return [HourBucket(start=starts[key], total=totals[key]) for key in ordered]

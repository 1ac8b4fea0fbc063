"""Shared fixtures: an in-memory database and a controllable store clock."""

from datetime import datetime, timedelta, timezone

import pytest

from people_counter.analytics.query_engine import QueryEngine
from people_counter.store.event_store import EventStore
from people_counter.utils.database import Database


class FakeClock:
    """Store clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def set(self, *args: int, tz=timezone.utc) -> None:
        self.current = datetime(*args, tzinfo=tz)

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 9, 5, tzinfo=timezone.utc))


@pytest.fixture
def db() -> Database:
    """Create an in-memory database for testing."""
    database = Database(":memory:")
    yield database
    database.close()


@pytest.fixture
def store(db: Database, clock: FakeClock) -> EventStore:
    return EventStore(db, clock=clock)


@pytest.fixture
def engine(store: EventStore) -> QueryEngine:
    return QueryEngine(store)

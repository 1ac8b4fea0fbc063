from typing import Optional

from pydantic import BaseModel, Field

from people_counter.store.event_store import SQLITE_MAX_INTEGER, SQLITE_MIN_INTEGER


class NewObservation(BaseModel):
    nb_people: int = Field(ge=SQLITE_MIN_INTEGER, le=SQLITE_MAX_INTEGER)
    source: Optional[str] = None


class DayRequest(BaseModel):
    date: str


class ObservationOut(BaseModel):
    time: str
    nb_people: int
    source: Optional[str] = None

"""FastAPI adapter for the people counter.

Decodes requests, calls one :class:`QueryEngine` operation and encodes the
result. ``InvalidArgument`` maps to 400 and ``StoreUnavailable`` to 500,
both with an ``{"error": ...}`` body.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse, PlainTextResponse

from people_counter.analytics.query_engine import QueryEngine, ResultItem
from people_counter.api.models import DayRequest, NewObservation, ObservationOut
from people_counter.api.websocket import echo_socket
from people_counter.exceptions import InvalidArgument, StoreUnavailable

logger = logging.getLogger(__name__)


def _engine(request: Request) -> QueryEngine:
    return request.app.state.engine


def _out(items: list[ResultItem]) -> list[dict]:
    return [item.to_dict() for item in items]


def create_app(
    engine: QueryEngine,
    on_shutdown: Optional[Callable[[], None]] = None,
) -> FastAPI:
    """Build the HTTP/WebSocket application around a query engine.

    Args:
        engine: Query engine sharing the process-wide database handle.
        on_shutdown: Called once when the server stops, typically the
            handle's ``close``.

    Returns:
        The FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if on_shutdown is not None:
            logger.info("Shutting down")
            on_shutdown()

    app = FastAPI(title="People Counter", version="1.0.0", lifespan=lifespan)
    app.state.engine = engine

    @app.exception_handler(InvalidArgument)
    async def invalid_argument_handler(request: Request, exc: InvalidArgument):
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/", response_class=PlainTextResponse)
    def hello():
        return "Hello, World!"

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/get_people/{nb}", response_model=list[ObservationOut])
    def get_people(nb: int, request: Request):
        return _out(_engine(request).latest(nb))

    @app.post("/get_day", response_model=list[ObservationOut])
    def get_day(payload: DayRequest, request: Request):
        return _out(_engine(request).day(payload.date))

    @app.get("/get_today", response_model=list[ObservationOut])
    def get_today(request: Request):
        return _out(_engine(request).today())

    @app.get("/get_yesterday", response_model=list[ObservationOut])
    def get_yesterday(request: Request):
        return _out(_engine(request).yesterday())

    @app.post("/get_hours", response_model=list[ObservationOut])
    def get_hours(payload: DayRequest, request: Request):
        return _out(_engine(request).hourly_totals(payload.date))

    @app.post("/new_data", status_code=201, response_model=ObservationOut)
    def new_data(payload: NewObservation, request: Request):
        return _engine(request).record(payload.nb_people, payload.source).to_dict()

    @app.websocket("/web_socket")
    async def web_socket(websocket: WebSocket):
        await echo_socket(websocket)

    return app

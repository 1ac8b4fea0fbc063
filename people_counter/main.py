"""Main entry point for the people counter service.

Builds the shared database handle, the event store and the query engine
from configuration, and serves them over HTTP/WebSocket with uvicorn.
"""

import logging
import os
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from people_counter.analytics.query_engine import QueryEngine
from people_counter.api.app import create_app
from people_counter.store.event_store import EventStore
from people_counter.utils.config import AppConfig, resolve_config
from people_counter.utils.database import Database
from people_counter.utils.logger import configure_logging

logger = logging.getLogger(__name__)

CONFIG_ENV = "PEOPLE_COUNTER_CONFIG"


def build_engine(config: AppConfig) -> tuple[Database, QueryEngine]:
    """Open the database handle and wire the store and engine around it.

    Returns:
        The handle (owned by the caller, who closes it) and the engine.
    """
    db = Database(config.database.path, timeout=config.database.timeout)
    try:
        store = EventStore(db, tz_name=config.database.timezone)
    except ValueError:
        db.close()
        raise
    return db, QueryEngine(store)


def run_server(
    config: AppConfig,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """Serve the application until interrupted, then close the handle."""
    db, engine = build_engine(config)
    app = create_app(engine)
    bind_host = host or config.server.host
    bind_port = port or config.server.port
    logger.info("Binding listener to %s:%d", bind_host, bind_port)
    try:
        uvicorn.run(app, host=bind_host, port=bind_port, log_config=None)
    finally:
        db.close()


def create_application() -> FastAPI:
    """App factory for ``uvicorn --factory people_counter.main:create_application``."""
    config = resolve_config(os.environ.get(CONFIG_ENV))
    configure_logging(config.logging)
    db, engine = build_engine(config)
    return create_app(engine, on_shutdown=db.close)


def main() -> None:
    """Launch the people counter service."""
    config = resolve_config(os.environ.get(CONFIG_ENV))
    configure_logging(config.logging)
    logger.info("Starting People Counter")
    run_server(config)


if __name__ == "__main__":
    sys.exit(main() or 0)

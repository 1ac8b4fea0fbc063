"""Click CLI for recording people counts, querying them and serving the API.

Provides the commands:
- ``serve``: Run the HTTP/WebSocket server.
- ``record``: Append one observation.
- ``latest``, ``day``, ``today``, ``yesterday``, ``hourly``: Print query
  results as JSON.
- ``report``: Export a day's hourly totals and observations to JSON or CSV.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from people_counter.analytics.query_engine import QueryEngine, ResultItem
from people_counter.exceptions import InvalidArgument, PeopleCounterError
from people_counter.main import build_engine, run_server
from people_counter.utils.config import AppConfig, resolve_config
from people_counter.utils.logger import PACKAGE_LOGGER, configure_logging, setup_logger

logger = logging.getLogger(__name__)

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True),
    help="Configuration YAML",
)
database_option = click.option(
    "--database",
    "-db",
    type=click.Path(),
    help="Database path (overrides the configuration)",
)


def _load(config_path: Optional[str], database: Optional[str]) -> AppConfig:
    config = resolve_config(config_path)
    if database:
        config.database.path = database
    return config


@contextmanager
def _engine(config_path: Optional[str], database: Optional[str]):
    """Yield a query engine, turning core errors into click errors."""
    try:
        db, engine = build_engine(_load(config_path, database))
    except (PeopleCounterError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        yield engine
    except InvalidArgument as exc:
        raise click.BadParameter(str(exc)) from exc
    except PeopleCounterError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        db.close()


def _echo_items(items: list[ResultItem]) -> None:
    click.echo(json.dumps([item.to_dict() for item in items], indent=2))


@click.group()
@click.version_option(version="1.0.0")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def cli(verbose: bool) -> None:
    """People Counter CLI - Record and query people count observations."""
    if verbose:
        setup_logger(PACKAGE_LOGGER, level="DEBUG")


@cli.command()
@config_option
@database_option
@click.option("--host", help="Listen address")
@click.option("--port", "-p", type=int, help="Listen port")
def serve(
    config_path: Optional[str],
    database: Optional[str],
    host: Optional[str],
    port: Optional[int],
) -> None:
    """Run the HTTP/WebSocket server.

    Example:
        people-counter serve -c configs/config.yaml --port 6942
    """
    config = _load(config_path, database)
    configure_logging(config.logging)
    run_server(config, host=host, port=port)


@cli.command()
@click.argument("nb_people", type=int)
@click.option("--source", "-s", help="Origin of the observation")
@config_option
@database_option
def record(
    nb_people: int,
    source: Optional[str],
    config_path: Optional[str],
    database: Optional[str],
) -> None:
    """Record one people count observation.

    Example:
        people-counter record 7 --source doorA
    """
    with _engine(config_path, database) as engine:
        item = engine.record(nb_people, source)
    click.echo(json.dumps(item.to_dict()))


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("n", type=int)
@config_option
@database_option
def latest(n: int, config_path: Optional[str], database: Optional[str]) -> None:
    """Print the N most recent observations (N <= 0 prints none)."""
    with _engine(config_path, database) as engine:
        _echo_items(engine.latest(n))


@cli.command()
@click.argument("date")
@config_option
@database_option
def day(date: str, config_path: Optional[str], database: Optional[str]) -> None:
    """Print every observation of DATE (YYYY-MM-DD)."""
    with _engine(config_path, database) as engine:
        _echo_items(engine.day(date))


@cli.command()
@config_option
@database_option
def today(config_path: Optional[str], database: Optional[str]) -> None:
    """Print today's observations."""
    with _engine(config_path, database) as engine:
        _echo_items(engine.today())


@cli.command()
@config_option
@database_option
def yesterday(config_path: Optional[str], database: Optional[str]) -> None:
    """Print yesterday's observations."""
    with _engine(config_path, database) as engine:
        _echo_items(engine.yesterday())


@cli.command()
@click.argument("date")
@config_option
@database_option
def hourly(date: str, config_path: Optional[str], database: Optional[str]) -> None:
    """Print per-hour people totals for DATE (YYYY-MM-DD)."""
    with _engine(config_path, database) as engine:
        _echo_items(engine.hourly_totals(date))


def build_report(engine: QueryEngine, date: str) -> dict:
    """Collect the hourly totals and observations of one day."""
    hourly_items = engine.hourly_totals(date)
    observations = engine.day(date)
    return {
        "date": date,
        "total_people": sum(item.nb_people for item in hourly_items),
        "observation_count": len(observations),
        "hourly_totals": [item.to_dict() for item in hourly_items],
        "observations": [item.to_dict() for item in observations],
        "report_generated_at": datetime.now().isoformat(),
    }


@cli.command()
@click.option("--date", "-d", "date", required=True, help="Day to report (YYYY-MM-DD)")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Output file path",
)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["json", "csv"]),
    default="json",
    help="Output format",
)
@config_option
@database_option
def report(
    date: str,
    output: Optional[str],
    fmt: str,
    config_path: Optional[str],
    database: Optional[str],
) -> None:
    """Export a day's hourly totals and observations.

    JSON holds both in one document. CSV writes the hourly totals to the
    output path and the observations beside it as ``<stem>_observations.csv``.

    Example:
        people-counter report -d 2024-05-01 -o report.csv -f csv
    """
    with _engine(config_path, database) as engine:
        report_data = build_report(engine, date)

    output_path = Path(output) if output else Path(f"report.{fmt}")

    if fmt == "json":
        with open(output_path, "w") as f:
            json.dump(report_data, f, indent=2)
    elif fmt == "csv":
        import pandas as pd

        hourly_df = pd.DataFrame(report_data["hourly_totals"], columns=["time", "nb_people"])
        hourly_df.insert(0, "date", date)
        hourly_df.to_csv(output_path, index=False)

        observations_path = output_path.with_name(
            f"{output_path.stem}_observations{output_path.suffix}"
        )
        observations_df = pd.DataFrame(
            report_data["observations"], columns=["time", "nb_people", "source"]
        )
        observations_df.insert(0, "date", date)
        observations_df.to_csv(observations_path, index=False)
        click.echo(f"Observations saved to: {observations_path}")

    click.echo(f"Report saved to: {output_path}")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()

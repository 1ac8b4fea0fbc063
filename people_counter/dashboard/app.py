"""Streamlit dashboard for the people counter.

Shows the latest observations, the observations of a chosen day and the
day's hourly people totals. All data is read through the query engine.
"""

import os
from datetime import date
from typing import Optional

import pandas as pd
import plotly.express as px
import streamlit as st

from people_counter.analytics.query_engine import QueryEngine, ResultItem
from people_counter.exceptions import PeopleCounterError
from people_counter.main import CONFIG_ENV, build_engine
from people_counter.utils.config import AppConfig, resolve_config

COLUMNS = ["time", "nb_people", "source"]


def items_to_frame(items: list[ResultItem]) -> pd.DataFrame:
    """Convert result items to a DataFrame with ``time``/``nb_people``/``source``."""
    return pd.DataFrame([item.to_dict() for item in items], columns=COLUMNS)


@st.cache_resource
def _get_engine(config_path: Optional[str]) -> tuple[AppConfig, QueryEngine]:
    config = resolve_config(config_path)
    _, engine = build_engine(config)
    return config, engine


def main() -> None:
    """Entry point for the Streamlit dashboard."""
    st.set_page_config(page_title="People Counter", layout="wide")
    st.title("People Counter Dashboard")

    config, engine = _get_engine(os.environ.get(CONFIG_ENV))

    with st.sidebar:
        st.header("Query")
        selected_day = st.date_input("Day", value=engine.today_date())
        limit = st.number_input(
            "Latest observations",
            min_value=1,
            max_value=500,
            value=config.dashboard.latest_limit,
        )

    tab1, tab2, tab3 = st.tabs(["Latest", "Day", "Hourly Totals"])

    try:
        with tab1:
            _latest_tab(engine, int(limit))
        with tab2:
            _day_tab(engine, selected_day)
        with tab3:
            _hourly_tab(engine, selected_day)
    except PeopleCounterError as exc:
        st.error(f"Could not query the store: {exc}")


def _latest_tab(engine: QueryEngine, limit: int) -> None:
    """Render the most recent observations.

    Args:
        engine: Query engine to read from.
        limit: Number of observations to show.
    """
    st.header("Latest Observations")
    df = items_to_frame(engine.latest(limit))
    if df.empty:
        st.info("No observations recorded yet")
        return
    st.dataframe(df, use_container_width=True)


def _day_tab(engine: QueryEngine, day: date) -> None:
    """Render every observation of the selected day."""
    st.header(f"Observations on {day.isoformat()}")
    df = items_to_frame(engine.day(day))
    if df.empty:
        st.info("No observations for this day")
        return
    col1, col2 = st.columns(2)
    col1.metric("Observations", len(df))
    col2.metric("Total People", int(df["nb_people"].sum()))
    st.dataframe(df, use_container_width=True)


def _hourly_tab(engine: QueryEngine, day: date) -> None:
    """Render the hourly totals of the selected day as a bar chart."""
    st.header("Hourly Totals")
    df = items_to_frame(engine.hourly_totals(day))
    if df.empty:
        st.info("No hourly data available")
        return
    fig = px.bar(
        df,
        x="time",
        y="nb_people",
        labels={"time": "Hour", "nb_people": "People"},
        title="People by Hour",
    )
    st.plotly_chart(fig, use_container_width=True)


if __name__ == "__main__":
    main()

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from housing_core.charts import city_line_chart, to_vega_spec
from housing_core.data import HousingRecord
from housing_core.filters import ALL_CITIES, DashboardFilters
from housing_core.formatters import format_month_year
from housing_core.grouping import UNIT_METRICS, average_units_by_quarter, quarterly_series_by_city, year_end_snapshots
from housing_core.transforms import filter_valid

UNIT_COLORS = {"owned_units": "#8B5CF6", "rental_units": "#F97316"}


def _long_by_city(rows: List[Dict[str, Any]], cities: List[str], value_name: str) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=["time", "year", "quarter", "city", value_name])
    df = pd.DataFrame(rows)
    present = [c for c in cities if c in df.columns]
    long_df = df.melt(id_vars=["time", "year", "quarter"], value_vars=present, var_name="city", value_name=value_name)
    return long_df.dropna(subset=[value_name])


def year_end_series(records: List[HousingRecord], metric: str) -> List[Dict[str, Any]]:
    snaps = year_end_snapshots(filter_valid(records, [metric]))
    return [
        {
            "city": r.city,
            "year": r.year,
            "quarter": r.quarter,
            "date": r.date.isoformat() if r.date else None,
            "label": format_month_year(r.date),
            metric: getattr(r, metric),
        }
        for r in snaps
    ]


def compute_time_series(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    all_records: List[HousingRecord] = list(ctx.get("records", []))
    records: List[HousingRecord] = list(ctx.get("filtered_records", []))
    payload: Dict[str, Any] = {"filters": asdict(filters), "series": {}, "charts": {}}
    if not records:
        return payload

    cities = sorted({r.city for r in records})
    charts: Dict[str, Any] = {}

    hpi_rows = quarterly_series_by_city(records, "hpi")
    airbnb_rows = quarterly_series_by_city(records, "airbnb_activity")
    unit_city: Optional[str] = None if filters.selected_city == ALL_CITIES else filters.selected_city
    unit_rows = average_units_by_quarter(records, all_records, UNIT_METRICS, city=unit_city)
    rent_rows = year_end_series(records, "median_rent")
    income_rows = year_end_series(records, "median_income")

    payload["series"] = {
        "hpi": hpi_rows,
        "airbnb_activity": airbnb_rows,
        "housing_units": unit_rows,
        "median_rent": rent_rows,
        "median_income": income_rows,
    }

    hpi_long = _long_by_city(hpi_rows, cities, "hpi")
    if not hpi_long.empty:
        charts["hpi"] = to_vega_spec(city_line_chart(hpi_long, x="time:O", y="hpi", y_title="Housing Price Index", x_title="Quarter"))

    airbnb_long = _long_by_city(airbnb_rows, cities, "airbnb_activity")
    if not airbnb_long.empty:
        charts["airbnb_activity"] = to_vega_spec(
            city_line_chart(airbnb_long, x="time:O", y="airbnb_activity", y_title="Airbnb Listings", x_title="Quarter")
        )

    if unit_rows:
        units_long = pd.DataFrame(unit_rows).melt(
            id_vars=["time", "year", "quarter"], value_vars=list(UNIT_METRICS), var_name="metric", value_name="units"
        )
        area = (
            alt.Chart(units_long)
            .mark_area(opacity=0.6)
            .encode(
                x=alt.X("time:O", title="Quarter", axis=alt.Axis(labelAngle=-45)),
                y=alt.Y("units:Q", title="Housing Units", stack=True, axis=alt.Axis(format="~s")),
                color=alt.Color(
                    "metric:N",
                    title="Tenure",
                    scale=alt.Scale(domain=list(UNIT_COLORS), range=list(UNIT_COLORS.values())),
                ),
                tooltip=["time", "metric", alt.Tooltip("units:Q", format=",.0f")],
            )
        )
        charts["housing_units"] = to_vega_spec(area)

    for key, rows, title, fmt in (
        ("median_rent", rent_rows, "Median Rent ($)", "$,.0f"),
        ("median_income", income_rows, "Median Income ($)", "$~s"),
    ):
        if rows:
            df = pd.DataFrame(rows)
            df["date"] = pd.to_datetime(df["date"])
            df = df.dropna(subset=["date"])
            charts[key] = to_vega_spec(city_line_chart(df, x="date:T", y=key, y_title=title, y_format=fmt, x_title="Year end"))

    payload["charts"] = charts
    return payload

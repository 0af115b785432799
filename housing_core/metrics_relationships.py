from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from housing_core.charts import city_color, to_vega_spec
from housing_core.data import HousingRecord
from housing_core.filters import DashboardFilters
from housing_core.transforms import filter_valid

SCATTER_PAIRS = {
    "airbnb_ratio_vs_hpi": ("airbnb_ratio", "hpi", "Housing Price Index"),
    "airbnb_ratio_vs_rent": ("airbnb_ratio", "median_rent", "Median Rent ($)"),
}


def scatter_points(records: List[HousingRecord], x: str, y: str) -> List[Dict[str, Any]]:
    return [
        {"city": r.city, "time": r.period, "year": r.year, "quarter": r.quarter, "x": getattr(r, x), "y": getattr(r, y)}
        for r in filter_valid(records, [x, y])
    ]


def compute_relationships(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: List[HousingRecord] = list(ctx.get("filtered_records", []))
    payload: Dict[str, Any] = {"filters": asdict(filters), "points": {}, "charts": {}}
    if not records:
        return payload

    for key, (x, y, y_title) in SCATTER_PAIRS.items():
        points = scatter_points(records, x, y)
        payload["points"][key] = points
        if not points:
            continue
        df = pd.DataFrame(points)
        chart = (
            alt.Chart(df)
            .mark_circle(size=70, opacity=0.8)
            .encode(
                x=alt.X("x:Q", title="Airbnb Ratio", axis=alt.Axis(format=".2%")),
                y=alt.Y("y:Q", title=y_title, scale=alt.Scale(zero=False)),
                color=city_color(sorted(df["city"].unique().tolist())),
                tooltip=[
                    alt.Tooltip("city:N", title="City"),
                    alt.Tooltip("time:N", title="Period"),
                    alt.Tooltip("x:Q", title="Airbnb Ratio", format=".4f"),
                    alt.Tooltip("y:Q", title=y_title, format=",.2f"),
                ],
            )
        )
        payload["charts"][key] = to_vega_spec(chart)
    return payload

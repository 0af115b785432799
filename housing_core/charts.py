from __future__ import annotations

from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

CITY_COLORS: Dict[str, str] = {
    "San Francisco": "#8B5CF6",
    "Austin": "#F97316",
}


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def city_color(cities: List[str]) -> alt.Color:
    domain = list(cities)
    palette = [CITY_COLORS.get(c) for c in domain]
    if domain and all(palette):
        return alt.Color("city:N", title="City", scale=alt.Scale(domain=domain, range=palette))
    return alt.Color("city:N", title="City")


def city_line_chart(
    df: pd.DataFrame,
    *,
    x: str,
    y: str,
    y_title: str,
    y_format: str = "~s",
    x_title: Optional[str] = None,
) -> alt.Chart:
    cities = sorted(df["city"].dropna().astype(str).unique().tolist()) if "city" in df.columns else []
    hover = alt.selection_point(fields=["city"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_line(point={"filled": True})
        .encode(
            x=alt.X(x, title=x_title, axis=alt.Axis(grid=False, labelAngle=-45)),
            y=alt.Y(f"{y}:Q", title=y_title, axis=alt.Axis(format=y_format, gridDash=[4, 4], domain=False, ticks=False)),
            color=city_color(cities),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[
                alt.Tooltip("city:N", title="City"),
                alt.Tooltip(x, title=x_title or "Period"),
                alt.Tooltip(f"{y}:Q", title=y_title, format=y_format),
            ],
        )
        .add_params(hover)
    )

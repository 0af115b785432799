from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

import altair as alt
import pandas as pd

from housing_core.charts import city_color, to_vega_spec
from housing_core.data import HousingRecord
from housing_core.filters import DashboardFilters
from housing_core.formatters import format_number_k, format_percent
from housing_core.transforms import most_recent_by_city

SNAPSHOT_METRICS = (
    "airbnb_activity",
    "airbnb_ratio",
    "hpi",
    "median_rent",
    "median_income",
    "ownership_rate",
    "rental_rate",
    "unemployment",
)


def _metric_value(value: Optional[float]) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def snapshot_rows(records: Sequence[HousingRecord]) -> List[Dict[str, Any]]:
    rows = []
    for city, r in most_recent_by_city(records).items():
        row: Dict[str, Any] = {
            "city": city,
            "period": r.period,
            "date": r.date.isoformat() if r.date else None,
        }
        for name in SNAPSHOT_METRICS:
            row[name] = _metric_value(getattr(r, name))
        row["airbnb_ratio_label"] = format_percent(row["airbnb_ratio"])
        row["airbnb_activity_label"] = format_number_k(row["airbnb_activity"])
        rows.append(row)
    return rows


def compute_key_metrics(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: List[HousingRecord] = list(ctx.get("filtered_records", []))
    if not records:
        return {"filters": asdict(filters), "snapshot": [], "charts": {}}

    rows = snapshot_rows(records)
    charts: Dict[str, Any] = {}
    long_df = pd.DataFrame(rows).melt(
        id_vars=["city", "period"],
        value_vars=["hpi", "median_rent"],
        var_name="metric",
        value_name="value",
    )
    long_df = long_df.dropna(subset=["value"])
    if not long_df.empty:
        bars = (
            alt.Chart(long_df)
            .mark_bar()
            .encode(
                x=alt.X("city:N", title=None, axis=alt.Axis(grid=False)),
                y=alt.Y("value:Q", title=None, axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
                color=city_color([r["city"] for r in rows]),
                column=alt.Column("metric:N", title=None),
                tooltip=["city", "period", "metric", alt.Tooltip("value:Q", format=",.2f")],
            )
            .resolve_scale(y="independent")
        )
        charts["latest_by_city"] = to_vega_spec(bars)

    return {"filters": asdict(filters), "snapshot": rows, "charts": charts}

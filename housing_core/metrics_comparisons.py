from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from housing_core.charts import to_vega_spec
from housing_core.data import HousingRecord
from housing_core.filters import DashboardFilters
from housing_core.formatters import format_growth
from housing_core.metrics_key import snapshot_rows
from housing_core.transforms import GROWTH_METRICS, filter_valid, growth_by_city, most_recent_by_city

RATE_COLORS = {"ownership_rate": "#8B5CF6", "rental_rate": "#F97316"}


def growth_rows(records: List[HousingRecord]) -> List[Dict[str, Any]]:
    rows = []
    for city, summary in growth_by_city(records, GROWTH_METRICS).items():
        rows.append(
            {
                "city": city,
                "airbnb_growth": summary.growth["airbnb_activity"],
                "hpi_growth": summary.growth["hpi"],
                "rent_growth": summary.growth["median_rent"],
                "period_start": summary.period_start,
                "period_end": summary.period_end,
                "labels": {k: format_growth(v) for k, v in summary.growth.items()},
            }
        )
    return rows


def ownership_rental_rows(records: List[HousingRecord]) -> List[Dict[str, Any]]:
    """Latest ownership/rental rate per city, as percentages."""
    valid = filter_valid(records, ["ownership_rate", "rental_rate"])
    return [
        {
            "city": city,
            "period": r.period,
            "ownership_rate": r.ownership_rate * 100,
            "rental_rate": r.rental_rate * 100,
        }
        for city, r in most_recent_by_city(valid).items()
    ]


def compute_comparisons(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    # City cards always compare full histories; only the rate chart follows the filters.
    all_records: List[HousingRecord] = list(ctx.get("records", []))
    filtered: List[HousingRecord] = list(ctx.get("filtered_records", []))

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "key_metrics": [],
        "growth": [],
        "rates": [],
        "charts": {},
    }
    if not all_records:
        return payload

    payload["key_metrics"] = snapshot_rows(all_records)
    payload["growth"] = growth_rows(all_records)

    rates = ownership_rental_rows(filtered)
    payload["rates"] = rates
    if rates:
        long_df = pd.DataFrame(rates).melt(
            id_vars=["city", "period"],
            value_vars=["ownership_rate", "rental_rate"],
            var_name="metric",
            value_name="rate",
        )
        bars = (
            alt.Chart(long_df)
            .mark_bar()
            .encode(
                x=alt.X("city:N", title="City", axis=alt.Axis(grid=False)),
                xOffset="metric:N",
                y=alt.Y("rate:Q", title="Rate (%)", scale=alt.Scale(domain=[0, 100])),
                color=alt.Color(
                    "metric:N",
                    title="Metric",
                    scale=alt.Scale(domain=list(RATE_COLORS), range=list(RATE_COLORS.values())),
                ),
                tooltip=["city", "period", "metric", alt.Tooltip("rate:Q", format=".1f")],
            )
        )
        payload["charts"]["ownership_vs_rental"] = to_vega_spec(bars)
    return payload

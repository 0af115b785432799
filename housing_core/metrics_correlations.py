from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Sequence

import altair as alt
import pandas as pd

from housing_core.charts import to_vega_spec
from housing_core.correlation import CORRELATION_FIELDS, FIELD_LABELS, correlate, correlation_frame_rows
from housing_core.data import HousingRecord, select_records
from housing_core.filters import DashboardFilters
from housing_core.transforms import filter_valid


def compute_correlations(
    filters: DashboardFilters,
    ctx: Dict[str, Any],
    *,
    fields: Sequence[str] = CORRELATION_FIELDS,
) -> Dict[str, Any]:
    records: List[HousingRecord] = list(ctx.get("filtered_records", []))
    records = select_records(records, city=filters.correlation_city)
    valid = filter_valid(records, fields)

    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "fields": list(fields),
        "labels": {f: FIELD_LABELS.get(f, f) for f in fields},
        "n_records": len(valid),
        "matrix": {},
        "charts": {},
    }
    if not valid:
        return payload

    matrix = correlate(valid, fields)
    payload["matrix"] = matrix

    cells = pd.DataFrame(correlation_frame_rows(matrix))
    order = [FIELD_LABELS.get(f, f) for f in fields]
    base = alt.Chart(cells).encode(
        x=alt.X("label_x:N", title=None, sort=order, axis=alt.Axis(labelAngle=-45)),
        y=alt.Y("label_y:N", title=None, sort=order),
    )
    heat = base.mark_rect().encode(
        color=alt.Color("correlation:Q", title="r", scale=alt.Scale(scheme="redblue", domain=[-1, 1], reverse=True)),
        tooltip=[
            alt.Tooltip("label_x:N", title="Metric A"),
            alt.Tooltip("label_y:N", title="Metric B"),
            alt.Tooltip("correlation:Q", title="r", format=".2f"),
        ],
    )
    text = base.mark_text(fontSize=11).encode(text=alt.Text("correlation:Q", format=".2f"))
    payload["charts"]["heatmap"] = to_vega_spec(heat + text)
    return payload

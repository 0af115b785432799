from __future__ import annotations

import math
from typing import Dict, Iterable, Sequence, Tuple

import numpy as np

from housing_core.data import HousingRecord, metric_value, round_half_up
from housing_core.transforms import check_fields

CORRELATION_FIELDS: Tuple[str, ...] = (
    "hpi",
    "median_rent",
    "rental_rate",
    "airbnb_activity",
    "airbnb_ratio",
    "median_income",
    "unemployment",
)

FIELD_LABELS: Dict[str, str] = {
    "hpi": "Housing Price Index",
    "median_rent": "Median Rent",
    "rental_rate": "Rental Rate",
    "airbnb_activity": "Airbnb Activity",
    "airbnb_ratio": "Airbnb Ratio",
    "median_income": "Median Income",
    "unemployment": "Unemployment",
    "ownership_rate": "Ownership Rate",
    "population": "Population",
}


def pearson(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson r over the positions where both series are finite.

    Uses the running-sum form
    r = (Sxy - Sx*Sy/n) / sqrt((Sxx - Sx^2/n) * (Syy - Sy^2/n)).
    Returns 0.0 when no pair is usable or the denominator is zero.
    """
    mask = np.isfinite(x) & np.isfinite(y)
    n = int(mask.sum())
    if n == 0:
        return 0.0
    xs = x[mask]
    ys = y[mask]
    sum_x = float(xs.sum())
    sum_y = float(ys.sum())
    sum_xx = float((xs * xs).sum())
    sum_yy = float((ys * ys).sum())
    sum_xy = float((xs * ys).sum())

    num = sum_xy - sum_x * sum_y / n
    var_product = (sum_xx - sum_x * sum_x / n) * (sum_yy - sum_y * sum_y / n)
    if var_product <= 0:
        return 0.0
    return num / math.sqrt(var_product)


def correlate(
    records: Iterable[HousingRecord],
    fields: Sequence[str] = CORRELATION_FIELDS,
) -> Dict[str, Dict[str, float]]:
    names = check_fields(fields)
    rows = list(records)
    columns = {
        name: np.array([metric_value(r, name) for r in rows], dtype=float)
        for name in names
    }

    matrix: Dict[str, Dict[str, float]] = {}
    for a in names:
        matrix[a] = {}
        for b in names:
            if a == b:
                matrix[a][b] = 1.0
                continue
            r = pearson(columns[a], columns[b])
            r = min(1.0, max(-1.0, r))
            matrix[a][b] = round_half_up(r, 2)
    return matrix


def correlation_frame_rows(matrix: Dict[str, Dict[str, float]]) -> list[dict]:
    """Flatten a matrix into long rows for heatmaps and tables."""
    return [
        {
            "field_x": a,
            "field_y": b,
            "label_x": FIELD_LABELS.get(a, a),
            "label_y": FIELD_LABELS.get(b, b),
            "correlation": value,
        }
        for a, row in matrix.items()
        for b, value in row.items()
    ]

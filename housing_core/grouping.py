from __future__ import annotations

from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from housing_core.data import HousingRecord, chronological_key, metric_value, period_label
from housing_core.transforms import check_fields, distinct_cities, finite_or_zero

T = TypeVar("T")

UNIT_METRICS: Tuple[str, ...] = ("owned_units", "rental_units")


def group_by(
    records: Iterable[HousingRecord],
    key_fn: Callable[[HousingRecord], Hashable],
    reduce_fn: Callable[[Hashable, List[HousingRecord]], T],
    *,
    sort_key: Optional[Callable[[T], Any]] = None,
) -> List[T]:
    """Group records by `key_fn`, reduce each group, and re-sort the results.

    Groups are reduced in first-seen order; pass `sort_key` to order the
    output (grouping itself carries no chronological guarantee).
    """
    groups: Dict[Hashable, List[HousingRecord]] = {}
    for record in records:
        groups.setdefault(key_fn(record), []).append(record)
    out = [reduce_fn(key, members) for key, members in groups.items()]
    if sort_key is not None:
        out.sort(key=sort_key)
    return out


def _quarter_sort(row: Dict[str, Any]) -> Tuple[int, int]:
    return (
        row["year"] if row["year"] is not None else -1,
        row["quarter"] if row["quarter"] is not None else -1,
    )


def average_units_by_quarter(
    records: Iterable[HousingRecord],
    all_records: Iterable[HousingRecord],
    metrics: Sequence[str] = UNIT_METRICS,
    city: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Per (year, quarter) unit sums; averaged across cities when `city` is None.

    The divisor is the number of distinct cities in `all_records` (the
    unfiltered input), not in `records`. Records without a city are ignored.
    """
    names = check_fields(metrics)
    rows = [r for r in records if r.city]
    if city is not None:
        rows = [r for r in rows if r.city == city]

    divisor = 1
    if city is None:
        divisor = len(distinct_cities(all_records)) or 1

    def _reduce(key: Tuple[Optional[int], Optional[int]], members: List[HousingRecord]) -> Dict[str, Any]:
        year, quarter = key
        row: Dict[str, Any] = {"time": period_label(year, quarter), "year": year, "quarter": quarter}
        for name in names:
            total = sum(finite_or_zero(metric_value(r, name)) for r in members)
            row[name] = total / divisor
        return row

    return group_by(rows, lambda r: (r.year, r.quarter), _reduce, sort_key=_quarter_sort)


def quarterly_series_by_city(records: Iterable[HousingRecord], metric: str) -> List[Dict[str, Any]]:
    check_fields([metric])

    def _reduce(key: Tuple[Optional[int], Optional[int]], members: List[HousingRecord]) -> Dict[str, Any]:
        year, quarter = key
        row: Dict[str, Any] = {"time": period_label(year, quarter), "year": year, "quarter": quarter}
        for r in members:
            row[r.city] = metric_value(r, metric)
        return row

    return group_by((r for r in records if r.city), lambda r: (r.year, r.quarter), _reduce, sort_key=_quarter_sort)


def year_end_snapshots(records: Iterable[HousingRecord]) -> List[HousingRecord]:
    """One record per (city, year): the one with the highest quarter."""

    def _reduce(_key: Hashable, members: List[HousingRecord]) -> HousingRecord:
        best = members[0]
        for r in members[1:]:
            if (r.quarter or 0) > (best.quarter or 0):
                best = r
        return best

    return group_by(
        (r for r in records if r.city and r.year is not None),
        lambda r: (r.city, r.year),
        _reduce,
        sort_key=chronological_key,
    )

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from housing_core.data import (
    METRIC_FIELDS,
    HousingRecord,
    is_earlier,
    is_later,
    is_valid_number,
    metric_value,
)

# Exact zeros count as valid observations unless a caller opts out.
EXCLUDE_ZERO_VALUES = False

GROWTH_METRICS: Tuple[str, ...] = ("airbnb_activity", "hpi", "median_rent")


def check_fields(required_fields: Iterable[str]) -> Tuple[str, ...]:
    if required_fields is None or isinstance(required_fields, (str, bytes)):
        raise TypeError("required_fields must be a sequence of field names")
    names = tuple(required_fields)
    unknown = [n for n in names if n not in METRIC_FIELDS]
    if unknown:
        raise ValueError(f"Unknown metric field(s): {', '.join(unknown)}")
    return names


def filter_valid(
    records: Iterable[HousingRecord],
    required_fields: Iterable[str],
    *,
    exclude_zero: bool = EXCLUDE_ZERO_VALUES,
) -> List[HousingRecord]:
    """Keep records with a valid date and finite values for every required field.

    The result is sorted by date; records sharing a date keep their input order.
    """
    names = check_fields(required_fields)

    def _ok(record: HousingRecord) -> bool:
        if record.date is None:
            return False
        for name in names:
            value = metric_value(record, name)
            if not is_valid_number(value):
                return False
            if exclude_zero and value == 0:
                return False
        return True

    return sorted((r for r in records if _ok(r)), key=lambda r: r.date)


def most_recent_by_city(records: Iterable[HousingRecord]) -> Dict[str, HousingRecord]:
    latest: Dict[str, HousingRecord] = {}
    for record in records:
        if not record.city:
            continue
        current = latest.get(record.city)
        if current is None or is_later(record, current):
            latest[record.city] = record
    return latest


@dataclass(frozen=True)
class GrowthSummary:
    city: str
    first: HousingRecord
    last: HousingRecord
    growth: Dict[str, float]

    @property
    def period_start(self) -> str:
        return self.first.period

    @property
    def period_end(self) -> str:
        return self.last.period


def percent_change(first: float, last: float) -> float:
    # Missing values count as zero; a zero baseline has no growth.
    first = finite_or_zero(first)
    last = finite_or_zero(last)
    if first == 0:
        return 0.0
    return (last - first) / first * 100.0


def growth_by_city(
    records: Iterable[HousingRecord],
    metrics: Sequence[str] = GROWTH_METRICS,
) -> Dict[str, GrowthSummary]:
    names = check_fields(metrics)
    bounds: Dict[str, List[HousingRecord]] = {}
    for record in records:
        if not record.city:
            continue
        entry = bounds.get(record.city)
        if entry is None:
            bounds[record.city] = [record, record]
            continue
        if is_earlier(record, entry[0]):
            entry[0] = record
        if is_later(record, entry[1]):
            entry[1] = record

    out: Dict[str, GrowthSummary] = {}
    for city, (first, last) in bounds.items():
        growth = {
            name: percent_change(metric_value(first, name), metric_value(last, name))
            for name in names
        }
        out[city] = GrowthSummary(city=city, first=first, last=last, growth=growth)
    return out


def distinct_cities(records: Iterable[HousingRecord]) -> List[str]:
    """Non-empty city names in first-seen order."""
    seen: Dict[str, None] = {}
    for r in records:
        if r.city:
            seen.setdefault(r.city, None)
    return list(seen)


def finite_or_zero(value: float) -> float:
    return value if is_valid_number(value) else 0.0

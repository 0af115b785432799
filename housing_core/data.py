from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass, field, fields
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from housing_core.csv_text import parse_csv_text
from housing_core.filters import ALL_CITIES, DashboardFilters, normalize_filters

logger = logging.getLogger(__name__)

METRIC_FIELDS: Tuple[str, ...] = (
    "population",
    "median_income",
    "total_units",
    "occupied_units",
    "owned_units",
    "rental_units",
    "ownership_rate",
    "rental_rate",
    "median_rent",
    "unemployment",
    "airbnb_activity",
    "airbnb_ratio",
    "hpi",
)

# Unit-count columns show up with either separator in exported sheets.
SPACED_COLUMNS = {
    "total_units": "total units",
    "occupied_units": "occupied units",
    "owned_units": "owned units",
    "rental_units": "rental units",
}

KNOWN_COLUMNS = frozenset({"city", "date", "year", "quarter", *METRIC_FIELDS, *SPACED_COLUMNS.values()})


@dataclass(frozen=True)
class HousingRecord:
    city: str
    date: Optional[date] = None
    year: Optional[int] = None
    quarter: Optional[int] = None
    population: float = math.nan
    median_income: float = math.nan
    total_units: float = math.nan
    occupied_units: float = math.nan
    owned_units: float = math.nan
    rental_units: float = math.nan
    ownership_rate: float = math.nan
    rental_rate: float = math.nan
    median_rent: float = math.nan
    unemployment: float = math.nan
    airbnb_activity: float = math.nan
    airbnb_ratio: float = math.nan
    hpi: float = math.nan
    extras: Mapping[str, str] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        # Records are shared through the load cache; keep passthrough columns read-only.
        object.__setattr__(self, "extras", MappingProxyType(dict(self.extras)))

    @property
    def period(self) -> str:
        return period_label(self.year, self.quarter)


# ---------------- Coercion ----------------
def to_float(value: object) -> float:
    if value is None:
        return math.nan
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return math.nan
    out = pd.to_numeric(value, errors="coerce")
    if pd.isna(out):
        return math.nan
    return float(out)


def to_int(value: object) -> Optional[int]:
    out = to_float(value)
    if not math.isfinite(out):
        return None
    return int(out)


def to_date(value: object) -> Optional[date]:
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    ts = pd.to_datetime(s, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def is_valid_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def period_label(year: Optional[int], quarter: Optional[int]) -> str:
    y = "" if year is None else str(year)
    q = "" if quarter is None else str(quarter)
    return f"{y}-Q{q}"


def metric_value(record: HousingRecord, name: str) -> float:
    if name not in METRIC_FIELDS:
        raise ValueError(f"Unknown metric field: {name!r}")
    return getattr(record, name)


# ---------------- Ordering ----------------
def _period_tuple(record: HousingRecord) -> Tuple[int, int]:
    return (
        record.year if record.year is not None else -1,
        record.quarter if record.quarter is not None else -1,
    )


def _recency_key(record: HousingRecord) -> Tuple[int, object]:
    if record.date is not None:
        return (1, record.date)
    return (0, _period_tuple(record))


def is_later(candidate: HousingRecord, current: HousingRecord) -> bool:
    """True when `candidate` is strictly later than `current`.

    Dates are compared when both records have one, and (year, quarter) when
    neither does. A dated record always ranks after an undated one.
    """
    return _recency_key(candidate) > _recency_key(current)


def is_earlier(candidate: HousingRecord, current: HousingRecord) -> bool:
    return is_later(current, candidate)


def chronological_key(record: HousingRecord) -> Tuple[date, int, int]:
    return (record.date or date.min, *_period_tuple(record))


# ---------------- Normalization ----------------
def _lookup(row: Mapping[str, str], name: str) -> Optional[str]:
    value = row.get(name)
    if (value is None or not str(value).strip()) and name in SPACED_COLUMNS:
        value = row.get(SPACED_COLUMNS[name])
    return value


def _recomputed_ratio(ratio: float, activity: float, total_units: float) -> float:
    if not math.isnan(ratio) and ratio != 0:
        return ratio
    if math.isfinite(activity) and math.isfinite(total_units) and total_units > 0:
        return activity / total_units
    return ratio


def normalize_record(row: Mapping[str, str]) -> HousingRecord:
    if not isinstance(row, Mapping):
        raise TypeError(f"Row must be a mapping, got {type(row).__name__}")

    keyed = {str(k).strip().lower(): v for k, v in row.items()}
    extras = {k: v for k, v in row.items() if str(k).strip().lower() not in KNOWN_COLUMNS}

    metrics: Dict[str, float] = {name: to_float(_lookup(keyed, name)) for name in METRIC_FIELDS}
    metrics["airbnb_ratio"] = _recomputed_ratio(
        metrics["airbnb_ratio"], metrics["airbnb_activity"], metrics["total_units"]
    )

    quarter = to_int(keyed.get("quarter"))
    if quarter not in (1, 2, 3, 4):
        quarter = None

    return HousingRecord(
        city=str(keyed.get("city") or "").strip(),
        date=to_date(keyed.get("date")),
        year=to_int(keyed.get("year")),
        quarter=quarter,
        extras=extras,
        **metrics,
    )


def normalize_records(rows: Iterable[Mapping[str, str]]) -> List[HousingRecord]:
    if rows is None or isinstance(rows, (str, bytes)):
        raise TypeError("rows must be an iterable of mappings")
    return [normalize_record(row) for row in rows]


def records_to_frame(records: Sequence[HousingRecord]) -> pd.DataFrame:
    names = [f.name for f in fields(HousingRecord) if f.name != "extras"]
    columns = names + ["period"]
    rows = []
    for r in records:
        item = {name: getattr(r, name) for name in names}
        item["period"] = r.period
        rows.append(item)
    df = pd.DataFrame(rows, columns=columns)
    df["date"] = pd.to_datetime(df["date"], errors="coerce")
    return df


# ---------------- Public API ----------------
def text_signature(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(text: str) -> Dict[str, object]:
    records = tuple(normalize_records(parse_csv_text(text)))
    cities = sorted({r.city for r in records if r.city})
    years = sorted({r.year for r in records if r.year is not None})
    logger.info("Loaded %d records for %d cities.", len(records), len(cities))
    return {
        "signature": text_signature(text),
        "records": records,
        "cities": cities,
        "years": years,
    }


def load_dashboard_data(text: str) -> Dict[str, object]:
    if not isinstance(text, str):
        raise TypeError(f"CSV text must be str, got {type(text).__name__}")
    if not text.strip():
        return {"signature": text_signature(text), "records": (), "cities": [], "years": []}
    return _load_dashboard_data_cached(text)


def select_records(
    records: Iterable[HousingRecord],
    *,
    city: str = ALL_CITIES,
    year: Optional[int] = None,
    quarter: Optional[int] = None,
) -> List[HousingRecord]:
    out = list(records)
    if city and city != ALL_CITIES:
        out = [r for r in out if r.city == city]
    if year is not None:
        out = [r for r in out if r.year == year]
    if quarter is not None:
        out = [r for r in out if r.quarter == quarter]
    return out


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    records: Tuple[HousingRecord, ...] = tuple(data_ctx.get("records", ()))
    cities = data_ctx.get("cities") or sorted({r.city for r in records if r.city})
    years = data_ctx.get("years") or sorted({r.year for r in records if r.year is not None})
    filt = (
        filters
        if isinstance(filters, DashboardFilters)
        else normalize_filters(filters, available_cities=cities, available_years=years)
    )

    filtered_records = select_records(
        records,
        city=filt.selected_city,
        year=filt.selected_year,
        quarter=filt.selected_quarter,
    )

    return {
        "filters": filt,
        "records": records,
        "filtered_records": filtered_records,
        "cities": list(cities),
        "years": list(years),
    }

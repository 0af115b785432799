from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

ALL_CITIES = "all"


@dataclass(frozen=True)
class DashboardFilters:
    selected_city: str = ALL_CITIES
    selected_year: Optional[int] = None
    selected_quarter: Optional[int] = None
    correlation_city: str = ALL_CITIES


def _as_int(value: object) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in {"", ALL_CITIES}:
        return None
    try:
        return int(value)
    except Exception:
        return None


def _as_city(value: object, available_cities: Optional[Iterable[str]]) -> str:
    city = str(value).strip() if value is not None else ""
    if not city or city.lower() == ALL_CITIES:
        return ALL_CITIES
    if available_cities is not None and city not in set(available_cities):
        return ALL_CITIES
    return city


def normalize_filters(
    raw: dict,
    *,
    available_cities: Optional[Iterable[str]] = None,
    available_years: Optional[Iterable[int]] = None,
) -> DashboardFilters:
    cities = list(available_cities) if available_cities is not None else None

    selected_year = _as_int(raw.get("selected_year"))
    if selected_year is not None and available_years is not None and selected_year not in set(available_years):
        selected_year = None

    selected_quarter = _as_int(raw.get("selected_quarter"))
    if selected_quarter not in (1, 2, 3, 4):
        selected_quarter = None

    return DashboardFilters(
        selected_city=_as_city(raw.get("selected_city"), cities),
        selected_year=selected_year,
        selected_quarter=selected_quarter,
        correlation_city=_as_city(raw.get("correlation_city"), cities),
    )

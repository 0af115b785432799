from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class DashboardFiltersModel(BaseModel):
    selected_city: str = "all"
    selected_year: Optional[int] = None
    selected_quarter: Optional[int] = None
    correlation_city: str = "all"


class MetaCitiesResponse(BaseModel):
    cities: List[str]


class MetaYearsResponse(BaseModel):
    years: List[int]

from __future__ import annotations

from typing import List

import pytest

from housing_core.csv_text import parse_csv_text
from housing_core.data import HousingRecord, normalize_records

SAMPLE_CSV = """city,date,year,quarter,population,median_income,total units,occupied units,owned units,rental units,ownership_rate,rental_rate,median_rent,unemployment,airbnb_activity,airbnb_ratio,hpi,source
Austin,2021-03-31,2021,1,950000,71000,400000,380000,170000,210000,0.45,0.55,1400,4.1,9000,0,210.5,"ACS, Zillow"
Austin,2021-12-31,2021,4,960000,73000,405000,385000,172000,213000,0.447,0.553,1480,3.6,9800,0.0242,228.0,ACS
Austin,2022-09-30,2022,3,975000,76000,410000,390000,175000,215000,0.449,0.551,1620,3.1,11200,0.0273,262.4,ACS
San Francisco,2020-12-31,2020,4,870000,112000,410000,385000,140000,245000,0.364,0.636,3100,7.8,6500,0.0159,301.2,ACS
San Francisco,2021-12-31,2021,4,815000,119000,412000,382000,141000,241000,0.369,0.631,2950,4.9,5200,,305.7,ACS
San Francisco,2022-09-30,2022,3,808000,126000,415000,384000,143000,241000,0.372,0.628,3050,3.5,6100,0.0147,n/a,ACS
"""


@pytest.fixture
def sample_csv() -> str:
    return SAMPLE_CSV


@pytest.fixture
def sample_records() -> List[HousingRecord]:
    return normalize_records(parse_csv_text(SAMPLE_CSV))

from datetime import date

import pytest

from housing_core.data import HousingRecord
from housing_core.grouping import (
    average_units_by_quarter,
    group_by,
    quarterly_series_by_city,
    year_end_snapshots,
)


def _rec(city, year, quarter, **metrics):
    month = quarter * 3
    day = 30 if month in (6, 9) else 31
    return HousingRecord(city=city, date=date(year, month, day), year=year, quarter=quarter, **metrics)


def test_group_by_resorts_output():
    recs = [_rec("A", 2022, 1), _rec("B", 2021, 2), _rec("A", 2021, 2)]
    out = group_by(
        recs,
        lambda r: (r.year, r.quarter),
        lambda key, members: (key, len(members)),
        sort_key=lambda row: row[0],
    )
    assert out == [((2021, 2), 2), ((2022, 1), 1)]


def test_average_units_divides_by_all_cities():
    all_records = [
        _rec("A", 2021, 1, owned_units=100.0, rental_units=50.0),
        _rec("B", 2021, 1, owned_units=300.0, rental_units=150.0),
        _rec("A", 2021, 2, owned_units=110.0, rental_units=60.0),
    ]
    # Only city A survives an upstream filter; the divisor still counts A and B.
    filtered = [r for r in all_records if r.city == "A"]
    rows = average_units_by_quarter(filtered, all_records)
    assert [row["time"] for row in rows] == ["2021-Q1", "2021-Q2"]
    assert rows[0]["owned_units"] == pytest.approx(50.0)
    assert rows[0]["rental_units"] == pytest.approx(25.0)
    assert rows[1]["owned_units"] == pytest.approx(55.0)


def test_average_units_single_city_is_not_averaged():
    all_records = [
        _rec("A", 2021, 1, owned_units=100.0, rental_units=50.0),
        _rec("B", 2021, 1, owned_units=300.0),
    ]
    rows = average_units_by_quarter(all_records, all_records, city="B")
    assert rows == [{"time": "2021-Q1", "year": 2021, "quarter": 1, "owned_units": 300.0, "rental_units": 0.0}]


def test_quarterly_series_pivots_cities(sample_records):
    rows = quarterly_series_by_city(sample_records, "hpi")
    assert [row["time"] for row in rows] == ["2020-Q4", "2021-Q1", "2021-Q4", "2022-Q3"]
    q4_2021 = rows[2]
    assert q4_2021["Austin"] == pytest.approx(228.0)
    assert q4_2021["San Francisco"] == pytest.approx(305.7)
    assert "Austin" not in rows[0]


def test_year_end_snapshots_keep_highest_quarter():
    recs = [
        _rec("A", 2021, 4, hpi=4.0),
        _rec("A", 2021, 2, hpi=2.0),
        _rec("A", 2022, 1, hpi=5.0),
        _rec("B", 2021, 3, hpi=9.0),
        HousingRecord(city="B", year=None, quarter=4),
    ]
    out = year_end_snapshots(recs)
    assert [(r.city, r.year, r.quarter) for r in out] == [("B", 2021, 3), ("A", 2021, 4), ("A", 2022, 1)]


def test_empty_inputs():
    assert average_units_by_quarter([], []) == []
    assert quarterly_series_by_city([], "hpi") == []
    assert year_end_snapshots([]) == []


def test_blank_city_is_not_counted_as_a_city():
    all_records = [
        _rec("A", 2021, 1, owned_units=100.0, rental_units=50.0),
        _rec("", 2021, 1, owned_units=900.0, rental_units=900.0),
    ]
    rows = average_units_by_quarter(all_records, all_records)
    assert rows == [{"time": "2021-Q1", "year": 2021, "quarter": 1, "owned_units": 100.0, "rental_units": 50.0}]
    series = quarterly_series_by_city(all_records, "owned_units")
    assert "" not in series[0]
    assert [r.city for r in year_end_snapshots(all_records)] == ["A"]

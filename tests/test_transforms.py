import math
from datetime import date

import pytest

from housing_core.data import HousingRecord
from housing_core.transforms import (
    distinct_cities,
    filter_valid,
    growth_by_city,
    most_recent_by_city,
    percent_change,
)


def _rec(city, d, year, quarter, **metrics):
    return HousingRecord(city=city, date=d, year=year, quarter=quarter, **metrics)


# ---------------- filter_valid ----------------
def test_filter_valid_drops_invalid_and_sorts():
    late = _rec("A", date(2022, 3, 31), 2022, 1, hpi=2.0)
    early = _rec("B", date(2020, 3, 31), 2020, 1, hpi=1.0)
    no_date = _rec("C", None, 2021, 1, hpi=3.0)
    no_value = _rec("D", date(2021, 3, 31), 2021, 1)
    inf_value = _rec("E", date(2021, 3, 31), 2021, 1, hpi=math.inf)

    out = filter_valid([late, no_date, early, no_value, inf_value], ["hpi"])
    assert out == [early, late]


def test_filter_valid_is_stable_for_equal_dates():
    d = date(2021, 6, 30)
    first = _rec("A", d, 2021, 2, hpi=1.0)
    second = _rec("B", d, 2021, 2, hpi=2.0)
    third = _rec("C", d, 2021, 2, hpi=3.0)
    assert filter_valid([first, second, third], ["hpi"]) == [first, second, third]


def test_filter_valid_is_idempotent(sample_records):
    for fields in (["hpi"], ["median_rent", "airbnb_ratio"], [], ["hpi", "unemployment", "airbnb_activity"]):
        once = filter_valid(sample_records, fields)
        assert filter_valid(once, fields) == once


def test_filter_valid_keeps_zero_by_default():
    zero = _rec("A", date(2021, 3, 31), 2021, 1, hpi=0.0)
    assert filter_valid([zero], ["hpi"]) == [zero]
    assert filter_valid([zero], ["hpi"], exclude_zero=True) == []


def test_filter_valid_does_not_mutate_input(sample_records):
    before = list(sample_records)
    filter_valid(sample_records, ["hpi"])
    assert all(a is b for a, b in zip(before, sample_records))


def test_filter_valid_rejects_bad_arguments(sample_records):
    with pytest.raises(TypeError):
        filter_valid(sample_records, None)
    with pytest.raises(TypeError):
        filter_valid(sample_records, "hpi")
    with pytest.raises(ValueError):
        filter_valid(sample_records, ["price"])


# ---------------- most_recent_by_city ----------------
def test_most_recent_by_city():
    austin_old = _rec("Austin", date(2021, 3, 31), 2021, 1)
    austin_new = _rec("Austin", date(2022, 9, 30), 2022, 3)
    sf = _rec("SF", date(2020, 12, 31), 2020, 4)

    latest = most_recent_by_city([austin_new, sf, austin_old])
    assert len(latest) == 2
    assert latest["Austin"] is austin_new
    assert latest["SF"] is sf


def test_most_recent_keeps_first_seen_on_tie():
    a = _rec("A", date(2021, 3, 31), 2021, 1, hpi=1.0)
    b = _rec("A", date(2021, 3, 31), 2021, 1, hpi=2.0)
    assert most_recent_by_city([a, b])["A"] is a


def test_most_recent_falls_back_to_year_quarter():
    q1 = _rec("A", None, 2022, 1)
    q3 = _rec("A", None, 2022, 3)
    y21 = _rec("A", None, 2021, 4)
    assert most_recent_by_city([q1, q3, y21])["A"] is q3


def test_most_recent_empty():
    assert most_recent_by_city([]) == {}


# ---------------- growth_by_city ----------------
def test_growth_zero_baseline_is_zero():
    first = _rec("A", date(2020, 3, 31), 2020, 1, hpi=0.0, airbnb_activity=10.0, median_rent=1000.0)
    last = _rec("A", date(2022, 3, 31), 2022, 1, hpi=200.0, airbnb_activity=15.0, median_rent=1100.0)
    summary = growth_by_city([last, first])["A"]
    assert summary.first is first
    assert summary.last is last
    assert summary.growth["hpi"] == 0
    assert summary.growth["airbnb_activity"] == pytest.approx(50.0)
    assert summary.growth["median_rent"] == pytest.approx(10.0)
    assert summary.period_start == "2020-Q1"
    assert summary.period_end == "2022-Q1"


def test_growth_single_record_city():
    only = _rec("A", date(2020, 3, 31), 2020, 1, hpi=100.0)
    summary = growth_by_city([only], ["hpi"])["A"]
    assert summary.growth == {"hpi": 0.0}


def test_growth_on_sample(sample_records):
    growth = growth_by_city(sample_records)
    assert set(growth) == {"Austin", "San Francisco"}
    austin = growth["Austin"]
    assert austin.period_start == "2021-Q1"
    assert austin.period_end == "2022-Q3"
    assert austin.growth["hpi"] == pytest.approx((262.4 - 210.5) / 210.5 * 100)
    # missing last value counts as zero
    assert growth["San Francisco"].growth["hpi"] == pytest.approx(-100.0)


def test_percent_change_handles_missing_values():
    assert percent_change(math.nan, 10.0) == 0.0
    assert percent_change(50.0, 75.0) == pytest.approx(50.0)
    assert percent_change(-50.0, -25.0) == pytest.approx(-50.0)


def test_mixed_dated_records_are_order_independent():
    dated_no_period = _rec("A", date(2022, 3, 31), None, None, hpi=2.0)
    undated = _rec("A", None, 2021, 1, hpi=1.0)
    for order in ([dated_no_period, undated], [undated, dated_no_period]):
        assert most_recent_by_city(order)["A"] is dated_no_period
        summary = growth_by_city(order, ["hpi"])["A"]
        assert summary.first is undated
        assert summary.last is dated_no_period


def test_blank_city_records_are_skipped():
    blank = _rec("", date(2022, 3, 31), 2022, 1, hpi=5.0)
    named = _rec("A", date(2021, 3, 31), 2021, 1, hpi=1.0)
    assert set(most_recent_by_city([blank, named])) == {"A"}
    assert set(growth_by_city([blank, named], ["hpi"])) == {"A"}
    assert distinct_cities([blank, named, named]) == ["A"]

"""Tests for filtering and sorting."""

import pytest

from filters import FilterCriteria, SortBy, apply, parse_filter_value
from listings import Listing


def ids(listings):
    return [l.id for l in listings]


# ── Scenarios ───────────────────────────────────────────────────────────────

def test_min_rent_scenario(scenario_listings):
    result = apply(scenario_listings, FilterCriteria(min_rent=700))
    assert ids(result) == ["1"]


def test_distance_sort_scenario(scenario_listings):
    result = apply(scenario_listings, FilterCriteria(sort_by=SortBy.DISTANCE))
    assert ids(result) == ["2", "1", "3"]


def test_default_criteria_keeps_everything(listings):
    assert len(apply(listings, FilterCriteria())) == len(listings)


# ── Rent asymmetry ──────────────────────────────────────────────────────────

def test_min_rent_excludes_unknown_rent(listings):
    result = apply(listings, FilterCriteria(min_rent=0))
    assert all(l.rent is not None for l in result)
    assert "b" not in ids(result) and "f" not in ids(result)


def test_max_rent_keeps_unknown_rent(listings):
    result = apply(listings, FilterCriteria(max_rent=100))
    assert set(ids(result)) == {"b", "f"}


def test_rent_bounds_are_inclusive(listings):
    result = apply(listings, FilterCriteria(min_rent=650, max_rent=900))
    assert set(ids(result)) == {"a", "c", "e"}


# ── Other predicates ────────────────────────────────────────────────────────

def test_search_matches_name_or_address_case_insensitive(listings):
    assert ids(apply(listings, FilterCriteria(search="college"))) == ["b", "e"]
    assert ids(apply(listings, FilterCriteria(search="CALDER"))) == ["a"]
    assert apply(listings, FilterCriteria(search="nowhere")) == []


def test_bedrooms_exact_match(listings):
    assert set(ids(apply(listings, FilterCriteria(bedrooms=2)))) == {"a", "e"}


def test_bedrooms_filter_never_matches_unknown(listings):
    for n in range(6):
        assert "b" not in ids(apply(listings, FilterCriteria(bedrooms=n)))


def test_max_distance_excludes_unknown(listings):
    result = apply(listings, FilterCriteria(max_distance=1.5))
    assert set(ids(result)) == {"a", "c", "f"}


def test_filters_combine(listings):
    criteria = FilterCriteria(search="ave", max_rent=1000, max_distance=1.0)
    assert ids(apply(listings, criteria)) == ["c"]


# ── Sorting ─────────────────────────────────────────────────────────────────

def test_distance_sort_nulls_last_and_stable(listings):
    result = apply(listings, FilterCriteria(sort_by=SortBy.DISTANCE))
    # a and c tie at 0.4; b and e have no distance
    assert ids(result) == ["a", "c", "f", "d", "b", "e"]


def test_rent_low_sort(listings):
    result = apply(listings, FilterCriteria(sort_by=SortBy.RENT_LOW))
    assert ids(result) == ["c", "e", "a", "d", "b", "f"]


def test_rent_high_sort(listings):
    result = apply(listings, FilterCriteria(sort_by=SortBy.RENT_HIGH))
    assert ids(result) == ["d", "a", "c", "e", "b", "f"]


def test_rent_orders_are_reverses_with_nulls_at_tail():
    batch = [
        Listing(id="p", rent=700),
        Listing(id="q"),
        Listing(id="r", rent=1100),
        Listing(id="s", rent=450),
        Listing(id="t"),
    ]
    low = apply(batch, FilterCriteria(sort_by=SortBy.RENT_LOW))
    high = apply(batch, FilterCriteria(sort_by=SortBy.RENT_HIGH))
    assert ids(low[:3]) == list(reversed(ids(high[:3])))
    assert ids(low[3:]) == ids(high[3:]) == ["q", "t"]


def test_sort_by_accepts_plain_string(scenario_listings):
    result = apply(scenario_listings, FilterCriteria(sort_by="rent-high"))
    assert ids(result) == ["1", "3", "2"]


@pytest.mark.parametrize("sort_by", list(SortBy))
def test_apply_is_idempotent(listings, sort_by):
    criteria = FilterCriteria(search="e", max_rent=1000, sort_by=sort_by)
    once = apply(listings, criteria)
    assert apply(once, criteria) == once


@pytest.mark.parametrize("sort_by", list(SortBy))
def test_repeated_calls_are_stable(listings, sort_by):
    criteria = FilterCriteria(sort_by=sort_by)
    first = apply(listings, criteria)
    for _ in range(5):
        assert apply(listings, criteria) == first


def test_apply_does_not_mutate_input(listings):
    before = list(listings)
    apply(listings, FilterCriteria(sort_by=SortBy.RENT_HIGH, min_rent=500))
    assert listings == before


# ── Form value parsing ──────────────────────────────────────────────────────

def test_parse_filter_value_numbers():
    assert parse_filter_value("min_rent", "700") == 700
    assert parse_filter_value("max_rent", "999.9") == 999
    assert parse_filter_value("bedrooms", "2") == 2
    assert parse_filter_value("max_distance", "1.5") == 1.5


def test_parse_filter_value_reads_leading_number():
    assert parse_filter_value("min_rent", "12abc") == 12
    assert parse_filter_value("min_rent", "1e3") == 1
    assert parse_filter_value("bedrooms", " 3 beds") == 3
    assert parse_filter_value("max_rent", "$900") is None
    assert parse_filter_value("max_distance", "1.5mi") == 1.5
    assert parse_filter_value("max_distance", ".5") == 0.5
    assert parse_filter_value("max_distance", "2e-1") == 0.2
    assert parse_filter_value("max_distance", "1e999") is None


def test_parse_filter_value_blank_or_garbage_clears():
    assert parse_filter_value("min_rent", "") is None
    assert parse_filter_value("min_rent", "   ") is None
    assert parse_filter_value("bedrooms", "two") is None
    assert parse_filter_value("max_distance", "nan") is None
    assert parse_filter_value("max_rent", None) is None


def test_parse_filter_value_search_and_sort():
    assert parse_filter_value("search", "Beaver") == "Beaver"
    assert parse_filter_value("search", None) == ""
    assert parse_filter_value("sort_by", "rent-low") is SortBy.RENT_LOW
    with pytest.raises(ValueError):
        parse_filter_value("sort_by", "price")


def test_parse_filter_value_unknown_field():
    with pytest.raises(KeyError):
        parse_filter_value("pets", "yes")

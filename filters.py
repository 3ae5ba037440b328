"""
Filtering and ordering of normalized listings.

`apply` is a pure function of (listings, criteria): it never mutates its
inputs and gives the same output for the same input, so it is safe to
re-run on every criteria or data change.
"""

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from listings import Listing

logger = logging.getLogger(__name__)


class SortBy(str, Enum):
    DISTANCE = "distance"
    RENT_LOW = "rent-low"
    RENT_HIGH = "rent-high"


@dataclass
class FilterCriteria:
    """What the user is looking for. Unset fields don't filter."""
    search: str = ""
    min_rent: Optional[float] = None
    max_rent: Optional[float] = None
    bedrooms: Optional[int] = None
    max_distance: Optional[float] = None
    sort_by: SortBy = SortBy.DISTANCE


_LEADING_INT = re.compile(r"\s*([+-]?\d+)", re.ASCII)
_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", re.ASCII)


def _leading_int(raw: Any) -> int:
    """Integer prefix of the text, so "12abc" is 12 and "1e3" is 1."""
    m = _LEADING_INT.match(str(raw))
    if not m:
        raise ValueError(f"no integer in {raw!r}")
    return int(m.group(1))


def _leading_float(raw: Any) -> float:
    m = _LEADING_FLOAT.match(str(raw))
    if not m:
        raise ValueError(f"no number in {raw!r}")
    value = float(m.group(1))
    if not math.isfinite(value):
        raise ValueError(f"non-finite value {value}")
    return value


# UI field name -> parser for its raw text value
_FIELD_PARSERS = {
    "min_rent": _leading_int,
    "max_rent": _leading_int,
    "bedrooms": _leading_int,
    "max_distance": _leading_float,
}


def parse_filter_value(name: str, raw: Any) -> Any:
    """
    Convert a raw form value into the typed value for criteria field `name`.

    Blank input clears the field; numeric input that doesn't parse also
    clears it. Rent and bedroom values are truncated to integers.
    """
    if name == "search":
        return "" if raw is None else str(raw)
    if name == "sort_by":
        return SortBy(raw)
    if name not in _FIELD_PARSERS:
        raise KeyError(name)

    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return None
    try:
        return _FIELD_PARSERS[name](raw)
    except (TypeError, ValueError, OverflowError):
        logger.debug(f"Ignoring unparseable {name} value {raw!r}")
        return None


def apply(listings: Iterable[Listing], criteria: FilterCriteria) -> list[Listing]:
    """Return the listings that pass `criteria`, ordered by `criteria.sort_by`."""
    kept = [listing for listing in listings if matches(listing, criteria)]
    # sorted() is stable: equal keys keep their fetch order
    return sorted(kept, key=_sort_key(SortBy(criteria.sort_by)))


def matches(listing: Listing, criteria: FilterCriteria) -> bool:
    if criteria.search:
        q = criteria.search.lower()
        if q not in listing.name.lower() and q not in listing.address.lower():
            return False

    # Unknown rent never clears a floor but always fits under a ceiling
    if criteria.min_rent is not None:
        if listing.rent is None or listing.rent < criteria.min_rent:
            return False
    if criteria.max_rent is not None:
        if listing.rent is not None and listing.rent > criteria.max_rent:
            return False

    if criteria.bedrooms is not None and listing.bedrooms != criteria.bedrooms:
        return False

    if criteria.max_distance is not None:
        if listing.distance is None or listing.distance > criteria.max_distance:
            return False

    return True


def _sort_key(sort_by: SortBy):
    # (is_null, value): nulls last in every direction
    if sort_by is SortBy.DISTANCE:
        return lambda l: (l.distance is None, l.distance or 0)
    if sort_by is SortBy.RENT_LOW:
        return lambda l: (l.rent is None, l.rent or 0)
    return lambda l: (l.rent is None, -(l.rent or 0))

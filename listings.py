"""
Canonical listing model and the normalizer that builds it from raw
document-store records.

Raw records are loosely typed: any field may be missing, null, or of the
wrong type. Normalization never fails; a field that is absent or invalid
falls back to its default.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Unnamed Property"
DEFAULT_ADDRESS = "Address not available"
DEFAULT_AVAILABILITY = "Contact for availability"
DEFAULT_IMAGE = "/placeholder-apartment.jpg"

Coordinate = tuple[float, float]


# ── Canonical Listing Model ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Listing:
    """One rental property, normalized."""
    id: str
    name: str = DEFAULT_NAME
    address: str = DEFAULT_ADDRESS
    rent: Optional[float] = None         # None = "contact for price"
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    distance: Optional[float] = None     # Miles from campus
    rating: Optional[float] = None       # 0-5
    reviews: int = 0
    available: str = DEFAULT_AVAILABILITY
    image: str = DEFAULT_IMAGE
    featured: bool = False
    amenities: tuple[str, ...] = field(default_factory=tuple)
    coordinates: Optional[Coordinate] = None

    @property
    def rent_label(self) -> str:
        if self.rent is None:
            return "Contact for price"
        return f"${self.rent:,.0f}/month"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "rent": self.rent,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "distance": self.distance,
            "rating": self.rating,
            "reviews": self.reviews,
            "available": self.available,
            "image": self.image,
            "featured": self.featured,
            "amenities": list(self.amenities),
            "coordinates": list(self.coordinates) if self.coordinates else None,
        }


# ── Normalizer ──────────────────────────────────────────────────────────────

def normalize_all(records: Iterable[dict]) -> list[Listing]:
    """Normalize every raw record, keeping the order they arrived in."""
    return [normalize_listing(record) for record in records]


def normalize_listing(raw: Any) -> Listing:
    if not isinstance(raw, dict):
        logger.debug(f"Non-mapping record {raw!r}; using defaults")
        raw = {}

    listing_id = raw.get("id")
    if listing_id is None or listing_id == "":
        listing_id = uuid.uuid4().hex
        logger.debug(f"Record without id; assigned {listing_id}")

    return Listing(
        id=str(listing_id),
        name=_text(raw.get("name"), DEFAULT_NAME),
        address=_text(raw.get("address"), DEFAULT_ADDRESS),
        rent=_number(raw.get("rent")),
        bedrooms=_number(raw.get("bedrooms")),
        bathrooms=_number(raw.get("bathrooms")),
        distance=_number(raw.get("distance")),
        rating=_rating(raw.get("rating")),
        reviews=_count(raw.get("reviews")),
        available=_text(raw.get("available"), DEFAULT_AVAILABILITY),
        image=_text(raw.get("image"), DEFAULT_IMAGE),
        featured=raw.get("featured") is True,
        amenities=_amenities(raw.get("amenities")),
        coordinates=parse_coordinates(raw.get("coordinates")),
    )


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _number(value: Any) -> Optional[float]:
    """Non-negative finite number, or None. Integral values come back as int."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(value)
    except OverflowError:
        return None
    if not finite or value < 0:
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _rating(value: Any) -> Optional[float]:
    number = _number(value)
    if number is None or number > 5:
        return None
    return number


def _count(value: Any) -> int:
    number = _number(value)
    if number is None or number != int(number):
        return 0
    return int(number)


def _amenities(value: Any) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(a) for a in value if a is not None)


def parse_coordinates(value: Any) -> Optional[Coordinate]:
    """
    Accepts {"lat", "lng"}, {"latitude", "longitude"} (Firestore geopoints)
    or a two-element [lat, lng] sequence.
    """
    if isinstance(value, dict):
        lat = value.get("lat", value.get("latitude"))
        lng = value.get("lng", value.get("longitude"))
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        lat, lng = value
    else:
        return None

    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError, OverflowError):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return (lat, lng)

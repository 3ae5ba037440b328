"""
Keeps map markers in step with the filtered listing sequence.

The synchronizer is the only writer of the marker registry and the map
viewport. On every change it tears down all markers and rebuilds them from
the new sequence; marker counts are small enough that diffing isn't worth
it. It also owns the selected/hovered registers, which are cleared when
their listing drops out of the sequence.
"""

import hashlib
import logging
import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from config import MapSettings
from listings import Coordinate, Listing

logger = logging.getLogger(__name__)

Handler = Callable[[], None]

FEATURED_COLOR = "#eab308"
STANDARD_COLOR = "#1d4ed8"


class MapInitFailure(Exception):
    """The underlying map library couldn't be set up."""


# ── Map Boundary ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Bounds:
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def around(cls, points: Sequence[Coordinate]) -> "Bounds":
        lats = [p[0] for p in points]
        lngs = [p[1] for p in points]
        return cls(min(lats), min(lngs), max(lats), max(lngs))

    def contains(self, point: Coordinate) -> bool:
        return self.south <= point[0] <= self.north and self.west <= point[1] <= self.east


@dataclass(frozen=True)
class MarkerStyle:
    """What a marker looks like and what its popup says."""
    label: str
    color: str
    popup_title: str = ""
    popup_lines: tuple[str, ...] = ()
    css_class: str = "apartment-marker"
    listing_id: str = ""


class MapBackend(ABC):
    """The handful of map operations the synchronizer needs."""

    @abstractmethod
    def initialize(self, center: Coordinate, zoom: int, on_click: Optional[Handler] = None) -> None:
        """Create the map. Raises MapInitFailure if the map can't be built."""
        ...

    @abstractmethod
    def add_marker(
        self,
        coordinate: Coordinate,
        style: MarkerStyle,
        on_click: Optional[Handler] = None,
        on_hover: Optional[Handler] = None,
    ) -> Any:
        """Attach a marker and return an opaque handle for it."""
        ...

    @abstractmethod
    def remove_marker(self, handle: Any) -> None:
        ...

    @abstractmethod
    def fit_bounds(self, bounds: Bounds, padding: tuple) -> None:
        ...

    @abstractmethod
    def set_view(self, center: Coordinate, zoom: int) -> None:
        ...

    @abstractmethod
    def open_popup(self, handle: Any) -> None:
        ...

    @abstractmethod
    def close_popup(self) -> None:
        ...

    def remove(self) -> None:
        """Release the map. Optional."""


# ── Marker Registry & Selection ─────────────────────────────────────────────

@dataclass
class PlacedMarker:
    handle: Any
    position: Coordinate


@dataclass
class SelectionState:
    """At most one selected listing (detail panel) and one hovered (preview)."""
    selected: Optional[Listing] = None
    hovered: Optional[Listing] = None

    @property
    def hover_panel_visible(self) -> bool:
        # Selection hides the preview panel but hover is still tracked
        return self.hovered is not None and self.selected is None


def synthesize_coordinate(listing: Listing, settings: MapSettings, rng: random.Random) -> Coordinate:
    """
    Place a listing with no coordinates on a circle around the reference
    point, `distance` miles out at a bearing drawn from `rng`.
    """
    angle = rng.random() * math.pi * 2
    miles = listing.distance if listing.distance is not None else settings.default_distance
    ref_lat, ref_lng = settings.reference_point
    lat = ref_lat + miles * settings.lat_degrees_per_mile * math.cos(angle)
    lng = ref_lng + miles * settings.lng_degrees_per_mile * math.sin(angle)
    return (lat, lng)


def _seeded_rng(listing_id: str) -> random.Random:
    digest = hashlib.sha256(listing_id.encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))


def marker_style(listing: Listing) -> MarkerStyle:
    rent = f"${listing.rent:,.0f}/month" if listing.rent else "$N/A/month"
    label = listing.bedrooms if listing.bedrooms is not None else "?"
    return MarkerStyle(
        label=str(label),
        color=FEATURED_COLOR if listing.featured else STANDARD_COLOR,
        popup_title=listing.name,
        popup_lines=(listing.address, rent),
        listing_id=listing.id,
    )


# ── Synchronizer ────────────────────────────────────────────────────────────

class MarkerSynchronizer:

    def __init__(
        self,
        backend: MapBackend,
        settings: MapSettings,
        selection: Optional[SelectionState] = None,
        rng: Optional[random.Random] = None,
    ):
        self.backend = backend
        self.settings = settings
        self.selection = selection if selection is not None else SelectionState()
        self.markers: dict[str, PlacedMarker] = {}
        self.loading = True
        self._ready = False
        self._rng = rng or random.Random()
        self._filtered: list[Listing] = []

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> bool:
        """
        Build the map around the reference point. On failure the map pane
        stays loading for good; the rest of the view is unaffected.
        """
        if self._ready:
            return True
        try:
            self.backend.initialize(
                self.settings.reference_point,
                self.settings.initial_zoom,
                on_click=self.leave,
            )
            self.backend.add_marker(
                self.settings.reference_point,
                MarkerStyle(
                    label="PSU",
                    color="#3b82f6",
                    popup_title=self.settings.reference_label,
                    css_class="reference-marker",
                ),
            )
        except MapInitFailure as e:
            logger.error(f"Error initializing map: {e}")
            return False

        self._ready = True
        self.loading = False
        logger.info("Map initialized")
        if self._filtered:
            self._rebuild()
        return True

    def sync(self, filtered: Sequence[Listing]) -> None:
        """Replace every marker with one per listing in `filtered`."""
        self._filtered = list(filtered)
        self._reconcile_selection()
        if self._ready:
            self._rebuild()

    def teardown(self) -> None:
        self._clear_markers()
        if self._ready:
            self.backend.remove()
        self._ready = False
        self.loading = True

    # ── Pointer events ──────────────────────────────────────────────────────

    def click(self, listing_id: str) -> None:
        listing = self._find(listing_id)
        if listing is None:
            return
        self.selection.selected = listing
        self.selection.hovered = None

    def hover(self, listing_id: str) -> None:
        listing = self._find(listing_id)
        if listing is not None:
            self.selection.hovered = listing

    def leave(self) -> None:
        self.selection.hovered = None

    close_hover = leave

    def close_detail(self) -> None:
        self.selection.selected = None

    def show_details(self, listing_id: str) -> None:
        """Popup "View Details" button: open the detail panel, close the popup."""
        listing = self._find(listing_id)
        if listing is None:
            return
        self.selection.selected = listing
        if self._ready:
            self.backend.close_popup()

    def view_hovered_details(self) -> None:
        if self.selection.hovered is not None:
            self.selection.selected = self.selection.hovered

    # ── Viewport ────────────────────────────────────────────────────────────

    def center_on(self, listing_id: str) -> bool:
        """Zoom to a listing and open its popup. Returns False if it isn't placed."""
        if not self._ready:
            return False
        listing = self._find(listing_id)
        placed = self.markers.get(listing_id)
        coords = (listing.coordinates if listing else None) or (placed.position if placed else None)
        if coords is None:
            return False
        self.backend.set_view(coords, self.settings.detail_zoom)
        if placed is not None:
            self.backend.open_popup(placed.handle)
        return True

    def reset_view(self) -> None:
        if self._ready:
            self.backend.set_view(self.settings.reference_point, self.settings.initial_zoom)

    # ── Internals ───────────────────────────────────────────────────────────

    def _rebuild(self) -> None:
        self._clear_markers()
        logger.debug(f"Updating markers, filtered apartments: {len(self._filtered)}")

        for listing in self._filtered:
            position = listing.coordinates or self._placement_for(listing)
            handle = self.backend.add_marker(
                position,
                marker_style(listing),
                on_click=lambda lid=listing.id: self.click(lid),
                on_hover=lambda lid=listing.id: self.hover(lid),
            )
            self.markers[listing.id] = PlacedMarker(handle=handle, position=position)

        if self._filtered:
            points = [self.settings.reference_point]
            points.extend(m.position for m in self.markers.values())
            self.backend.fit_bounds(Bounds.around(points), self.settings.fit_padding)

    def _clear_markers(self) -> None:
        for placed in self.markers.values():
            self.backend.remove_marker(placed.handle)
        self.markers.clear()

    def _placement_for(self, listing: Listing) -> Coordinate:
        if self.settings.placement == "random":
            rng = self._rng
        else:
            rng = _seeded_rng(listing.id)
        return synthesize_coordinate(listing, self.settings, rng)

    def _reconcile_selection(self) -> None:
        current = {listing.id: listing for listing in self._filtered}
        selected, hovered = self.selection.selected, self.selection.hovered
        self.selection.selected = current.get(selected.id) if selected else None
        self.selection.hovered = current.get(hovered.id) if hovered else None

    def _find(self, listing_id: str) -> Optional[Listing]:
        for listing in self._filtered:
            if listing.id == listing_id:
                return listing
        return None

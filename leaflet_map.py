"""
In-memory Leaflet map.

Holds the map state (view, markers, open popup) the way a Leaflet map
instance would, and serializes it so the dashboard page can replay it with
leaflet.js. Marker handlers are kept so pointer events can be dispatched
from Python.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Optional

from config import MapSettings
from listings import Coordinate
from markers import Bounds, Handler, MapBackend, MapInitFailure, MarkerStyle

logger = logging.getLogger(__name__)


@dataclass
class _Layer:
    coordinate: Coordinate
    style: MarkerStyle
    on_click: Optional[Handler]
    on_hover: Optional[Handler]


class LeafletMap(MapBackend):

    def __init__(self, settings: MapSettings):
        self.settings = settings
        self.center: Optional[Coordinate] = None
        self.zoom: Optional[int] = None
        self.bounds: Optional[Bounds] = None
        self.padding: Optional[tuple] = None
        self.popup: Optional[int] = None
        self.layers: dict[int, _Layer] = {}
        self._ids = itertools.count(1)
        self._on_click: Optional[Handler] = None
        self._initialized = False

    def initialize(self, center: Coordinate, zoom: int, on_click: Optional[Handler] = None) -> None:
        if self._initialized:
            raise MapInitFailure("Map container is already initialized")
        if not self.settings.tile_url:
            raise MapInitFailure("No tile layer configured")
        self.center, self.zoom = center, zoom
        self._on_click = on_click
        self._initialized = True
        logger.debug(f"Leaflet map initialized at {center} zoom {zoom}")

    def add_marker(
        self,
        coordinate: Coordinate,
        style: MarkerStyle,
        on_click: Optional[Handler] = None,
        on_hover: Optional[Handler] = None,
    ) -> int:
        handle = next(self._ids)
        self.layers[handle] = _Layer(coordinate, style, on_click, on_hover)
        return handle

    def remove_marker(self, handle: Any) -> None:
        self.layers.pop(handle, None)
        if self.popup == handle:
            self.popup = None

    def fit_bounds(self, bounds: Bounds, padding: tuple) -> None:
        self.bounds, self.padding = bounds, padding
        self.center = (
            (bounds.south + bounds.north) / 2,
            (bounds.west + bounds.east) / 2,
        )

    def set_view(self, center: Coordinate, zoom: int) -> None:
        self.center, self.zoom = center, zoom
        self.bounds = None

    def open_popup(self, handle: Any) -> None:
        if handle in self.layers:
            self.popup = handle

    def close_popup(self) -> None:
        self.popup = None

    def remove(self) -> None:
        self.layers.clear()
        self.popup = None
        self._initialized = False

    # ── Event dispatch ──────────────────────────────────────────────────────

    def click(self, handle: Optional[int] = None) -> None:
        """Click a marker, or the bare map when `handle` is None."""
        if handle is None:
            if self._on_click:
                self._on_click()
            return
        layer = self.layers[handle]
        self.popup = handle
        if layer.on_click:
            layer.on_click()

    def mouseover(self, handle: int) -> None:
        layer = self.layers[handle]
        if layer.on_hover:
            layer.on_hover()

    # ── Serialization ───────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "center": list(self.center) if self.center else None,
            "zoom": self.zoom,
            "bounds": (
                [[self.bounds.south, self.bounds.west], [self.bounds.north, self.bounds.east]]
                if self.bounds else None
            ),
            "padding": list(self.padding) if self.padding else None,
            "tile_url": self.settings.tile_url,
            "attribution": self.settings.attribution,
            "max_zoom": self.settings.max_zoom,
            "markers": [
                {
                    "handle": handle,
                    "listing_id": layer.style.listing_id,
                    "lat": layer.coordinate[0],
                    "lng": layer.coordinate[1],
                    "label": layer.style.label,
                    "color": layer.style.color,
                    "css_class": layer.style.css_class,
                    "popup_title": layer.style.popup_title,
                    "popup_lines": list(layer.style.popup_lines),
                }
                for handle, layer in self.layers.items()
            ],
        }

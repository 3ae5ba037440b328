"""
Configuration for the Campus Apartment Finder.
Fill in your Firebase project details or set them via environment variables.

Data source:
  - Cloud Firestore REST API: https://firebase.google.com/docs/firestore/use-rest-api
"""

import os
from dataclasses import dataclass, field


@dataclass
class FirebaseSettings:
    """Firestore project - set via environment variables or fill in directly."""
    project_id: str = os.getenv("FIREBASE_PROJECT_ID", "")
    api_key: str = os.getenv("FIREBASE_API_KEY", "")
    collection: str = os.getenv("FIREBASE_COLLECTION", "testApartments")
    page_size: int = 300
    timeout: int = 30


@dataclass
class MapSettings:
    """
    Map anchor and marker placement.
    The reference point is the campus itself (Penn State University Park).
    """
    reference_point: tuple = (40.7982, -77.8599)
    reference_label: str = "Penn State University Park"
    initial_zoom: int = 14
    detail_zoom: int = 16
    fit_padding: tuple = (50, 50)

    # Synthetic placement for listings without coordinates
    lat_degrees_per_mile: float = 0.014
    lng_degrees_per_mile: float = 0.018
    default_distance: float = 1.0     # Miles, when distance is unknown
    placement: str = "seeded"         # "seeded" (stable per id) | "random"

    tile_url: str = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    attribution: str = (
        '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
    )
    max_zoom: int = 19


@dataclass
class AppConfig:
    """Top-level configuration."""
    firebase: FirebaseSettings = field(default_factory=FirebaseSettings)
    map: MapSettings = field(default_factory=MapSettings)

    # Output
    output_dir: str = os.path.expanduser("~/apartment-finder/output")
    dashboard_filename: str = "dashboard.html"
    data_filename: str = "listings.json"

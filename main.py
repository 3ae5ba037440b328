#!/usr/bin/env python3
"""
Campus Apartment Finder — Main Entry Point

Loads listings from Firestore, applies filters, lays out map markers, and
writes a list + map dashboard.

Usage:
    python main.py                          # Fetch from Firestore
    python main.py --demo                   # Sample data (no Firebase project needed)
    python main.py --demo --min-rent 700 --sort rent-low --open

Environment Variables:
    FIREBASE_PROJECT_ID    — Firestore project id
    FIREBASE_API_KEY       — Web API key (optional for public collections)
    FIREBASE_COLLECTION    — Collection to read (default: testApartments)
"""

import argparse
import asyncio
import logging
import os
import random
import sys
import webbrowser

from config import AppConfig
from controller import ListingController
from dashboard_generator import generate_dashboard
from fetchers import BaseSource, FirestoreSource, StaticSource
from filters import SortBy
from leaflet_map import LeafletMap
from markers import MarkerSynchronizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def generate_demo_data() -> list[dict]:
    """Realistic raw records around State College, with the gaps real data has."""
    buildings = [
        ("The Retreat",         "2100 N Atherton St"),
        ("Calder Commons",      "310 E Calder Way"),
        ("The Rise",            "532 E College Ave"),
        ("Beaver Hill",         "340 E Beaver Ave"),
        ("Park Crest Terrace",  "1000 Plaza Dr"),
        ("The Meridian",        "445 Waupelani Dr"),
        ("Here State College",  "131 S Garner St"),
        ("Nittany Garden",      "820 W College Ave"),
        ("Vairo Village",       "1021 W Aaron Dr"),
        ("University Terrace",  "519 E Beaver Ave"),
        ("Pugh Street Commons", "246 S Pugh St"),
        ("The Legacy",          "1800 Mount Nittany Expy"),
    ]
    amenities_pool = [
        "Wifi", "Gym", "Pool", "Study Lounge", "Parking", "In-Unit Laundry",
        "Furnished", "Pet Friendly", "Bus Route", "24/7 Security",
    ]
    months = ["May 2026", "August 2026", "January 2027"]

    records = []
    for i, (name, street) in enumerate(buildings):
        record = {
            "id": f"demo_{i:02d}",
            "name": name,
            "address": f"{street}, State College, PA 16801",
            "rent": random.choice([None, random.randint(550, 1600)]),
            "bedrooms": random.choice([None, 1, 2, 3, 4]),
            "bathrooms": random.choice([1, 1.5, 2, 2.5]),
            "distance": random.choice([None, round(random.uniform(0.1, 3.0), 1)]),
            "rating": round(random.uniform(2.5, 5.0), 1),
            "reviews": random.randint(0, 250),
            "available": random.choice(months),
            "featured": random.random() > 0.75,
            "amenities": random.sample(amenities_pool, random.randint(0, 5)),
        }
        if random.random() > 0.5:
            record["coordinates"] = {
                "lat": 40.7982 + random.uniform(-0.02, 0.02),
                "lng": -77.8599 + random.uniform(-0.025, 0.025),
            }
        records.append(record)

    # A bare record: every field falls back to its default
    records.append({"id": "demo_bare"})
    return records


async def run(controller: ListingController, args: argparse.Namespace) -> None:
    await controller.mount()

    for name in ("search", "min_rent", "max_rent", "bedrooms", "max_distance"):
        value = getattr(args, name)
        if value is not None:
            controller.update_filter(name, value)
    controller.set_sort(args.sort)
    controller.set_tab(args.tab)


def main():
    parser = argparse.ArgumentParser(description="Campus Apartment Finder")
    parser.add_argument("--demo", action="store_true", help="Use sample data (no Firebase needed)")
    parser.add_argument("--collection", help="Firestore collection to read")
    parser.add_argument("--search", help="Match name or address (case-insensitive)")
    parser.add_argument("--min-rent", dest="min_rent", help="Minimum monthly rent")
    parser.add_argument("--max-rent", dest="max_rent", help="Maximum monthly rent")
    parser.add_argument("--bedrooms", help="Exact number of bedrooms")
    parser.add_argument("--max-distance", dest="max_distance", help="Maximum miles to campus")
    parser.add_argument(
        "--sort", default=SortBy.DISTANCE.value,
        choices=[s.value for s in SortBy], help="Sort order",
    )
    parser.add_argument("--tab", default="list", choices=["list", "map"], help="Tab to open on")
    parser.add_argument("--open", action="store_true", help="Open dashboard in browser after generating")
    args = parser.parse_args()

    config = AppConfig()
    if args.collection:
        config.firebase.collection = args.collection

    source: BaseSource
    if args.demo:
        logger.info("Running in DEMO mode with sample data...")
        source = StaticSource(generate_demo_data())
    else:
        if not config.firebase.project_id:
            logger.error(
                "No Firebase project configured!\n"
                "Set environment variables:\n"
                "  export FIREBASE_PROJECT_ID='your-project'\n"
                "  export FIREBASE_API_KEY='your-key'\n"
                "\nOr run with --demo to use sample data."
            )
            sys.exit(1)
        source = FirestoreSource(config.firebase)

    leaflet_map = LeafletMap(config.map)
    synchronizer = MarkerSynchronizer(leaflet_map, config.map)
    controller = ListingController(source, config.firebase.collection, synchronizer)

    asyncio.run(run(controller, args))

    logger.info(controller.summary)
    html_path = generate_dashboard(controller, leaflet_map, config)
    logger.info(f"Dashboard saved to: {html_path}")
    logger.info(f"JSON data saved to: {os.path.join(config.output_dir, config.data_filename)}")

    if args.open:
        webbrowser.open(f"file://{os.path.abspath(html_path)}")

    print(f"\n✅ Dashboard ready: {html_path}")
    return html_path


if __name__ == "__main__":
    main()

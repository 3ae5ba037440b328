"""
Generates a self-contained HTML page (list + map tabs) from the
controller's current state. The page is a single file with all CSS/JS
inline; Leaflet is loaded from unpkg.
"""

import html
import json
import logging
import math
import os
from datetime import datetime, timezone
from typing import Optional

from config import AppConfig
from controller import ListingController
from leaflet_map import LeafletMap
from listings import Listing

logger = logging.getLogger(__name__)


def rating_stars(rating: Optional[float]) -> tuple[int, bool, int]:
    """(full, half, empty) star counts for a 0-5 rating. No rating, no stars."""
    if not rating:
        return 0, False, 0
    full = math.floor(rating)
    half = rating % 1 >= 0.5
    empty = 5 - math.ceil(rating)
    return full, half, empty


def _stars_text(rating: Optional[float]) -> str:
    full, half, empty = rating_stars(rating)
    return "★" * full + ("½" if half else "") + "☆" * empty


def _script_json(value) -> str:
    # Keep "</script>" inside data from closing the inline script
    return json.dumps(value).replace("</", "<\\/")


def _listing_json(listing: Listing, selected_id: Optional[str]) -> dict:
    data = listing.to_dict()
    data["rent_label"] = listing.rent_label
    data["stars"] = _stars_text(listing.rating)
    data["selected"] = listing.id == selected_id
    return data


def generate_dashboard(
    controller: ListingController,
    leaflet_map: Optional[LeafletMap],
    config: AppConfig,
) -> str:
    """Write the HTML dashboard and a JSON snapshot; return the HTML path."""

    os.makedirs(config.output_dir, exist_ok=True)

    selected = controller.selection.selected
    listings_json = [
        _listing_json(listing, selected.id if selected else None)
        for listing in controller.filtered
    ]
    map_ready = controller.synchronizer is not None and controller.synchronizer.ready
    map_json = leaflet_map.to_dict() if (leaflet_map is not None and map_ready) else None

    criteria = controller.criteria
    json_path = os.path.join(config.output_dir, config.data_filename)
    with open(json_path, "w") as f:
        json.dump({
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "collection": controller.collection,
            "criteria": {
                "search": criteria.search,
                "min_rent": criteria.min_rent,
                "max_rent": criteria.max_rent,
                "bedrooms": criteria.bedrooms,
                "max_distance": criteria.max_distance,
                "sort_by": criteria.sort_by.value,
            },
            "total_listings": len(controller.listings),
            "listings": listings_json,
            "map": map_json,
        }, f, indent=2)

    now = datetime.now().strftime("%B %d, %Y at %I:%M %p")
    page = _build_html(
        _script_json(listings_json),
        _script_json(map_json),
        controller.summary,
        controller.active_tab,
        now,
        config,
    )

    html_path = os.path.join(config.output_dir, config.dashboard_filename)
    with open(html_path, "w", encoding="utf-8") as f:
        f.write(page)

    logger.info(f"Wrote {len(listings_json)} listings to {html_path}")
    return html_path


def _build_html(
    data_json: str,
    map_json: str,
    summary: str,
    active_tab: str,
    generated_at: str,
    config: AppConfig,
) -> str:
    title = html.escape(config.map.reference_label)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title} Apartment Finder</title>
<link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css">
<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
<style>
  :root {{
    --bg:      #f8fafc;
    --surface: #ffffff;
    --border:  #e2e8f0;
    --text:    #0f172a;
    --text2:   #64748b;
    --accent:  #1e3a8a;
    --gold:    #eab308;
    --radius:  10px;
  }}
  * {{ margin:0; padding:0; box-sizing:border-box; }}
  body {{ font-family: system-ui, sans-serif; background: var(--bg); color: var(--text); }}

  .header {{ background: var(--accent); color: #fff; padding: 1.5rem 2rem; }}
  .header h1 {{ font-size: 1.5rem; }}
  .header .meta {{ font-size: 0.8rem; opacity: 0.8; }}

  .tabs {{ display: flex; gap: 0.5rem; padding: 1rem 2rem; }}
  .tabs button {{
    padding: 0.45rem 1rem; border: 1px solid var(--border); border-radius: 6px;
    background: var(--surface); cursor: pointer;
  }}
  .tabs button.active {{ background: var(--accent); color: #fff; border-color: var(--accent); }}
  .summary {{ padding: 0 2rem 1rem; color: var(--text2); font-size: 0.9rem; }}

  .grid {{
    padding: 0 2rem 3rem; display: grid; gap: 1rem;
    grid-template-columns: repeat(auto-fill, minmax(320px, 1fr));
  }}
  .card {{
    background: var(--surface); border: 1px solid var(--border);
    border-radius: var(--radius); padding: 1rem 1.25rem;
  }}
  .card.featured {{ border-color: var(--gold); }}
  .card.selected {{ box-shadow: 0 0 0 3px var(--accent); }}
  .card-title {{ font-weight: 600; }}
  .card-address, .card-meta {{ font-size: 0.8rem; color: var(--text2); }}
  .card-price {{ font-weight: 700; color: var(--accent); margin: 0.4rem 0; }}
  .stars {{ color: var(--gold); }}
  .amenity {{
    display: inline-block; font-size: 0.7rem; padding: 0.1rem 0.45rem;
    margin: 0.2rem 0.2rem 0 0; border-radius: 4px; background: var(--bg);
  }}
  .empty-state {{ grid-column: 1 / -1; text-align: center; padding: 4rem; color: var(--text2); }}

  #map-pane {{ padding: 0 2rem 3rem; }}
  #map-container {{ height: 600px; border-radius: var(--radius); }}
  .map-loading {{ height: 600px; display: flex; align-items: center; justify-content: center; color: var(--text2); }}
  .apartment-marker div, .reference-marker div {{
    border-radius: 50%; color: #fff; font-weight: 700; display: flex;
    align-items: center; justify-content: center; border: 2px solid #fff;
  }}
  .hidden {{ display: none; }}
</style>
</head>
<body>

<div class="header">
  <h1>{title} Apartment Finder</h1>
  <div class="meta">Updated {generated_at}</div>
</div>

<div class="tabs" id="tabs">
  <button data-tab="list">List View</button>
  <button data-tab="map">Map View</button>
</div>
<div class="summary">{html.escape(summary)}</div>

<div class="grid" id="list-pane"></div>
<div id="map-pane"><div id="map-container"></div></div>

<script>
const DATA = {data_json};
const MAP = {map_json};
let activeTab = '{active_tab}';

function esc(s) {{
  return String(s).replace(/[&<>"']/g, c => ({{'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;',"'":'&#39;'}}[c]));
}}

// ── List ───────────────────────────────────
function renderList() {{
  const grid = document.getElementById('list-pane');
  if (DATA.length === 0) {{
    grid.innerHTML = `<div class="empty-state">
      <h2>No apartments match</h2>
      <p>Try clearing your filters.</p>
    </div>`;
    return;
  }}
  grid.innerHTML = DATA.map(l => {{
    const details = [
      l.bedrooms !== null ? l.bedrooms + ' bd' : '? bd',
      l.bathrooms !== null ? l.bathrooms + ' ba' : '? ba',
      l.distance !== null ? l.distance + ' mi to campus' : '',
    ].filter(Boolean).join(' · ');
    const amenities = l.amenities.map(a => `<span class="amenity">${{esc(a)}}</span>`).join('');
    const cls = ['card', l.featured ? 'featured' : '', l.selected ? 'selected' : ''].join(' ');
    return `
      <div class="${{cls}}">
        <div class="card-title">${{esc(l.name)}}</div>
        <div class="card-address">${{esc(l.address)}}</div>
        <div class="card-price">${{esc(l.rent_label)}}</div>
        <div class="card-meta">${{details}}</div>
        <div class="card-meta"><span class="stars">${{l.stars}}</span> ${{l.reviews}} reviews</div>
        <div class="card-meta">${{esc(l.available)}}</div>
        <div>${{amenities}}</div>
      </div>`;
  }}).join('');
}}

// ── Map ────────────────────────────────────
let mapInstance = null;
function renderMap() {{
  const container = document.getElementById('map-container');
  if (!MAP || typeof L === 'undefined') {{
    container.outerHTML = '<div class="map-loading">Loading map...</div>';
    return;
  }}
  mapInstance = L.map('map-container').setView(MAP.center, MAP.zoom);
  L.tileLayer(MAP.tile_url, {{ attribution: MAP.attribution, maxZoom: MAP.max_zoom }}).addTo(mapInstance);

  MAP.markers.forEach(m => {{
    const size = m.css_class === 'reference-marker' ? 64 : 32;
    const icon = L.divIcon({{
      className: m.css_class,
      html: `<div style="background:${{m.color}};width:${{size}}px;height:${{size}}px">${{esc(m.label)}}</div>`,
      iconSize: [size, size],
      iconAnchor: [size / 2, size / 2],
    }});
    const lines = m.popup_lines.map(t => `<div>${{esc(t)}}</div>`).join('');
    L.marker([m.lat, m.lng], {{ icon }}).addTo(mapInstance)
      .bindPopup(`<b>${{esc(m.popup_title)}}</b>${{lines}}`);
  }});

  if (MAP.bounds) {{
    mapInstance.fitBounds(MAP.bounds, {{ padding: MAP.padding }});
  }}
}}

// ── Tabs ───────────────────────────────────
function showTab(tab) {{
  activeTab = tab;
  document.querySelectorAll('#tabs button').forEach(b =>
    b.classList.toggle('active', b.dataset.tab === tab));
  document.getElementById('list-pane').classList.toggle('hidden', tab !== 'list');
  document.getElementById('map-pane').classList.toggle('hidden', tab !== 'map');
  if (tab === 'map' && mapInstance) mapInstance.invalidateSize();
}}

document.getElementById('tabs').addEventListener('click', e => {{
  if (e.target.tagName !== 'BUTTON') return;
  showTab(e.target.dataset.tab);
}});

// ── Init ───────────────────────────────────
renderList();
renderMap();
showTab(activeTab);
</script>
</body>
</html>"""

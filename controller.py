"""
View controller: fetch -> normalize -> filter -> list + map.

Runs on a single asyncio event loop. The only suspending step is the
initial fetch, which runs in the default executor; everything else
(filter edits, clicks, hovers) recomputes synchronously before control
goes back to the loop.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from fetchers import BaseSource, FetchFailure
from filters import FilterCriteria, SortBy, apply, parse_filter_value
from listings import Listing, normalize_all
from markers import MarkerSynchronizer, SelectionState

logger = logging.getLogger(__name__)

TABS = ("list", "map")

Listener = Callable[[list[Listing]], None]


class ListingController:

    def __init__(
        self,
        source: BaseSource,
        collection: str,
        synchronizer: Optional[MarkerSynchronizer] = None,
    ):
        self.source = source
        self.collection = collection
        self.synchronizer = synchronizer
        self.selection = synchronizer.selection if synchronizer else SelectionState()

        self.loading = True
        self.listings: list[Listing] = []
        self.filtered: list[Listing] = []
        self.criteria = FilterCriteria()
        self.active_tab = "list"

        self._listeners: list[Listener] = []
        self._generation = 0
        self._torn_down = False

    # ── Lifecycle ───────────────────────────────────────────────────────────

    async def mount(self) -> None:
        """Fetch and normalize every listing, then leave the loading state."""
        if self.synchronizer is not None:
            self.synchronizer.initialize()
        await self.refresh()

    async def refresh(self) -> None:
        self._generation += 1
        generation = self._generation

        loop = asyncio.get_running_loop()
        try:
            records = await loop.run_in_executor(None, self.source.fetch_all, self.collection)
        except FetchFailure as e:
            logger.error(f"Error fetching apartments: {e}")
            records = []

        if self._torn_down or generation != self._generation:
            logger.info(f"Discarding stale fetch result ({len(records)} records)")
            return

        self.listings = normalize_all(records)
        self.loading = False
        logger.info(f"Loaded {len(self.listings)} listings from '{self.collection}'")
        self._recompute()

    def teardown(self) -> None:
        self._torn_down = True
        self._generation += 1
        if self.synchronizer is not None:
            self.synchronizer.teardown()

    # ── Filters ─────────────────────────────────────────────────────────────

    def update_filter(self, name: str, raw: Any) -> None:
        """Apply one form-field change, e.g. ("min_rent", "700")."""
        setattr(self.criteria, name, parse_filter_value(name, raw))
        self._recompute()

    def set_sort(self, sort_by: str) -> None:
        self.criteria.sort_by = SortBy(sort_by)
        self._recompute()

    def clear_filters(self) -> None:
        self.criteria = FilterCriteria()
        self._recompute()

    # ── View ────────────────────────────────────────────────────────────────

    def set_tab(self, tab: str) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab '{tab}'")
        self.active_tab = tab

    @property
    def summary(self) -> str:
        if self.loading:
            return "Loading apartments..."
        return f"Found {len(self.filtered)} apartments"

    def subscribe(self, listener: Listener) -> None:
        """Register a list renderer; it's called with each new filtered sequence."""
        self._listeners.append(listener)

    def _recompute(self) -> None:
        self.filtered = apply(self.listings, self.criteria)
        # Map first, then list: both see the same finished sequence
        if self.synchronizer is not None:
            self.synchronizer.sync(self.filtered)
        else:
            self._drop_stale_selection()
        for listener in self._listeners:
            listener(self.filtered)

    def _drop_stale_selection(self) -> None:
        ids = {listing.id for listing in self.filtered}
        if self.selection.selected and self.selection.selected.id not in ids:
            self.selection.selected = None
        if self.selection.hovered and self.selection.hovered.id not in ids:
            self.selection.hovered = None

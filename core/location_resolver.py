import logging
import threading
from collections.abc import Callable, Iterable
from config import UNKNOWN_PLACE_NAME
from core.geo_index import GeoIndex
from core.models import Coordinates, Location, LocationDraft
from core.store import TripStore

logger = logging.getLogger(__name__)

Enricher = Callable[[Coordinates], LocationDraft | None]
LocationFactory = Callable[[Coordinates, LocationDraft], Location]


def fallback_draft() -> LocationDraft:
    return LocationDraft(name=UNKNOWN_PLACE_NAME)


class LocationResolver:
    """Decide whether a geotagged point joins an existing location or founds a new one

    resolve_for_trip holds one lock per trip id seen. Locks are kept for the
    resolver's lifetime, so memory grows with the number of distinct trips;
    a long-running process should build a resolver per batch of work.
    """

    def __init__(self, store: TripStore, enrich: Enricher | None = None, geo_index: GeoIndex | None = None):
        self.store = store
        self.enrich = enrich
        self.geo_index = geo_index or GeoIndex()
        self._trip_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for_trip(self, trip_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._trip_locks.setdefault(trip_id, threading.Lock())

    def _safe_enrich(self, point: Coordinates, enrich: Enricher | None) -> LocationDraft:
        """Run enrichment, degrading to the unknown-place draft on any failure"""
        if enrich is None:
            return fallback_draft()
        try:
            draft = enrich(point)
        except Exception as e:
            logger.warning(f"Enrichment failed for {point.lat}, {point.lng}: {e}")
            return fallback_draft()
        if draft is None or not draft.name:
            return fallback_draft()
        return draft

    def resolve(
        self,
        point: Coordinates,
        existing_locations: Iterable[Location],
        enrich: Enricher | None,
        create: LocationFactory,
    ) -> Location:
        """
        Reuse the nearest location within the cluster radius or create one

        Args:
            point: coordinates of the incoming item
            existing_locations: the trip's known locations
            enrich: best-effort lookup of name/address/description for a new place
            create: persists a new location from coordinates and a draft

        Returns:
            Location: the matched location, unchanged, or the single new one
        """
        nearest = self.geo_index.nearest(point, existing_locations)
        if nearest is not None:
            logger.debug(f"Point {point.lat}, {point.lng} joins location {nearest.id}")
            return nearest

        draft = self._safe_enrich(point, enrich)
        return create(point, draft)

    def resolve_for_trip(self, trip_id: str, point: Coordinates) -> Location:
        """Resolve against the stored locations of a trip, serialized per trip"""
        with self._lock_for_trip(trip_id):
            existing = self.store.list_locations(trip_id)
            return self.resolve(
                point,
                existing,
                self.enrich,
                lambda p, draft: self.store.create_location(trip_id, p, draft),
            )

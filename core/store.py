import logging
import uuid
from config import DATA_DIR, STORE_FILE
from core.errors import NotFoundError
from core.models import (
    Coordinates,
    Location,
    LocationDraft,
    MediaItem,
    Review,
    Submitter,
    Trip,
    as_utc,
)
from datetime import datetime
from pathlib import Path
from tinydb import Query, TinyDB
from tinydb.storages import MemoryStorage

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class TripStore:
    """TinyDB-backed persistence for trips, submitters, locations, media and reviews

    Rows are validated into typed records on the way out. Single-record writes
    are consistent; there are no cross-record transactions.
    """

    def __init__(self, db: TinyDB):
        self.db = db
        self.trips = db.table('trips')
        self.submitters = db.table('submitters')
        self.locations = db.table('locations')
        self.media = db.table('media')
        self.reviews = db.table('reviews')

    @classmethod
    def open(cls, store_file: Path = DATA_DIR / STORE_FILE) -> 'TripStore':
        """Open (or create) a JSON file store"""
        store_file.parent.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Opening trip store at {store_file}")
        return cls(TinyDB(store_file, indent=2))

    @classmethod
    def in_memory(cls) -> 'TripStore':
        return cls(TinyDB(storage=MemoryStorage))

    def close(self):
        self.db.close()

    # Trips

    def create_trip(self, name: str, status: str = 'active') -> Trip:
        trip = Trip(id=new_id(), name=name, status=status)
        self.trips.insert(trip.to_record())
        logger.info(f"Created trip '{name}' ({trip.id})")
        return trip

    def get_trip(self, trip_id: str) -> Trip | None:
        record = self.trips.get(Query().id == trip_id)
        return Trip.from_record(record) if record else None

    def require_trip(self, trip_id: str) -> Trip:
        trip = self.get_trip(trip_id)
        if trip is None:
            raise NotFoundError('trip', trip_id)
        return trip

    def list_trips(self) -> list[Trip]:
        return [Trip.from_record(record) for record in self.trips.all()]

    def get_active_trip(self) -> Trip | None:
        """Most recently created active trip"""
        active = [trip for trip in self.list_trips() if trip.status == 'active']
        if not active:
            return None
        return max(active, key=lambda trip: as_utc(trip.created_at))

    # Submitters

    def upsert_submitter(self, submitter_id: str, name: str | None = None, username: str | None = None) -> Submitter:
        submitter = Submitter(id=submitter_id, name=name, username=username)
        self.submitters.upsert(submitter.to_record(), Query().id == submitter_id)
        return submitter

    def get_submitter(self, submitter_id: str) -> Submitter | None:
        record = self.submitters.get(Query().id == submitter_id)
        return Submitter.from_record(record) if record else None

    def list_submitters(self) -> list[Submitter]:
        return [Submitter.from_record(record) for record in self.submitters.all()]

    # Locations

    def list_locations(self, trip_id: str) -> list[Location]:
        return [Location.from_record(record) for record in self.locations.search(Query().trip_id == trip_id)]

    def get_location(self, location_id: str) -> Location | None:
        record = self.locations.get(Query().id == location_id)
        return Location.from_record(record) if record else None

    def create_location(self, trip_id: str, point: Coordinates, draft: LocationDraft) -> Location:
        location = Location(
            id=new_id(),
            trip_id=trip_id,
            name=draft.name,
            address=draft.address,
            city=draft.city,
            country=draft.country,
            description=draft.description,
            wiki_url=draft.wiki_url,
            lat=point.lat,
            lng=point.lng,
        )
        self.locations.insert(location.to_record())
        logger.info(f"Created location '{location.name}' ({location.id}) at {point.lat:.6f}, {point.lng:.6f}")
        return location

    def update_location_enrichment(self, location_id: str, draft: LocationDraft) -> Location:
        """Fill in descriptive fields; coordinates are never touched"""
        fields = {
            'name': draft.name,
            'address': draft.address,
            'city': draft.city,
            'country': draft.country,
            'description': draft.description,
            'wiki_url': draft.wiki_url,
        }
        updated = self.locations.update(fields, Query().id == location_id)
        if not updated:
            raise NotFoundError('location', location_id)
        return self.get_location(location_id)

    # Media

    def add_media(self, media: MediaItem) -> MediaItem:
        self.media.insert(media.to_record())
        return media

    def list_media(self, trip_id: str) -> list[MediaItem]:
        return [MediaItem.from_record(record) for record in self.media.search(Query().trip_id == trip_id)]

    def get_media_by_external_ref(self, trip_id: str, ref: str) -> MediaItem | None:
        item = Query()
        record = self.media.get((item.trip_id == trip_id) & (item.external_ref == ref))
        return MediaItem.from_record(record) if record else None

    def bind_media_to_location(self, media_ids: list[str], location_id: str, point: Coordinates) -> int:
        """Back-fill location and coordinates on existing media"""
        updated = self.media.update(
            {'location_id': location_id, 'lat': point.lat, 'lng': point.lng},
            Query().id.one_of(media_ids),
        )
        return len(updated)

    def list_unlocated_media(self, trip_id: str, user_id: str, limit: int) -> list[MediaItem]:
        """Submitter's newest media that has neither a location nor coordinates"""
        item = Query()
        records = self.media.search(
            (item.trip_id == trip_id) & (item.user_id == user_id) & (item.location_id == None) & (item.lat == None)  # noqa: E711
        )
        media = [MediaItem.from_record(record) for record in records]
        media.sort(key=lambda m: as_utc(m.created_at), reverse=True)
        return media[:limit]

    def find_recent_located_media(self, trip_id: str, user_id: str, since: datetime) -> MediaItem | None:
        """Submitter's newest media with a location created at or after ``since``"""
        item = Query()
        records = self.media.search(
            (item.trip_id == trip_id) & (item.user_id == user_id) & (item.location_id != None)  # noqa: E711
        )
        candidates = [
            media
            for media in (MediaItem.from_record(record) for record in records)
            if as_utc(media.created_at) >= as_utc(since)
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda m: as_utc(m.created_at))

    def count_media_for_location(self, location_id: str, user_id: str | None = None) -> int:
        item = Query()
        condition = item.location_id == location_id
        if user_id is not None:
            condition &= item.user_id == user_id
        return self.media.count(condition)

    # Reviews

    def add_review(self, review: Review) -> Review:
        self.reviews.insert(review.to_record())
        return review

    def list_reviews(self, trip_id: str) -> list[Review]:
        return [Review.from_record(record) for record in self.reviews.search(Query().trip_id == trip_id)]

    def count_reviews_for_location(self, location_id: str, user_id: str | None = None) -> int:
        item = Query()
        condition = item.location_id == location_id
        if user_id is not None:
            condition &= item.user_id == user_id
        return self.reviews.count(condition)

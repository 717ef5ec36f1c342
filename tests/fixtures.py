"""Test data fixtures for trip atlas tests"""

from core.models import Coordinates, Location, MediaItem, Review, Submitter, Trip
from core.store import TripStore
from datetime import UTC, datetime, timedelta
from pathlib import Path
from PIL import Image

EIFFEL_TOWER = Coordinates(48.8584, 2.2945)
EIFFEL_TOWER_NEARBY = Coordinates(48.8580, 2.2950)  # ~60 m away
MONTPARNASSE = Coordinates(48.8300, 2.3200)  # ~3.7 km away

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)

# 48°51'30"N 2°17'40"E, next to the Eiffel Tower
EIFFEL_TOWER_GPS = {1: 'N', 2: (48.0, 51.0, 30.0), 3: 'E', 4: (2.0, 17.0, 40.0)}


class TripFixtures:
    """Centralized test data fixtures"""

    @staticmethod
    def trip(trip_id: str = 'trip-1', name: str = 'Paris weekend') -> Trip:
        return Trip(id=trip_id, name=name, status='active', created_at=BASE_TIME - timedelta(days=1))

    @staticmethod
    def location(location_id: str, point: Coordinates | None, trip_id: str = 'trip-1', **fields) -> Location:
        return Location(
            id=location_id,
            trip_id=trip_id,
            lat=point.lat if point else None,
            lng=point.lng if point else None,
            **fields,
        )

    @staticmethod
    def media(
        media_id: str,
        created_at: datetime = BASE_TIME,
        shot_at: datetime | None = None,
        location_id: str | None = None,
        user_id: str = 'alice',
        trip_id: str = 'trip-1',
        **fields,
    ) -> MediaItem:
        return MediaItem(
            id=media_id,
            trip_id=trip_id,
            user_id=user_id,
            location_id=location_id,
            shot_at=shot_at,
            created_at=created_at,
            **fields,
        )

    @staticmethod
    def review(
        review_id: str,
        created_at: datetime = BASE_TIME,
        day_date: str | None = None,
        location_id: str | None = None,
        user_id: str = 'alice',
        trip_id: str = 'trip-1',
        text: str = 'Lovely view',
    ) -> Review:
        return Review(
            id=review_id,
            trip_id=trip_id,
            user_id=user_id,
            location_id=location_id,
            text=text,
            day_date=day_date,
            created_at=created_at,
        )

    @staticmethod
    def submitters() -> dict[str, Submitter]:
        return {
            'alice': Submitter(id='alice', name='Alice Martin', username='alice_m'),
            'bob': Submitter(id='bob', username='bobby'),
        }

    @staticmethod
    def jpeg(path: Path, size: tuple[int, int] = (800, 600), gps: dict | None = None, taken: str | None = None) -> Path:
        """Write a JPEG with an optional EXIF GPS block and DateTimeOriginal"""
        exif = Image.Exif()
        if taken:
            exif[0x8769] = {36867: taken}
        if gps:
            exif[0x8825] = gps

        options = {'exif': exif} if len(exif) else {}
        Image.new('RGB', size, (200, 120, 40)).save(path, 'JPEG', **options)
        return path

    @classmethod
    def create_store(cls) -> tuple[TripStore, Trip]:
        """In-memory store with one trip and two submitters"""
        store = TripStore.in_memory()
        trip = cls.trip()
        store.trips.insert(trip.to_record())
        for submitter in cls.submitters().values():
            store.upsert_submitter(submitter.id, name=submitter.name, username=submitter.username)
        return store, trip

"""Rebuild a trip's day -> location -> photos/reviews tree from flat records.

Structuring is pure: it reads already-fetched records, never raises on
dangling references and returns the same tree for the same inputs.

Within a day, location buckets are ordered by first insertion. Photos are
inserted before reviews; photos are taken in ``shot_at`` (else ``created_at``)
order and reviews in ``created_at`` order, both stable.
"""

from collections.abc import Iterable, Mapping
from config import UNASSIGNED_LOCATION_ID, UNASSIGNED_LOCATION_NAME, UNKNOWN_AUTHOR_NAME
from core.models import Location, MediaItem, Review, Submitter, Trip, as_utc, format_timestamp
from dataclasses import asdict, dataclass, field


@dataclass
class LocationSnapshot:
    id: str
    name: str | None
    description: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None


@dataclass
class PhotoSummary:
    id: str
    url: str | None
    thumbnail_url: str | None
    caption: str | None
    shot_at: str | None
    author: str


@dataclass
class ReviewSummary:
    id: str
    text: str | None
    format: str
    author: str
    created_at: str


@dataclass
class LocationBucket:
    location: LocationSnapshot
    photos: list[PhotoSummary] = field(default_factory=list)
    reviews: list[ReviewSummary] = field(default_factory=list)


@dataclass
class Day:
    date: str
    day_number: int
    locations: list[LocationBucket] = field(default_factory=list)


@dataclass
class TripSummary:
    id: str
    name: str
    status: str
    created_at: str


@dataclass
class StructuredTrip:
    trip: TripSummary
    days: list[Day] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class TripStructurer:
    """Group a trip's media and reviews into chronological days and per-location buckets"""

    def author_name(self, user_id: str, submitters_by_id: Mapping[str, Submitter]) -> str:
        submitter = submitters_by_id.get(user_id)
        return submitter.display_name if submitter else UNKNOWN_AUTHOR_NAME

    def bucket_key(self, location_id: str | None, locations_by_id: Mapping[str, Location]) -> str:
        """Real location id, or the unassigned key for missing and dangling ids"""
        if location_id and location_id in locations_by_id:
            return location_id
        return UNASSIGNED_LOCATION_ID

    def snapshot(self, key: str, locations_by_id: Mapping[str, Location]) -> LocationSnapshot:
        location = locations_by_id.get(key) if key != UNASSIGNED_LOCATION_ID else None
        if location is None:
            return LocationSnapshot(id=UNASSIGNED_LOCATION_ID, name=UNASSIGNED_LOCATION_NAME)
        return LocationSnapshot(
            id=location.id,
            name=location.name or UNASSIGNED_LOCATION_NAME,
            description=location.description,
            address=location.address,
            city=location.city,
            country=location.country,
        )

    def structure(
        self,
        trip: Trip,
        media: Iterable[MediaItem],
        reviews: Iterable[Review],
        locations_by_id: Mapping[str, Location],
        submitters_by_id: Mapping[str, Submitter] | None = None,
    ) -> StructuredTrip:
        submitters_by_id = submitters_by_id or {}
        ordered_media = sorted(media, key=lambda m: as_utc(m.shot_at or m.created_at))
        ordered_reviews = sorted(reviews, key=lambda r: as_utc(r.created_at))

        day_map: dict[str, dict[str, LocationBucket]] = {}

        def bucket_for(day_key: str, location_id: str | None) -> LocationBucket:
            buckets = day_map.setdefault(day_key, {})
            key = self.bucket_key(location_id, locations_by_id)
            if key not in buckets:
                buckets[key] = LocationBucket(location=self.snapshot(key, locations_by_id))
            return buckets[key]

        for item in ordered_media:
            bucket_for(item.day_key, item.location_id).photos.append(
                PhotoSummary(
                    id=item.id,
                    url=item.file_url,
                    thumbnail_url=item.thumbnail_url,
                    caption=item.caption,
                    shot_at=format_timestamp(item.shot_at),
                    author=self.author_name(item.user_id, submitters_by_id),
                )
            )

        for review in ordered_reviews:
            bucket_for(review.day_key, review.location_id).reviews.append(
                ReviewSummary(
                    id=review.id,
                    text=review.text,
                    format=review.format,
                    author=self.author_name(review.user_id, submitters_by_id),
                    created_at=format_timestamp(review.created_at),
                )
            )

        days = [
            Day(date=day_key, day_number=index + 1, locations=list(day_map[day_key].values()))
            for index, day_key in enumerate(sorted(day_map))
        ]

        return StructuredTrip(
            trip=TripSummary(
                id=trip.id,
                name=trip.name,
                status=trip.status,
                created_at=format_timestamp(trip.created_at),
            ),
            days=days,
        )

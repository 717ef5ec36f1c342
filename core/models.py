"""Typed records for trips, locations, media and reviews.

Store rows are plain dicts; every row is validated into one of these records
by its ``from_record`` classmethod before the rest of the code sees it.
"""

from config import (
    MAX_VALID_LATITUDE,
    MAX_VALID_LONGITUDE,
    MEDIA_TYPES,
    MIN_VALID_LATITUDE,
    MIN_VALID_LONGITUDE,
    REVIEW_FORMATS,
    TRIP_STATUSES,
    UNKNOWN_AUTHOR_NAME,
)
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime
from dateutil.parser import parse as parse_date


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO string (or pass through a datetime), None for empty values"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    try:
        return parse_date(value)
    except (ValueError, OverflowError, TypeError) as e:
        raise ValueError(f"Invalid timestamp {value!r}: {e}") from e


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def calendar_date(value: datetime) -> str:
    """Date-only key of a stored instant; aware values use their UTC date"""
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.date().isoformat()


def parse_day_date(value) -> str | None:
    """Normalize a calendar date (string, date or datetime) to YYYY-MM-DD"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return calendar_date(value)
    if isinstance(value, date):
        return value.isoformat()
    return parse_timestamp(value).date().isoformat()


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def __post_init__(self):
        if not (MIN_VALID_LATITUDE <= self.lat <= MAX_VALID_LATITUDE):
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not (MIN_VALID_LONGITUDE <= self.lng <= MAX_VALID_LONGITUDE):
            raise ValueError(f"Longitude out of range: {self.lng}")

    @classmethod
    def from_optional(cls, lat, lng) -> 'Coordinates | None':
        if lat is None or lng is None:
            return None
        return cls(float(lat), float(lng))

    def as_tuple(self) -> tuple[float, float]:
        return self.lat, self.lng


@dataclass
class LocationDraft:
    """Best-effort enrichment used when creating a new location"""

    name: str
    address: str | None = None
    city: str | None = None
    country: str | None = None
    description: str | None = None
    wiki_url: str | None = None


@dataclass
class Trip:
    id: str
    name: str
    status: str = 'active'
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_record(cls, record: dict) -> 'Trip':
        status = record.get('status') or 'active'
        if status not in TRIP_STATUSES:
            raise ValueError(f"Unknown trip status: {status}")
        return cls(
            id=str(record['id']),
            name=record.get('name') or '',
            status=status,
            created_at=parse_timestamp(record.get('created_at')) or utc_now(),
        )

    def to_record(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'created_at': format_timestamp(self.created_at),
        }


@dataclass
class Submitter:
    id: str
    name: str | None = None
    username: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.username or UNKNOWN_AUTHOR_NAME

    @classmethod
    def from_record(cls, record: dict) -> 'Submitter':
        return cls(id=str(record['id']), name=record.get('name'), username=record.get('username'))

    def to_record(self) -> dict:
        return asdict(self)


@dataclass
class Location:
    id: str
    trip_id: str
    name: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    description: str | None = None
    wiki_url: str | None = None
    lat: float | None = None
    lng: float | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def coordinates(self) -> Coordinates | None:
        return Coordinates.from_optional(self.lat, self.lng)

    @classmethod
    def from_record(cls, record: dict) -> 'Location':
        point = Coordinates.from_optional(record.get('lat'), record.get('lng'))
        return cls(
            id=str(record['id']),
            trip_id=str(record['trip_id']),
            name=record.get('name'),
            address=record.get('address'),
            city=record.get('city'),
            country=record.get('country'),
            description=record.get('description'),
            wiki_url=record.get('wiki_url'),
            lat=point.lat if point else None,
            lng=point.lng if point else None,
            created_at=parse_timestamp(record.get('created_at')) or utc_now(),
        )

    def to_record(self) -> dict:
        record = asdict(self)
        record['created_at'] = format_timestamp(self.created_at)
        return record


@dataclass
class MediaItem:
    id: str
    trip_id: str
    user_id: str
    location_id: str | None = None
    external_ref: str | None = None
    media_type: str = 'photo'
    file_url: str | None = None
    thumbnail_url: str | None = None
    lat: float | None = None
    lng: float | None = None
    shot_at: datetime | None = None
    caption: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def coordinates(self) -> Coordinates | None:
        return Coordinates.from_optional(self.lat, self.lng)

    @property
    def day_key(self) -> str:
        return calendar_date(self.shot_at or self.created_at)

    @classmethod
    def from_record(cls, record: dict) -> 'MediaItem':
        media_type = record.get('media_type') or 'photo'
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {media_type}")
        point = Coordinates.from_optional(record.get('lat'), record.get('lng'))
        return cls(
            id=str(record['id']),
            trip_id=str(record['trip_id']),
            user_id=str(record['user_id']),
            location_id=record.get('location_id'),
            external_ref=record.get('external_ref'),
            media_type=media_type,
            file_url=record.get('file_url'),
            thumbnail_url=record.get('thumbnail_url'),
            lat=point.lat if point else None,
            lng=point.lng if point else None,
            shot_at=parse_timestamp(record.get('shot_at')),
            caption=record.get('caption'),
            created_at=parse_timestamp(record.get('created_at')) or utc_now(),
        )

    def to_record(self) -> dict:
        record = asdict(self)
        record['shot_at'] = format_timestamp(self.shot_at)
        record['created_at'] = format_timestamp(self.created_at)
        return record


@dataclass
class Review:
    id: str
    trip_id: str
    user_id: str
    format: str = 'text'
    location_id: str | None = None
    text: str | None = None
    audio_url: str | None = None
    day_date: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def day_key(self) -> str:
        return self.day_date or calendar_date(self.created_at)

    @classmethod
    def from_record(cls, record: dict) -> 'Review':
        review_format = record.get('format') or 'text'
        if review_format not in REVIEW_FORMATS:
            raise ValueError(f"Unknown review format: {review_format}")
        return cls(
            id=str(record['id']),
            trip_id=str(record['trip_id']),
            user_id=str(record['user_id']),
            format=review_format,
            location_id=record.get('location_id'),
            text=record.get('text'),
            audio_url=record.get('audio_url'),
            day_date=parse_day_date(record.get('day_date')),
            created_at=parse_timestamp(record.get('created_at')) or utc_now(),
        )

    def to_record(self) -> dict:
        record = asdict(self)
        record['created_at'] = format_timestamp(self.created_at)
        return record

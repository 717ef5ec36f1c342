"""Ingestion and read operations for a trip.

Ingestion mirrors what the chat front end needs: photos and videos (with or
without coordinates), standalone location messages that back-fill recent
unlocated media, and text or voice reviews. Per-submitter caps are checked
before insertion; they are soft limits under concurrent delivery.
"""

import logging
from config import (
    AUDIO_REVIEW_PLACEHOLDER,
    PHOTO_LIMIT_PER_LOCATION,
    REVIEW_LIMIT_PER_LOCATION,
    UNLOCATED_MEDIA_BATCH,
)
from core.association import AssociationEngine
from core.location_resolver import LocationResolver
from core.models import Coordinates, Location, MediaItem, Review, as_utc, calendar_date, utc_now
from core.store import TripStore, new_id
from core.trip_structurer import StructuredTrip, TripStructurer
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from utils.exif import extract_exif
from utils.media import MediaUploader

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    status: str
    location: Location | None = None
    media: list[MediaItem] = field(default_factory=list)
    review: Review | None = None

    @property
    def limit_reached(self) -> bool:
        return self.status == 'limit_reached'


class TripService:
    """Entry points used by the CLI and chat front end"""

    def __init__(
        self,
        store: TripStore,
        resolver: LocationResolver,
        association: AssociationEngine | None = None,
        uploader: MediaUploader | None = None,
        structurer: TripStructurer | None = None,
    ):
        self.store = store
        self.resolver = resolver
        self.association = association or AssociationEngine(store)
        self.uploader = uploader
        self.structurer = structurer or TripStructurer()

    def _upload(self, source: Path, trip_id: str, item_id: str, kind: str):
        if self.uploader is None:
            raise ValueError("No media uploader configured")
        return self.uploader.upload(source, trip_id, item_id, kind)

    def ingest_photo(
        self,
        trip_id: str,
        user_id: str,
        source: Path | None = None,
        file_url: str | None = None,
        thumbnail_url: str | None = None,
        external_ref: str | None = None,
        coordinates: Coordinates | None = None,
        shot_at: datetime | None = None,
        caption: str | None = None,
        media_type: str = 'photo',
    ) -> IngestResult:
        """
        Store a photo or video and place it

        The file is uploaded before anything is written, so an UploadFailure
        leaves no record behind. For uploaded photos, coordinates and shot_at
        not given explicitly are read from the image EXIF. Media without
        coordinates is stored unlocated and waits for a location message.

        Returns:
            IngestResult: status is 'stored', 'awaiting_location' or 'limit_reached'
        """
        self.store.require_trip(trip_id)
        media_id = new_id()

        if source is not None:
            if media_type == 'photo' and (coordinates is None or shot_at is None):
                exif = extract_exif(source)
                coordinates = coordinates or exif.coordinates
                shot_at = shot_at or exif.shot_at
            upload = self._upload(source, trip_id, media_id, media_type)
            file_url, thumbnail_url = upload.file_url, upload.thumbnail_url or thumbnail_url

        media = MediaItem(
            id=media_id,
            trip_id=trip_id,
            user_id=user_id,
            external_ref=external_ref,
            media_type=media_type,
            file_url=file_url,
            thumbnail_url=thumbnail_url,
            shot_at=shot_at or utc_now(),
            caption=caption,
        )

        if coordinates is None:
            self.store.add_media(media)
            logger.info(f"Stored {media_type} {media_id} without coordinates")
            return IngestResult(status='awaiting_location', media=[media])

        media.lat, media.lng = coordinates.lat, coordinates.lng
        location = self.resolver.resolve_for_trip(trip_id, coordinates)

        existing = self.store.count_media_for_location(location.id, user_id)
        if existing >= PHOTO_LIMIT_PER_LOCATION:
            self.store.add_media(media)
            logger.warning(f"Media limit of {PHOTO_LIMIT_PER_LOCATION} reached for {user_id} at {location.id}")
            return IngestResult(status='limit_reached', location=location, media=[media])

        media.location_id = location.id
        self.store.add_media(media)
        logger.info(f"Stored {media_type} {media_id} at location '{location.name}'")
        return IngestResult(status='stored', location=location, media=[media])

    def ingest_location(self, trip_id: str, user_id: str, coordinates: Coordinates) -> IngestResult:
        """Bind the submitter's newest unlocated media to the place at the given coordinates"""
        self.store.require_trip(trip_id)

        unlocated = self.store.list_unlocated_media(trip_id, user_id, UNLOCATED_MEDIA_BATCH)
        if not unlocated:
            logger.info(f"Location from {user_id} received but no unlocated media to bind")
            return IngestResult(status='no_media')

        location = self.resolver.resolve_for_trip(trip_id, coordinates)
        self.store.bind_media_to_location([m.id for m in unlocated], location.id, coordinates)

        for media in unlocated:
            media.location_id = location.id
            media.lat, media.lng = coordinates.lat, coordinates.lng

        logger.info(f"Bound {len(unlocated)} media to location '{location.name}'")
        return IngestResult(status='stored', location=location, media=unlocated)

    def ingest_review(
        self,
        trip_id: str,
        user_id: str,
        text: str | None = None,
        audio_source: Path | None = None,
        reply_to_ref: str | None = None,
        now: datetime | None = None,
    ) -> IngestResult:
        """
        Store a text or voice review, attached to the most plausible location

        Returns:
            IngestResult: status is 'stored' or 'limit_reached' (nothing stored)
        """
        self.store.require_trip(trip_id)
        if audio_source is None and not text:
            raise ValueError("A review needs text or an audio file")

        now = as_utc(now or utc_now())
        location = self.association.find_location_for_content(trip_id, user_id, reply_to_ref, now=now)

        if location is not None:
            existing = self.store.count_reviews_for_location(location.id, user_id)
            if existing >= REVIEW_LIMIT_PER_LOCATION:
                logger.warning(f"Review limit of {REVIEW_LIMIT_PER_LOCATION} reached for {user_id} at {location.id}")
                return IngestResult(status='limit_reached', location=location)

        review_id = new_id()
        if audio_source is not None:
            upload = self._upload(audio_source, trip_id, review_id, 'audio')
            review = Review(
                id=review_id,
                trip_id=trip_id,
                user_id=user_id,
                format='audio',
                text=AUDIO_REVIEW_PLACEHOLDER,
                audio_url=upload.file_url,
            )
        else:
            review = Review(id=review_id, trip_id=trip_id, user_id=user_id, format='text', text=text)

        review.location_id = location.id if location else None
        review.day_date = calendar_date(now)
        review.created_at = now
        self.store.add_review(review)
        logger.info(f"Stored {review.format} review {review_id} at '{location.name if location else 'unassigned'}'")
        return IngestResult(status='stored', location=location, review=review)

    def structured_trip(self, trip_id: str) -> StructuredTrip:
        """Day/location tree of a trip; raises NotFoundError for an unknown trip"""
        trip = self.store.require_trip(trip_id)
        locations_by_id = {location.id: location for location in self.store.list_locations(trip_id)}
        submitters_by_id = {submitter.id: submitter for submitter in self.store.list_submitters()}

        return self.structurer.structure(
            trip,
            self.store.list_media(trip_id),
            self.store.list_reviews(trip_id),
            locations_by_id,
            submitters_by_id,
        )

    def location_summaries(self, trip_id: str) -> list[dict]:
        """Trip locations in creation order with photo and review counts"""
        self.store.require_trip(trip_id)
        locations = sorted(self.store.list_locations(trip_id), key=lambda location: as_utc(location.created_at))

        summaries = []
        for location in locations:
            summary = location.to_record()
            summary['photos_count'] = self.store.count_media_for_location(location.id)
            summary['reviews_count'] = self.store.count_reviews_for_location(location.id)
            summaries.append(summary)

        return summaries

    def trip_status(self, trip_id: str) -> dict:
        """Counts and the captured date range of a trip"""
        trip = self.store.require_trip(trip_id)
        media = self.store.list_media(trip_id)
        day_keys = sorted(item.day_key for item in media)

        return {
            'trip': trip.to_record(),
            'media_count': len(media),
            'review_count': len(self.store.list_reviews(trip_id)),
            'location_count': len(self.store.list_locations(trip_id)),
            'unlocated_media_count': sum(1 for item in media if item.location_id is None),
            'first_day': day_keys[0] if day_keys else None,
            'last_day': day_keys[-1] if day_keys else None,
        }

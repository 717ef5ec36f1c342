import logging
from config import RECENT_MEDIA_WINDOW_HOURS
from core.models import Location, as_utc, utc_now
from core.store import TripStore
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)


class AssociationEngine:
    """Propose a location for content that carries no coordinates of its own"""

    def __init__(self, store: TripStore, window_hours: float = RECENT_MEDIA_WINDOW_HOURS):
        self.store = store
        self.window = timedelta(hours=window_hours)

    def _location_from_reply(self, trip_id: str, reply_to_ref: str) -> Location | None:
        media = self.store.get_media_by_external_ref(trip_id, reply_to_ref)
        if media is None or not media.location_id:
            return None
        return self.store.get_location(media.location_id)

    def _location_from_recent_media(self, trip_id: str, submitter_id: str, now: datetime) -> Location | None:
        since = as_utc(now) - self.window
        media = self.store.find_recent_located_media(trip_id, submitter_id, since)
        if media is None:
            return None
        return self.store.get_location(media.location_id)

    def find_location_for_content(
        self, trip_id: str, submitter_id: str, reply_to_ref: str | None = None, now: datetime | None = None
    ) -> Location | None:
        """
        Find the most plausible location for a text review, voice note or unlocated photo

        A reply to a photo bound to a location wins regardless of age. Otherwise
        the submitter's newest located media within the trailing window is used.

        Args:
            trip_id: trip the content belongs to
            submitter_id: author of the content
            reply_to_ref: external reference of the photo message being replied to
            now: reference time for the recency window (defaults to current UTC time)

        Returns:
            Location | None: proposed location, or None to store the content unassigned
        """
        if reply_to_ref:
            location = self._location_from_reply(trip_id, reply_to_ref)
            if location is not None:
                logger.debug(f"Content by {submitter_id} attached to {location.id} by reply")
                return location

        location = self._location_from_recent_media(trip_id, submitter_id, now or utc_now())
        if location is not None:
            logger.debug(f"Content by {submitter_id} attached to {location.id} by recency")
        return location

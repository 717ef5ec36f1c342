import logging
from config import UNKNOWN_PLACE_NAME
from core.errors import EnrichmentUnavailable
from core.models import Coordinates, LocationDraft
from utils.geocoding import GeocodingResult, NominatimGeocoder
from utils.wikipedia import KnowledgeResult, WikipediaKnowledgeBase

logger = logging.getLogger(__name__)


class PlaceEnricher:
    """Geocode a point, then look its name up in the knowledge base

    The knowledge-base stage depends on the geocoded name, so the two stages
    run in order. Each stage degrades to nothing on failure.
    """

    def __init__(self, geocoder: NominatimGeocoder | None, knowledge_base: WikipediaKnowledgeBase | None):
        self.geocoder = geocoder
        self.knowledge_base = knowledge_base

    def _geocode(self, point: Coordinates) -> GeocodingResult | None:
        if self.geocoder is None:
            return None
        try:
            return self.geocoder.reverse_geocode(point)
        except EnrichmentUnavailable as e:
            logger.warning(str(e))
            return None

    def _describe(self, name: str) -> KnowledgeResult | None:
        if self.knowledge_base is None:
            return None
        try:
            return self.knowledge_base.describe(name)
        except EnrichmentUnavailable as e:
            logger.warning(str(e))
            return None

    def __call__(self, point: Coordinates) -> LocationDraft:
        geocoded = self._geocode(point)
        if geocoded is None:
            return LocationDraft(name=UNKNOWN_PLACE_NAME)

        knowledge = self._describe(geocoded.name)

        return LocationDraft(
            name=geocoded.name or UNKNOWN_PLACE_NAME,
            address=geocoded.address or None,
            city=geocoded.city or None,
            country=geocoded.country or None,
            description=(knowledge.description or None) if knowledge else None,
            wiki_url=knowledge.url if knowledge else None,
        )

    def close(self):
        if self.knowledge_base is not None:
            self.knowledge_base.close()

import httpx
import logging
from config import KNOWLEDGE_BASE_SENTENCES, KNOWLEDGE_BASE_TIMEOUT_SECONDS, NOMINATIM_USER_AGENT, WIKIPEDIA_LANGUAGE
from core.errors import EnrichmentUnavailable
from dataclasses import asdict, dataclass
from urllib.parse import quote
from utils.geocoding import GeocodingCache

logger = logging.getLogger(__name__)


@dataclass
class KnowledgeResult:
    title: str
    description: str
    url: str


class WikipediaKnowledgeBase:
    """Short place descriptions from the Wikipedia search and extracts APIs"""

    def __init__(
        self,
        languages: tuple[str, ...] | None = None,
        cache: GeocodingCache | None = None,
        timeout: float = KNOWLEDGE_BASE_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ):
        if languages is None:
            languages = tuple(dict.fromkeys((WIKIPEDIA_LANGUAGE, 'en')))
        self.languages = languages
        self.cache = cache
        self.client = client or httpx.Client(timeout=timeout, headers={'User-Agent': NOMINATIM_USER_AGENT})

    def api_url(self, language: str) -> str:
        return f"https://{language}.wikipedia.org/w/api.php"

    def page_url(self, language: str, title: str) -> str:
        return f"https://{language}.wikipedia.org/wiki/{quote(title.replace(' ', '_'))}"

    def _get_json(self, language: str, params: dict) -> dict:
        try:
            response = self.client.get(self.api_url(language), params={**params, 'format': 'json'})
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EnrichmentUnavailable(f"Wikipedia ({language}) request failed: {e}") from e

    def describe_in_language(self, place_name: str, language: str) -> KnowledgeResult | None:
        """Search for the place and return the intro of the best matching article"""
        search = self._get_json(language, {'action': 'query', 'list': 'search', 'srsearch': place_name, 'srlimit': 1})
        results = (search.get('query') or {}).get('search') or []
        if not results:
            return None

        title = results[0]['title']
        extract = self._get_json(
            language,
            {
                'action': 'query',
                'titles': title,
                'prop': 'extracts',
                'exintro': 1,
                'explaintext': 1,
                'exsentences': KNOWLEDGE_BASE_SENTENCES,
            },
        )
        pages = (extract.get('query') or {}).get('pages') or {}
        if not pages:
            return None

        page_id, page = next(iter(pages.items()))
        if page_id == '-1':
            return None

        return KnowledgeResult(
            title=page.get('title', title),
            description=page.get('extract') or '',
            url=self.page_url(language, page.get('title', title)),
        )

    def describe(self, place_name: str) -> KnowledgeResult | None:
        """
        Describe a place, trying each configured language in order

        A failing language is skipped like one without an article.

        Raises:
            EnrichmentUnavailable: only when every language failed
        """
        if not place_name:
            return None

        if self.cache:
            cached = self.cache.get_description(place_name)
            if cached:
                return KnowledgeResult(**cached)

        failures = []
        for language in self.languages:
            try:
                result = self.describe_in_language(place_name, language)
            except EnrichmentUnavailable as e:
                logger.warning(str(e))
                failures.append(e)
                continue
            if result:
                if self.cache:
                    self.cache.set_description(place_name, asdict(result))
                return result

        if failures and len(failures) == len(self.languages):
            raise failures[-1]

        logger.debug(f"No knowledge-base article for '{place_name}'")
        return None

    def close(self):
        self.client.close()

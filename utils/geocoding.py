import json
import logging
import ssl
import time
from config import (
    CACHE_DIR,
    GEOCODER_LANGUAGE,
    GEOCODER_TIMEOUT_SECONDS,
    GEOCODING_CACHE_EXPIRATION_DAYS,
    GEOCODING_CACHE_FILE,
    NOMINATIM_USER_AGENT,
)
from core.errors import EnrichmentUnavailable
from core.models import Coordinates
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from dateutil.parser import parse as parse_date
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class GeocodingResult:
    name: str
    address: str
    city: str
    country: str


class GeocodingCache:
    """File-based cache for reverse geocoding and knowledge-base lookups with rate limiting and expiration"""

    def __init__(
        self, cache_file: Path = CACHE_DIR / GEOCODING_CACHE_FILE, expiration_days: int = GEOCODING_CACHE_EXPIRATION_DAYS
    ):
        self.cache_file = cache_file
        self.expiration_days = expiration_days
        self.last_api_call = 0
        self.min_api_interval = 1.0
        self.cache_data = self._load_cache()
        self.session_hits = 0
        self.session_misses = 0

    def _empty_cache(self) -> dict:
        return {
            'metadata': {
                'version': '1.0',
                'created': datetime.now(UTC).isoformat(),
                'last_updated': datetime.now(UTC).isoformat(),
                'total_entries': 0,
                'cache_hits': 0,
                'cache_misses': 0,
                'expiration_days': self.expiration_days,
            },
            'entries': {},
        }

    def _load_cache(self) -> dict:
        """Load cache from file, starting fresh if it is missing or unreadable"""
        if self.cache_file.exists():
            try:
                with open(self.cache_file) as f:
                    data = json.load(f)
                if 'metadata' in data and 'entries' in data:
                    return data
                logger.warning("Geocoding cache has an unknown layout, starting fresh")
            except (json.JSONDecodeError, FileNotFoundError):
                logger.warning("Could not load geocoding cache, starting fresh")

        return self._empty_cache()

    def _generate_cache_key(self, query_type: str, **kwargs) -> str:
        """Generate cache key for different query types"""
        if query_type == 'reverse':
            lat = kwargs.get('latitude', 0)
            lon = kwargs.get('longitude', 0)
            return f"reverse_{lat:.6f}_{lon:.6f}"
        elif query_type == 'describe':
            name = kwargs.get('name', '')
            normalized = name.lower().strip().replace(' ', '_')
            return f"describe_{normalized}"
        else:
            raise ValueError(f"Unknown query type: {query_type}")

    def _is_expired(self, entry: dict) -> bool:
        """Check if cache entry has expired"""
        try:
            entry_time = parse_date(entry['timestamp'])
            now = datetime.now(UTC)
            age_days = (now - entry_time).days
            return age_days > self.expiration_days
        except Exception:
            return True

    def _lookup(self, key: str) -> dict | None:
        entry = self.cache_data['entries'].get(key)

        if entry and not self._is_expired(entry):
            self.session_hits += 1
            self.cache_data['metadata']['cache_hits'] += 1
            return entry.get('response')

        self.session_misses += 1
        self.cache_data['metadata']['cache_misses'] += 1

        if entry and self._is_expired(entry):
            del self.cache_data['entries'][key]
            self.cache_data['metadata']['total_entries'] -= 1

        return None

    def _store(self, key: str, query_type: str, query: dict, response: dict):
        entry = {
            'timestamp': datetime.now(UTC).isoformat(),
            'query_type': query_type,
            'query': query,
            'response': response,
        }

        if key not in self.cache_data['entries']:
            self.cache_data['metadata']['total_entries'] += 1

        self.cache_data['entries'][key] = entry
        self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
        self._save_cache()

    def get(self, coordinates: tuple[float, float]) -> dict | None:
        """Get cached reverse geocoding result"""
        key = self._generate_cache_key('reverse', latitude=coordinates[0], longitude=coordinates[1])
        return self._lookup(key)

    def set(self, coordinates: tuple[float, float], response: dict):
        """Set cached reverse geocoding result"""
        key = self._generate_cache_key('reverse', latitude=coordinates[0], longitude=coordinates[1])
        self._store(key, 'reverse', {'latitude': coordinates[0], 'longitude': coordinates[1]}, response)

    def get_description(self, name: str) -> dict | None:
        """Get cached knowledge-base result for a place name"""
        return self._lookup(self._generate_cache_key('describe', name=name))

    def set_description(self, name: str, response: dict):
        """Set cached knowledge-base result for a place name"""
        self._store(self._generate_cache_key('describe', name=name), 'describe', {'name': name}, response)

    def enforce_rate_limit(self):
        """Enforce rate limiting for API calls (1 request per second)"""
        current_time = time.time()
        time_since_last = current_time - self.last_api_call

        if time_since_last < self.min_api_interval:
            sleep_time = self.min_api_interval - time_since_last
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f} seconds")
            time.sleep(sleep_time)

        self.last_api_call = time.time()

    def clean_expired(self) -> int:
        """Remove expired entries from cache"""
        expired_keys = [key for key, entry in self.cache_data['entries'].items() if self._is_expired(entry)]

        for key in expired_keys:
            del self.cache_data['entries'][key]

        if expired_keys:
            self.cache_data['metadata']['total_entries'] -= len(expired_keys)
            self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
            self._save_cache()
            logger.info(f"Cleaned {len(expired_keys)} expired cache entries")

        return len(expired_keys)

    def clear(self):
        """Clear all cache entries"""
        entry_count = len(self.cache_data['entries'])
        self.cache_data['entries'] = {}
        self.cache_data['metadata']['total_entries'] = 0
        self.cache_data['metadata']['last_updated'] = datetime.now(UTC).isoformat()
        self._save_cache()
        logger.info(f"Cleared {entry_count} cache entries")

    def get_stats(self) -> dict:
        """Get cache statistics"""
        total_hits = self.cache_data['metadata']['cache_hits']
        total_misses = self.cache_data['metadata']['cache_misses']
        total_requests = total_hits + total_misses

        hit_ratio = (total_hits / total_requests * 100) if total_requests > 0 else 0

        return {
            'total_entries': self.cache_data['metadata']['total_entries'],
            'cache_hits': total_hits,
            'cache_misses': total_misses,
            'hit_ratio_percent': round(hit_ratio, 1),
            'session_hits': self.session_hits,
            'session_misses': self.session_misses,
            'expiration_days': self.expiration_days,
            'created': self.cache_data['metadata']['created'],
            'last_updated': self.cache_data['metadata']['last_updated'],
        }

    def _save_cache(self):
        """Save cache to file"""
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_file, 'w') as f:
            json.dump(self.cache_data, f, indent=2)


class NominatimGeocoder:
    """Reverse geocoding through Nominatim with caching and a bounded timeout"""

    def __init__(
        self,
        cache: GeocodingCache | None = None,
        user_agent: str = NOMINATIM_USER_AGENT,
        language: str = GEOCODER_LANGUAGE,
        timeout: float = GEOCODER_TIMEOUT_SECONDS,
    ):
        ssl_context = ssl.create_default_context()
        self.geocoder = Nominatim(user_agent=user_agent, timeout=timeout, ssl_context=ssl_context)
        self.cache = cache or GeocodingCache()
        self.language = language

    def parse_response(self, raw: dict) -> GeocodingResult:
        """Build a result from a raw Nominatim payload"""
        address = raw.get('address') or {}
        display_name = raw.get('display_name') or ''
        name = raw.get('name') or display_name.split(',')[0].strip() or 'Unknown'
        city = address.get('city') or address.get('town') or address.get('village') or address.get('municipality') or ''

        return GeocodingResult(name=name, address=display_name, city=city, country=address.get('country', ''))

    def reverse_geocode(self, point: Coordinates) -> GeocodingResult | None:
        """
        Look up a place name and address for coordinates

        Returns:
            GeocodingResult | None: None when Nominatim knows nothing about the point

        Raises:
            EnrichmentUnavailable: on timeouts and service errors
        """
        coordinates = point.as_tuple()

        cached = self.cache.get(coordinates)
        if cached:
            return GeocodingResult(**cached)

        try:
            self.cache.enforce_rate_limit()
            location = self.geocoder.reverse(coordinates, exactly_one=True, language=self.language)
        except GeopyError as e:
            raise EnrichmentUnavailable(f"Reverse geocoding failed for {point.lat}, {point.lng}: {e}") from e

        if not location or not location.raw or location.raw.get('error'):
            logger.debug(f"No geocoding result for {point.lat}, {point.lng}")
            return None

        result = self.parse_response(location.raw)
        self.cache.set(coordinates, asdict(result))
        return result

from decouple import config
from pathlib import Path

# Directory paths
DATA_DIR = Path(config('DATA_DIR', default='data'))
CACHE_DIR = Path(config('CACHE_DIR', default='data'))
MEDIA_DIR = Path(config('MEDIA_DIR', default='data/media'))

# File names
STORE_FILE = config('STORE_FILE', default='trip_atlas.json')
GEOCODING_CACHE_FILE = 'geocoding_cache.json'
ITINERARY_REPORT_FILE = 'itinerary.md'

# External services
NOMINATIM_USER_AGENT = config('NOMINATIM_USER_AGENT', default='trip-atlas/1.0')
GEOCODER_LANGUAGE = config('GEOCODER_LANGUAGE', default='en')
GEOCODER_TIMEOUT_SECONDS = config('GEOCODER_TIMEOUT_SECONDS', default=10.0, cast=float)
WIKIPEDIA_LANGUAGE = config('WIKIPEDIA_LANGUAGE', default='en')
KNOWLEDGE_BASE_TIMEOUT_SECONDS = config('KNOWLEDGE_BASE_TIMEOUT_SECONDS', default=10.0, cast=float)
KNOWLEDGE_BASE_SENTENCES = 3

# Geographic constants
GEOCODING_CACHE_EXPIRATION_DAYS = 30
EARTH_RADIUS_METERS = 6_371_000
CLUSTER_RADIUS_METERS = 200.0               # Points closer than this are the same place

# Association and limits
RECENT_MEDIA_WINDOW_HOURS = 2               # Trailing window for the recency heuristic
PHOTO_LIMIT_PER_LOCATION = 3                # Per submitter, per location
REVIEW_LIMIT_PER_LOCATION = 3               # Per submitter, per location
UNLOCATED_MEDIA_BATCH = 5                   # Media bound by a single location message

# Thumbnails
THUMBNAIL_WIDTH = 400                       # Pixels; smaller images are not enlarged
THUMBNAIL_QUALITY = 80

# Placeholders
UNKNOWN_PLACE_NAME = 'Unknown place'
UNKNOWN_AUTHOR_NAME = 'Unknown'
UNASSIGNED_LOCATION_ID = 'unassigned'
UNASSIGNED_LOCATION_NAME = 'No location'
AUDIO_REVIEW_PLACEHOLDER = '[Voice message, transcription pending]'

# Validation constants
MIN_VALID_LATITUDE = -90.0
MAX_VALID_LATITUDE = 90.0
MIN_VALID_LONGITUDE = -180.0
MAX_VALID_LONGITUDE = 180.0

TRIP_STATUSES = ('active', 'completed', 'archived')
MEDIA_TYPES = ('photo', 'video')
REVIEW_FORMATS = ('text', 'audio')

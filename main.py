#!/usr/bin/env python

"""
Trip Atlas - trip media clustering and itinerary builder

Clusters geotagged trip photos into places, attaches reviews and voice notes
to the most plausible place, and rebuilds a day-by-day structure of the trip.

Usage:
    main.py [command] [options]

    Default command is 'status' if none specified.

Commands:
    trip-new: Create a trip (--name)
    trip-list: List trips
    ingest-photo: Store a photo or video (--file or --file-url, optional --lat/--lng, --shot-at, --caption, --ref);
                  GPS and capture time of a --file photo are read from its EXIF when not given
    ingest-location: Bind recent unlocated media to a place (--lat, --lng)
    ingest-review: Store a text review (--text) or voice note (--audio), optional --reply-to
    locations: List trip locations with photo and review counts
    status: Show trip statistics
    structure: Print the structured trip as JSON (or write it with --output)
    itinerary: Write a markdown itinerary (default: data/itinerary.md, or --output)
    cache-stats: Display geocoding cache statistics and clean expired entries
    cache-clear: Clear all geocoding cache entries

Options:
    --trip: Trip id (default: most recent active trip)
    --user: Submitter id for ingestion commands
    --offline: Skip geocoding and knowledge-base lookups for new places
    --store-file: Path to the trip store (default: data/trip_atlas.json)
    --verbose: Enable verbose logging output
"""

import argparse
import json
import logging
import sys
from config import DATA_DIR, ITINERARY_REPORT_FILE, MEDIA_DIR, STORE_FILE
from core.association import AssociationEngine
from core.errors import NotFoundError, UploadFailure
from core.itinerary import ItineraryReportGenerator
from core.location_resolver import LocationResolver
from core.models import Coordinates, parse_timestamp
from core.service import IngestResult, TripService
from core.store import TripStore
from pathlib import Path
from utils.enrichment import PlaceEnricher
from utils.geocoding import GeocodingCache, NominatimGeocoder
from utils.media import MediaUploader
from utils.wikipedia import WikipediaKnowledgeBase

logger = logging.getLogger(__name__)


def parse_arguments(argv: list[str] | None = None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Trip Atlas - trip media clustering and itinerary builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument('command', nargs='?', default='status', help='Command to execute (default: status)')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging output')
    parser.add_argument('--store-file', type=Path, default=DATA_DIR / STORE_FILE, help='Path to the trip store')
    parser.add_argument('--media-dir', type=Path, default=MEDIA_DIR, help='Directory for stored media files')
    parser.add_argument('--offline', action='store_true', help='Skip network enrichment of new places')
    parser.add_argument('--output', type=Path, help='Write output to this file')

    # Trip and submitter
    parser.add_argument('--trip', type=str, help='Trip id (default: most recent active trip)')
    parser.add_argument('--name', type=str, help='Trip name, or submitter display name for ingestion')
    parser.add_argument('--user', type=str, help='Submitter id')
    parser.add_argument('--username', type=str, help='Submitter username')

    # Ingestion
    parser.add_argument('--file', type=Path, help='Media file to store')
    parser.add_argument('--file-url', type=str, help='URL of media already uploaded elsewhere')
    parser.add_argument('--thumbnail-url', type=str, help='URL of an already generated thumbnail')
    parser.add_argument('--video', action='store_true', help='The media file is a video')
    parser.add_argument('--lat', type=float, help='Latitude in degrees')
    parser.add_argument('--lng', type=float, help='Longitude in degrees')
    parser.add_argument('--shot-at', type=str, help='Capture time (ISO 8601)')
    parser.add_argument('--caption', type=str, help='Photo caption')
    parser.add_argument('--ref', type=str, help='External reference of the chat message carrying the media')
    parser.add_argument('--reply-to', type=str, help='External reference of the photo a review replies to')
    parser.add_argument('--text', type=str, help='Review text')
    parser.add_argument('--audio', type=Path, help='Voice note file')

    return parser.parse_args(argv)


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s', force=True)


def build_enricher(offline: bool = False) -> PlaceEnricher | None:
    """Geocoder and knowledge base sharing one cache, or None when offline"""
    if offline:
        return None
    cache = GeocodingCache()
    return PlaceEnricher(NominatimGeocoder(cache=cache), WikipediaKnowledgeBase(cache=cache))


def build_service(store: TripStore, media_dir: Path, enricher: PlaceEnricher | None = None) -> TripService:
    """Wire the store, enrichment collaborators and resolver together"""
    return TripService(
        store=store,
        resolver=LocationResolver(store, enrich=enricher),
        association=AssociationEngine(store),
        uploader=MediaUploader(media_dir),
    )


def resolve_trip_id(store: TripStore, trip_id: str | None) -> str:
    if trip_id:
        return trip_id
    trip = store.get_active_trip()
    if trip is None:
        raise NotFoundError('trip', 'active')
    return trip.id


def coordinates_from_args(args) -> Coordinates | None:
    if args.lat is None and args.lng is None:
        return None
    if args.lat is None or args.lng is None:
        raise ValueError("Both --lat and --lng are required")
    return Coordinates(args.lat, args.lng)


def print_result(result: IngestResult):
    place = result.location.name if result.location else 'unassigned'
    if result.status == 'awaiting_location':
        print("Media stored without coordinates; send a location to place it")
    elif result.status == 'no_media':
        print("Location received, but there is no unlocated media to bind")
    elif result.status == 'limit_reached':
        print(f"Limit reached for '{place}'")
    elif result.review is not None:
        print(f"Review stored at: {place}")
    else:
        print(f"Stored {len(result.media)} media at: {place}")


def emit(text: str, output: Path | None):
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w') as f:
        f.write(text)
    logger.info(f"Output written to {output}")


def run_command(args, store: TripStore, enricher: PlaceEnricher | None = None) -> int:
    command = args.command

    if command == 'trip-new':
        if not args.name:
            logger.error("Trip name is required (--name)")
            return 1
        trip = store.create_trip(args.name)
        print(f"Created trip '{trip.name}': {trip.id}")
        return 0

    if command == 'trip-list':
        for trip in store.list_trips():
            print(f"{trip.id}  {trip.status:<9}  {trip.created_at.date().isoformat()}  {trip.name}")
        return 0

    service = build_service(store, args.media_dir, enricher)
    trip_id = resolve_trip_id(store, args.trip)

    if command in ('ingest-photo', 'ingest-location', 'ingest-review'):
        if not args.user:
            logger.error("Submitter id is required (--user)")
            return 1
        if args.name or args.username:
            store.upsert_submitter(args.user, name=args.name, username=args.username)

    if command == 'ingest-photo':
        if args.file is None and args.file_url is None:
            logger.error("Either --file or --file-url is required")
            return 1
        result = service.ingest_photo(
            trip_id,
            args.user,
            source=args.file,
            file_url=args.file_url,
            thumbnail_url=args.thumbnail_url,
            external_ref=args.ref,
            coordinates=coordinates_from_args(args),
            shot_at=parse_timestamp(args.shot_at),
            caption=args.caption,
            media_type='video' if args.video else 'photo',
        )
        print_result(result)
        return 0

    if command == 'ingest-location':
        coordinates = coordinates_from_args(args)
        if coordinates is None:
            logger.error("Both --lat and --lng are required")
            return 1
        print_result(service.ingest_location(trip_id, args.user, coordinates))
        return 0

    if command == 'ingest-review':
        result = service.ingest_review(
            trip_id, args.user, text=args.text, audio_source=args.audio, reply_to_ref=args.reply_to
        )
        print_result(result)
        return 0

    if command == 'locations':
        for summary in service.location_summaries(trip_id):
            print(
                f"{summary['name'] or 'Unnamed'}: {summary['photos_count']} photos, "
                f"{summary['reviews_count']} reviews ({summary['lat']:.5f}, {summary['lng']:.5f})"
            )
        return 0

    if command == 'status':
        status = service.trip_status(trip_id)
        print(f"\n=== {status['trip']['name']} ({status['trip']['status']}) ===")
        print(f"Media: {status['media_count']} ({status['unlocated_media_count']} without location)")
        print(f"Reviews: {status['review_count']}")
        print(f"Locations: {status['location_count']}")
        print(f"Days: {status['first_day'] or 'N/A'} to {status['last_day'] or 'N/A'}")
        return 0

    if command == 'structure':
        structured = service.structured_trip(trip_id)
        emit(json.dumps(structured.to_dict(), indent=2, ensure_ascii=False), args.output)
        return 0

    if command == 'itinerary':
        structured = service.structured_trip(trip_id)
        output_file = args.output or DATA_DIR / ITINERARY_REPORT_FILE
        if not ItineraryReportGenerator().write_report(structured, output_file):
            return 1
        print(f"Itinerary written to {output_file}")
        return 0

    print(__doc__.strip())
    return 1


def main(argv: list[str] | None = None):
    args = parse_arguments(argv)

    # Setup logging
    setup_logging(args.verbose)

    command = args.command

    if command == 'cache-stats':
        cache = GeocodingCache()
        stats = cache.get_stats()

        print("\n=== Geocoding Cache Statistics ===")
        print(f"Total entries: {stats['total_entries']}")
        print(f"Cache hits: {stats['cache_hits']}")
        print(f"Cache misses: {stats['cache_misses']}")
        print(f"Hit ratio: {stats['hit_ratio_percent']}%")
        print(f"Expiration: {stats['expiration_days']} days")
        print(f"Created: {stats['created']}")
        print(f"Last updated: {stats['last_updated']}")

        expired_count = cache.clean_expired()
        if expired_count > 0:
            print(f"Cleaned {expired_count} expired entries")

        sys.exit(0)

    elif command == 'cache-clear':
        cache = GeocodingCache()
        cache.clear()
        print("Cache cleared successfully")
        sys.exit(0)

    store = TripStore.open(args.store_file)
    enricher = build_enricher(args.offline)
    try:
        exit_code = run_command(args, store, enricher)
    except NotFoundError as e:
        logger.error(str(e))
        exit_code = 1
    except UploadFailure as e:
        logger.error(f"Upload failed, nothing was stored. Please try again: {e}")
        exit_code = 1
    except ValueError as e:
        logger.error(str(e))
        exit_code = 1
    finally:
        store.close()
        if enricher is not None:
            enricher.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

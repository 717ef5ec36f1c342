import logging
from collections.abc import Iterable
from config import CLUSTER_RADIUS_METERS, EARTH_RADIUS_METERS
from core.models import Coordinates, Location
from geopy.distance import great_circle

logger = logging.getLogger(__name__)


class GeoIndex:
    """Great-circle distances and nearest-location lookups over a trip's locations"""

    def __init__(self, cluster_radius_meters: float = CLUSTER_RADIUS_METERS):
        self.cluster_radius_meters = cluster_radius_meters

    @staticmethod
    def distance(a: Coordinates, b: Coordinates) -> float:
        """Distance in meters on a sphere of radius EARTH_RADIUS_METERS"""
        return great_circle(a.as_tuple(), b.as_tuple(), radius=EARTH_RADIUS_METERS / 1000).meters

    def nearest(self, point: Coordinates, locations: Iterable[Location]) -> Location | None:
        """
        Find the closest resolved location within the cluster radius

        Locations without coordinates are never candidates. On equal distances
        the first location encountered wins.

        Returns:
            Location | None: nearest location, or None if none is within the radius
        """
        nearest_location = None
        min_distance = float('inf')

        for location in locations:
            location_point = location.coordinates
            if location_point is None:
                continue

            distance = self.distance(point, location_point)
            if distance < min_distance:
                min_distance = distance
                nearest_location = location

        if nearest_location is None or min_distance > self.cluster_radius_meters:
            return None

        logger.debug(f"Nearest location {nearest_location.id} at {min_distance:.1f} m")
        return nearest_location

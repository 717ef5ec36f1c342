import pytest
from config import CLUSTER_RADIUS_METERS
from core.geo_index import GeoIndex
from core.models import Coordinates
from fixtures import EIFFEL_TOWER, EIFFEL_TOWER_NEARBY, MONTPARNASSE, TripFixtures
from geopy.distance import great_circle


def offset(point: Coordinates, meters: float, bearing: float = 90.0) -> Coordinates:
    """Point at a given distance and bearing on the 6371 km sphere"""
    destination = great_circle(meters=meters, radius=6371.0).destination(point.as_tuple(), bearing)
    return Coordinates(destination.latitude, destination.longitude)


class TestGeoIndex:
    """Test suite for GeoIndex"""

    @pytest.fixture
    def index(self):
        return GeoIndex()

    def test_distance_to_self_is_zero(self, index):
        """Test distance of a point to itself"""
        for point in (EIFFEL_TOWER, Coordinates(0, 0), Coordinates(-33.8688, 151.2093), Coordinates(90, 180)):
            assert index.distance(point, point) == 0

    def test_distance_known_values(self, index):
        """Test haversine distances against known values"""
        # One degree of latitude on a 6371 km sphere
        assert index.distance(Coordinates(0, 0), Coordinates(1, 0)) == pytest.approx(111_194.93, rel=1e-6)

        nearby = index.distance(EIFFEL_TOWER, EIFFEL_TOWER_NEARBY)
        assert 50 < nearby < 70

        far = index.distance(EIFFEL_TOWER, MONTPARNASSE)
        assert 3000 < far < 4000

    def test_distance_is_symmetric(self, index):
        """Test distance symmetry"""
        assert index.distance(EIFFEL_TOWER, MONTPARNASSE) == pytest.approx(index.distance(MONTPARNASSE, EIFFEL_TOWER))

    def test_nearest_within_radius(self, index):
        """Test a location just inside the cluster radius is found"""
        location = TripFixtures.location('loc-1', EIFFEL_TOWER)
        point = offset(EIFFEL_TOWER, 199)
        assert index.nearest(point, [location]) is location

    def test_nearest_outside_radius(self, index):
        """Test a location just outside the cluster radius is ignored"""
        location = TripFixtures.location('loc-1', EIFFEL_TOWER)
        point = offset(EIFFEL_TOWER, 201)
        assert index.nearest(point, [location]) is None

    def test_nearest_at_exact_radius(self):
        """Test the radius boundary is inclusive"""
        location = TripFixtures.location('loc-1', Coordinates(0, 0))
        point = Coordinates(1, 0)
        exact = GeoIndex.distance(Coordinates(0, 0), point)

        assert GeoIndex(cluster_radius_meters=exact).nearest(point, [location]) is location
        assert GeoIndex(cluster_radius_meters=exact - 0.001).nearest(point, [location]) is None

    def test_nearest_picks_closest(self, index):
        """Test the closest of several candidates wins"""
        far = TripFixtures.location('far', offset(EIFFEL_TOWER, 150))
        close = TripFixtures.location('close', offset(EIFFEL_TOWER, 40, bearing=180))
        assert index.nearest(EIFFEL_TOWER, [far, close]).id == 'close'

    def test_nearest_tie_keeps_first(self, index):
        """Test first-encountered location wins ties"""
        first = TripFixtures.location('first', EIFFEL_TOWER)
        second = TripFixtures.location('second', EIFFEL_TOWER)
        assert index.nearest(EIFFEL_TOWER, [first, second]).id == 'first'
        assert index.nearest(EIFFEL_TOWER, [second, first]).id == 'second'

    def test_nearest_skips_unresolved(self, index):
        """Test locations without coordinates are never candidates"""
        unresolved = TripFixtures.location('unresolved', None, name='Somewhere')
        assert index.nearest(EIFFEL_TOWER, [unresolved]) is None

        resolved = TripFixtures.location('resolved', EIFFEL_TOWER_NEARBY)
        assert index.nearest(EIFFEL_TOWER, [unresolved, resolved]).id == 'resolved'

    def test_nearest_empty(self, index):
        """Test no locations yields None"""
        assert index.nearest(EIFFEL_TOWER, []) is None

    def test_nearest_is_deterministic(self, index):
        """Test repeated queries return the same location"""
        locations = [
            TripFixtures.location('a', offset(EIFFEL_TOWER, 120)),
            TripFixtures.location('b', offset(EIFFEL_TOWER, 80, bearing=0)),
            TripFixtures.location('c', MONTPARNASSE),
        ]
        results = {index.nearest(EIFFEL_TOWER, locations).id for _ in range(10)}
        assert results == {'b'}

    def test_default_radius(self, index):
        """Test the default cluster radius"""
        assert index.cluster_radius_meters == CLUSTER_RADIUS_METERS == 200

    def test_invalid_coordinates(self):
        """Test out-of-range coordinates are rejected"""
        with pytest.raises(ValueError):
            Coordinates(91, 0)
        with pytest.raises(ValueError):
            Coordinates(0, -181)

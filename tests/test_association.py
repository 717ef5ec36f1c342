import pytest
from core.association import AssociationEngine
from datetime import timedelta
from fixtures import BASE_TIME, EIFFEL_TOWER, MONTPARNASSE, TripFixtures


class TestAssociationEngine:
    """Test suite for AssociationEngine"""

    @pytest.fixture
    def store(self):
        store, _ = TripFixtures.create_store()
        store.locations.insert(TripFixtures.location('loc-l', EIFFEL_TOWER, name='Eiffel Tower').to_record())
        store.locations.insert(TripFixtures.location('loc-m', MONTPARNASSE, name='Montparnasse').to_record())
        return store

    @pytest.fixture
    def engine(self, store):
        return AssociationEngine(store)

    def test_reply_attaches_regardless_of_age(self, store, engine):
        """Test a reply to a located photo wins even days later"""
        store.add_media(TripFixtures.media('photo-1', location_id='loc-l', external_ref='file-abc'))

        location = engine.find_location_for_content('trip-1', 'alice', 'file-abc', now=BASE_TIME + timedelta(days=3))

        assert location.id == 'loc-l'

    def test_reply_beats_recency(self, store, engine):
        """Test the reply heuristic short-circuits the recency heuristic"""
        store.add_media(TripFixtures.media('old', location_id='loc-l', external_ref='file-old'))
        store.add_media(TripFixtures.media('recent', created_at=BASE_TIME + timedelta(hours=5), location_id='loc-m'))

        location = engine.find_location_for_content('trip-1', 'alice', 'file-old', now=BASE_TIME + timedelta(hours=5, minutes=10))

        assert location.id == 'loc-l'

    def test_reply_to_unlocated_photo_falls_back_to_recency(self, store, engine):
        """Test a reply to a photo without location uses the recency heuristic"""
        store.add_media(TripFixtures.media('unlocated', external_ref='file-x'))
        store.add_media(TripFixtures.media('located', created_at=BASE_TIME + timedelta(minutes=5), location_id='loc-m'))

        location = engine.find_location_for_content('trip-1', 'alice', 'file-x', now=BASE_TIME + timedelta(minutes=30))

        assert location.id == 'loc-m'

    def test_recency_within_window(self, store, engine):
        """Test a voice note 90 minutes after the last located photo attaches to it"""
        store.add_media(TripFixtures.media('photo-1', location_id='loc-m'))

        location = engine.find_location_for_content('trip-1', 'alice', now=BASE_TIME + timedelta(minutes=90))

        assert location.id == 'loc-m'

    def test_recency_outside_window(self, store, engine):
        """Test a voice note 3 hours after the last located photo stays unassigned"""
        store.add_media(TripFixtures.media('photo-1', location_id='loc-m'))

        assert engine.find_location_for_content('trip-1', 'alice', now=BASE_TIME + timedelta(hours=3)) is None

    def test_recency_uses_most_recent_media(self, store, engine):
        """Test the newest located media decides"""
        store.add_media(TripFixtures.media('first', location_id='loc-l'))
        store.add_media(TripFixtures.media('second', created_at=BASE_TIME + timedelta(minutes=20), location_id='loc-m'))

        location = engine.find_location_for_content('trip-1', 'alice', now=BASE_TIME + timedelta(minutes=30))

        assert location.id == 'loc-m'

    def test_recency_ignores_other_submitters(self, store, engine):
        """Test only the submitter's own media counts"""
        store.add_media(TripFixtures.media('bobs', location_id='loc-l', user_id='bob'))

        assert engine.find_location_for_content('trip-1', 'alice', now=BASE_TIME + timedelta(minutes=10)) is None

    def test_recency_ignores_unlocated_media(self, store, engine):
        """Test media without a location is skipped"""
        store.add_media(TripFixtures.media('located', location_id='loc-l'))
        store.add_media(TripFixtures.media('unlocated', created_at=BASE_TIME + timedelta(minutes=10)))

        location = engine.find_location_for_content('trip-1', 'alice', now=BASE_TIME + timedelta(minutes=20))

        assert location.id == 'loc-l'

    def test_no_content_history(self, engine):
        """Test nothing to go on returns None"""
        assert engine.find_location_for_content('trip-1', 'alice', 'missing-ref', now=BASE_TIME) is None

import json
import pytest
from datetime import UTC, datetime
from main import main
from unittest.mock import Mock


class TestMain:
    """End-to-end tests for the command line entry point"""

    @pytest.fixture
    def run(self, tmp_path, capsys):
        store_file = tmp_path / "store.json"
        media_dir = tmp_path / "media"

        def _run(*argv):
            with pytest.raises(SystemExit) as exc_info:
                main([*argv, '--store-file', str(store_file), '--media-dir', str(media_dir), '--offline'])
            return exc_info.value.code, capsys.readouterr().out

        return _run

    def test_trip_lifecycle(self, run, tmp_path):
        """Test creating a trip, ingesting content and structuring it"""
        code, out = run('trip-new', '--name', 'Paris weekend')
        assert code == 0
        assert "Created trip 'Paris weekend'" in out

        code, out = run(
            'ingest-photo',
            '--user', 'alice',
            '--name', 'Alice',
            '--file-url', 'https://example.com/1.jpg',
            '--lat', '48.8584',
            '--lng', '2.2945',
            '--shot-at', '2024-05-01T10:00:00Z',
            '--ref', 'msg-1',
        )
        assert code == 0
        assert "Stored 1 media at: Unknown place" in out

        code, out = run('ingest-review', '--user', 'alice', '--text', 'Great view', '--reply-to', 'msg-1')
        assert code == 0
        assert "Review stored at: Unknown place" in out

        code, out = run('locations')
        assert "1 photos, 1 reviews" in out

        output_file = tmp_path / "structured.json"
        code, _ = run('structure', '--output', str(output_file))
        assert code == 0
        data = json.loads(output_file.read_text())
        days = {day['date']: day for day in data['days']}
        assert days['2024-05-01']['day_number'] == 1
        assert days['2024-05-01']['locations'][0]['photos'][0]['author'] == 'Alice'

        # Reviews are dated on the day they are submitted
        review_day = days[datetime.now(UTC).date().isoformat()]
        assert review_day['locations'][0]['reviews'][0]['text'] == 'Great view'
        assert review_day['locations'][0]['location']['name'] == 'Unknown place'

        itinerary_file = tmp_path / "itinerary.md"
        code, _ = run('itinerary', '--output', str(itinerary_file))
        assert code == 0
        assert "# Paris weekend" in itinerary_file.read_text()

    def test_location_without_media(self, run):
        """Test a location message with nothing to bind"""
        run('trip-new', '--name', 'Rome')

        code, out = run('ingest-location', '--user', 'bob', '--lat', '41.8902', '--lng', '12.4922')

        assert code == 0
        assert "no unlocated media" in out

    def test_status(self, run):
        """Test trip statistics output"""
        run('trip-new', '--name', 'Rome')
        run('ingest-photo', '--user', 'bob', '--file-url', 'https://example.com/1.jpg')

        code, out = run('status')

        assert code == 0
        assert "Media: 1 (1 without location)" in out

    def test_missing_trip(self, run):
        """Test commands against a missing trip fail cleanly"""
        code, _ = run('status')
        assert code == 1

        code, _ = run('status', '--trip', 'nope')
        assert code == 1

    def test_invalid_input(self, run):
        """Test argument validation errors exit non-zero"""
        run('trip-new', '--name', 'Rome')

        assert run('ingest-photo', '--user', 'bob')[0] == 1
        assert run('ingest-photo', '--file-url', 'u1')[0] == 1
        assert run('ingest-photo', '--user', 'bob', '--file-url', 'u1', '--lat', '95', '--lng', '0')[0] == 1
        assert run('ingest-review', '--user', 'bob')[0] == 1

    def test_enricher_closed(self, tmp_path, monkeypatch):
        """Test the enrichment clients are released when the command ends"""
        enricher = Mock()
        monkeypatch.setattr('main.build_enricher', lambda offline: enricher)

        with pytest.raises(SystemExit) as exc_info:
            main(['trip-list', '--store-file', str(tmp_path / "store.json")])

        assert exc_info.value.code == 0
        enricher.close.assert_called_once()

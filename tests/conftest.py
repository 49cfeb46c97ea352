"""
Shared pytest fixtures for scorekeeper tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - fast subset (skips the bracket size sweeps)
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from scorekeeper.models import PlayerRatingStats
from scorekeeper.rating import RatingEngine
from scorekeeper.stores import InMemoryMatchStore, InMemoryPlayerRatingStore


def player_ids(n):
    """Player ids p1..pn in input order."""
    return [f"p{i}" for i in range(1, n + 1)]


class RecordingRatingStore(InMemoryPlayerRatingStore):
    """In-memory store that remembers every persist call and can refuse them."""

    def __init__(self, players=None, accept=True):
        super().__init__(players)
        self.accept = accept
        self.persist_calls = []

    def persist(self, player_id, stats):
        self.persist_calls.append((player_id, stats.copy()))
        if not self.accept:
            return False
        return super().persist(player_id, stats)


@pytest.fixture
def eight_players():
    return player_ids(8)


@pytest.fixture
def rating_store():
    return RecordingRatingStore()


@pytest.fixture
def rating_engine(rating_store):
    return RatingEngine(store=rating_store)


@pytest.fixture
def seeded_engine(rating_store):
    """Engine with two fresh players at the initial rating."""
    engine = RatingEngine(store=rating_store)
    engine.load({'alice': PlayerRatingStats(), 'bob': PlayerRatingStats()})
    return engine


@pytest.fixture
def match_store():
    return InMemoryMatchStore()


@pytest.fixture
def client():
    """Create a Flask test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the application at an empty temporary data directory."""
    import app as app_module

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.delenv('SCOREKEEPER_SETTINGS', raising=False)
    return str(data_dir)

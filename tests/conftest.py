"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from entalk.decks.models import Event, Location  # noqa: E402
from entalk.stores.memory import InMemoryStore  # noqa: E402
from tests.factories import EVENT_ID, LOCATION_ID, NOW  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture
def clock():
    """Fixed clock returning NOW."""
    return lambda: NOW


@pytest.fixture
def store(clock):
    """InMemoryStore with two events and two locations registered."""
    store = InMemoryStore(clock=clock)
    store.add_location(Location(id=LOCATION_ID, name="Cafe Lingua"))
    store.add_location(Location(id="loc-2", name="Library Hall"))
    store.add_event(
        Event(id=EVENT_ID, name="street food", user_id="organizer-1", location_id=LOCATION_ID)
    )
    store.add_event(Event(id="event-2", name="travel", user_id="organizer-1"))
    return store

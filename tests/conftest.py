"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient

from fincalc.main import app
from fincalc.api.calculator import SessionStore, get_session_store
from fincalc.calculator import Calculator


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks integration tests")


@pytest.fixture
def session_store():
    """Fresh calculator session store per test."""
    store = SessionStore(max_sessions=3, payments_per_year=1)
    app.dependency_overrides[get_session_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_session_store, None)


@pytest.fixture
def client(session_store):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def calculator():
    """Calculator in END mode with one payment per year."""
    return Calculator()


@pytest.fixture
def solve_events(calculator):
    """Solve notifications emitted by the calculator fixture."""
    events = []
    calculator.subscribe(events.append)
    return events

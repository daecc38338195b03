# services/analytics/tests/unit/conftest.py

import pytest
from analytics.app import app, get_dashboard_state, get_recommendation_client
from analytics.models import DataSource
from analytics.state import DashboardState
from fastapi.testclient import TestClient
from helpers import StubRecommendationClient


@pytest.fixture
def dashboard_state(sample_csv_text):
    """State preloaded with the four-user sample."""
    state = DashboardState()
    state.load_text(sample_csv_text, DataSource.SAMPLE)
    return state


@pytest.fixture
def stub_client():
    return StubRecommendationClient()


@pytest.fixture
def client(dashboard_state, stub_client):
    """
    TestClient wired to the prepared state and stub recommender.

    The lifespan is not entered, so nothing is read from disk.
    """
    app.dependency_overrides[get_dashboard_state] = lambda: dashboard_state
    app.dependency_overrides[get_recommendation_client] = lambda: stub_client
    yield TestClient(app)
    app.dependency_overrides.clear()

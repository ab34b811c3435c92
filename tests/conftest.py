"""Shared pytest fixtures."""

import pytest

from job_alerts.logging.context import clear_log_context
from job_alerts.persistence.database import close_database, init_database


@pytest.fixture
def temp_database():
    """Create a temporary in-memory database for testing."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture(autouse=True)
def reset_log_context():
    clear_log_context()
    yield
    clear_log_context()

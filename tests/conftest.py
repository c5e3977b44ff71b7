"""Shared test fixtures and configuration.

Sets up environment variables before any src imports so settings are
predictable, and provides a mocked data service.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("API_BASE_URL", "http://api.test")
os.environ.setdefault("HTTP_TIMEOUT_SECONDS", "5")
os.environ.setdefault("USER_CACHE_TTL_SECONDS", "600")
os.environ.setdefault("TIMEZONE", "UTC")

import pytest
from unittest.mock import AsyncMock, MagicMock


_SERVICE_METHODS = (
    "fetch_user",
    "fetch_users",
    "fetch_friendships",
    "fetch_scheduled_activities",
    "fetch_activities",
    "fetch_all_activities",
    "fetch_locations",
    "fetch_participants_by_user",
    "fetch_participants_by_scheduled_activities",
    "fetch_user_availability",
    "create_location",
    "create_activity",
    "create_scheduled_activities",
    "create_activity_participant",
    "create_user_activity_preference",
    "create_user_activity_preference_participant",
    "create_repeat_scheduled_activities",
    "update_scheduled_activity",
    "update_activity_participant",
    "delete_scheduled_activity",
)


@pytest.fixture
def service():
    """A DataServicePort stand-in whose methods are all AsyncMocks returning []."""
    mock = MagicMock()
    for name in _SERVICE_METHODS:
        setattr(mock, name, AsyncMock(return_value=[]))
    mock.delete_scheduled_activity = AsyncMock(return_value=None)
    return mock

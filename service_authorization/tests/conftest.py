"""
Fixtures for Authorization Service tests.
"""

import pytest

from service_authorization.tests.fakes import STEAM_ID, InMemoryCache, RecordingNotifier


@pytest.fixture
def steam_id():
    return STEAM_ID


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest.fixture
def recording_notifier():
    return RecordingNotifier()

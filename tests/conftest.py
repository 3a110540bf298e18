"""Shared fixtures and record builders."""

import time
from types import SimpleNamespace
from typing import Callable, List

import httpx
import pytest

from activity_trend.models.strava import Activity, SegmentEffort, StravaCredentials
from activity_trend.services import pagination, similarity
from activity_trend.services.activity_store import ActivityStore
from activity_trend.services.credential_store import InMemoryCredentialStore
from activity_trend.services.strava_service import StravaService
from activity_trend.services.token_manager import TokenManager
from activity_trend.utils.auth import StravaAuthHelper

API = "https://strava.test/api/v3"
OAUTH = "https://strava.test/oauth"


def make_activity(activity_id: int, **overrides) -> Activity:
    data = {
        "id": activity_id,
        "name": f"Activity {activity_id}",
        "distance": 10000.0,
        "moving_time": 3000,
        "elapsed_time": 3100,
        "total_elevation_gain": 100.0,
        "type": "Run",
        "sport_type": "Run",
        "start_date": f"2024-01-{(activity_id % 28) + 1:02d}T07:00:00Z",
        "average_speed": 3.33,
        "max_speed": 5.0,
    }
    data.update(overrides)
    return Activity(**data)


def make_effort(effort_id: int, segment_id: int, **overrides) -> SegmentEffort:
    data = {
        "id": effort_id,
        "name": f"Segment {segment_id}",
        "segment": {"id": segment_id, "name": f"Segment {segment_id}", "distance": 800.0},
        "elapsed_time": 240,
        "moving_time": 238,
        "start_date": "2024-01-01T07:10:00Z",
    }
    data.update(overrides)
    return SegmentEffort(**data)


def activity_json(activity: Activity) -> dict:
    return activity.model_dump(mode="json", exclude_none=True)


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    """Record throttling delays instead of actually sleeping."""
    recorded: List[float] = []

    async def fake_sleep(seconds):
        recorded.append(seconds)

    fake_asyncio = SimpleNamespace(sleep=fake_sleep)
    monkeypatch.setattr(pagination, "asyncio", fake_asyncio)
    monkeypatch.setattr(similarity, "asyncio", fake_asyncio)
    return recorded


@pytest.fixture
def credentials_store() -> InMemoryCredentialStore:
    return InMemoryCredentialStore(StravaCredentials(
        client_id="cid",
        client_secret="secret",
        access_token="tok",
        refresh_token="rtok",
        expires_at=int(time.time()) + 6 * 3600,
    ))


@pytest.fixture
def store(tmp_path) -> ActivityStore:
    return ActivityStore(str(tmp_path / "activities.db"))


@pytest.fixture
def make_strava(credentials_store) -> Callable[[Callable[[httpx.Request], httpx.Response]], StravaService]:
    """Build a StravaService whose requests are answered by ``handler``."""

    def factory(handler):
        transport = httpx.MockTransport(handler)
        token_manager = TokenManager(credentials_store, StravaAuthHelper(OAUTH, transport=transport))
        return StravaService(token_manager, base_url=API, transport=transport)

    return factory

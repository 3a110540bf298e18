"""Tests for token refresh, connect and disconnect."""

import json
from urllib.parse import parse_qs

import httpx
import pytest

from activity_trend.models.strava import StravaCredentials
from activity_trend.services.credential_store import InMemoryCredentialStore, JsonCredentialStore
from activity_trend.services.errors import AuthError, DataError
from activity_trend.services.token_manager import TokenManager
from activity_trend.utils.auth import StravaAuthHelper, extract_authorization_code, normalize_redirect_uri

from tests.conftest import OAUTH

NOW = 1_700_000_000


def _manager(credentials, handler=None, store=None):
    requests = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if handler is None:
            return httpx.Response(200, json={
                "access_token": "new-access",
                "refresh_token": "new-refresh",
                "expires_at": NOW + 21600,
                "expires_in": 21600,
                "token_type": "Bearer",
                "athlete": {"id": 1, "firstname": "Ada"},
            })
        return handler(request)

    store = store or InMemoryCredentialStore(credentials)
    helper = StravaAuthHelper(OAUTH, transport=httpx.MockTransport(recording))
    return TokenManager(store, helper, clock=lambda: NOW), store, requests


def _creds(**overrides):
    data = dict(client_id="cid", client_secret="secret", access_token="old-access",
                refresh_token="old-refresh", expires_at=NOW + 3600)
    data.update(overrides)
    return StravaCredentials(**data)


@pytest.mark.asyncio
async def test_refreshes_inside_safety_margin():
    manager, store, requests = _manager(_creds(expires_at=NOW + 30))

    token = await manager.get_valid_token()

    assert token == "new-access"
    assert len(requests) == 1
    form = parse_qs(requests[0].content.decode())
    assert form["grant_type"] == ["refresh_token"]
    assert form["refresh_token"] == ["old-refresh"]
    saved = store.load()
    assert (saved.access_token, saved.refresh_token, saved.expires_at) == ("new-access", "new-refresh", NOW + 21600)


@pytest.mark.asyncio
async def test_no_refresh_outside_safety_margin():
    manager, _, requests = _manager(_creds(expires_at=NOW + 120))

    assert await manager.get_valid_token() == "old-access"
    assert requests == []


@pytest.mark.asyncio
async def test_no_expiry_returns_stored_token():
    manager, _, requests = _manager(_creds(expires_at=0))

    assert await manager.get_valid_token() == "old-access"
    assert requests == []


@pytest.mark.asyncio
async def test_expired_without_refresh_credentials_falls_back_to_access_token():
    manager, _, requests = _manager(_creds(expires_at=NOW - 10, client_secret=""))

    assert await manager.get_valid_token() == "old-access"
    assert requests == []


@pytest.mark.asyncio
async def test_expired_without_anything_is_missing_credentials():
    manager, _, _ = _manager(_creds(expires_at=NOW - 10, refresh_token="", access_token=""))

    with pytest.raises(AuthError, match="missing credentials"):
        await manager.get_valid_token()


@pytest.mark.asyncio
async def test_never_connected_is_missing_credentials():
    manager, _, _ = _manager(StravaCredentials())

    with pytest.raises(AuthError, match="missing credentials"):
        await manager.get_valid_token()


@pytest.mark.asyncio
async def test_failed_refresh_raises_and_keeps_state():
    manager, store, requests = _manager(
        _creds(expires_at=NOW - 10),
        handler=lambda request: httpx.Response(400, json={"message": "Bad Request"}),
    )

    with pytest.raises(AuthError, match="refresh failed"):
        await manager.get_valid_token()

    assert len(requests) == 1
    assert store.load().access_token == "old-access"


@pytest.mark.asyncio
async def test_refresh_is_visible_to_the_next_call():
    manager, _, requests = _manager(_creds(expires_at=NOW + 5))

    assert await manager.get_valid_token() == "new-access"
    assert await manager.get_valid_token() == "new-access"
    assert len(requests) == 1


@pytest.mark.asyncio
async def test_connect_accepts_a_pasted_redirect_url():
    manager, store, requests = _manager(_creds(access_token="", refresh_token="", expires_at=0))

    response = await manager.connect("http://localhost:8000/?state=&code=abc123&scope=read,activity:read_all")

    assert response.athlete.firstname == "Ada"
    assert response.athlete.id == 1
    form = parse_qs(requests[0].content.decode())
    assert form["code"] == ["abc123"]
    assert form["grant_type"] == ["authorization_code"]
    assert store.load().access_token == "new-access"


@pytest.mark.asyncio
async def test_connect_without_client_credentials():
    manager, _, requests = _manager(StravaCredentials())

    with pytest.raises(AuthError):
        await manager.connect("abc")
    assert requests == []


def test_manual_tokens_and_disconnect():
    manager, store, _ = _manager(_creds())

    manager.save_manual_tokens("manual", "manual-refresh")
    saved = store.load()
    assert saved.access_token == "manual"
    assert saved.expires_at == NOW + 20000

    manager.disconnect()
    saved = store.load()
    assert (saved.access_token, saved.refresh_token, saved.expires_at) == ("", "", 0)
    assert saved.client_id == "cid"
    assert manager.status().connected is False


def test_manual_tokens_require_access_token():
    manager, _, _ = _manager(_creds())

    with pytest.raises(DataError):
        manager.save_manual_tokens("")


def test_authorization_url():
    manager, _, _ = _manager(_creds())

    url = manager.authorization_url("https://trends.example.com/settings")

    assert url.startswith(f"{OAUTH}/authorize?")
    assert "client_id=cid" in url
    assert "redirect_uri=https%3A%2F%2Ftrends.example.com" in url
    assert "scope=activity%3Aread_all" in url


def test_code_and_redirect_helpers():
    assert extract_authorization_code(" abc ") == "abc"
    assert extract_authorization_code("https://x.test/?code=xyz&scope=read") == "xyz"
    assert normalize_redirect_uri("localhost:8000/path") == "http://localhost:8000"
    assert normalize_redirect_uri("http://trends.example.com/a/b") == "https://trends.example.com"


@pytest.mark.asyncio
async def test_json_store_persists_refresh(tmp_path):
    token_file = tmp_path / "tokens" / "strava.json"
    store = JsonCredentialStore(str(token_file), defaults=_creds(expires_at=NOW + 30))
    manager, _, _ = _manager(None, store=store)

    await manager.get_valid_token()

    on_disk = json.loads(token_file.read_text())
    assert on_disk["access_token"] == "new-access"
    assert on_disk["client_id"] == "cid"
    reloaded = JsonCredentialStore(str(token_file))
    assert reloaded.load().refresh_token == "new-refresh"


@pytest.mark.parametrize("content", [
    '["not", "an", "object"]',
    '{"access_token": "file-access", "expires_at": "soon"}',
    "{not json",
])
def test_json_store_falls_back_to_defaults_on_bad_file(tmp_path, content):
    token_file = tmp_path / "strava.json"
    token_file.write_text(content)

    store = JsonCredentialStore(str(token_file), defaults=_creds())

    assert store.load() == _creds()

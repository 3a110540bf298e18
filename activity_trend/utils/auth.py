"""Authentication utilities for Strava OAuth."""

import re
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from activity_trend.config import settings

_CODE_PATTERN = re.compile(r"[?&]code=([^&]+)")


def extract_authorization_code(code_or_url: str) -> str:
    """Return the bare OAuth code from either a code or a pasted redirect URL."""
    code = code_or_url.strip()
    if "code=" in code:
        match = _CODE_PATTERN.search(code)
        if match:
            code = match.group(1)
    return code.split("&")[0]


def normalize_redirect_uri(redirect_uri: str) -> str:
    """Reduce a redirect URI to scheme + host, the only part Strava checks."""
    domain = re.sub(r"^(blob:)?https?://", "", redirect_uri.strip())
    domain = domain.split("/")[0]
    is_local = "localhost" in domain or "127.0.0.1" in domain
    return f"{'http' if is_local else 'https'}://{domain}"


class StravaAuthHelper:
    """Helper class for Strava OAuth authentication flow."""

    def __init__(
        self,
        oauth_base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.oauth_base_url = (oauth_base_url or settings.strava_oauth_base_url).rstrip("/")
        self.scope = "activity:read_all"
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self.oauth_base_url}/token"

    def get_authorization_url(self, client_id: str, redirect_uri: str, state: Optional[str] = None) -> str:
        """Generate Strava OAuth authorization URL."""
        params = {
            "client_id": client_id,
            "redirect_uri": normalize_redirect_uri(redirect_uri),
            "response_type": "code",
            "scope": self.scope,
            "approval_prompt": "force",
        }

        if state:
            params["state"] = state

        return f"{self.oauth_base_url}/authorize?{urlencode(params)}"

    async def _post_token(self, data: Dict[str, str]) -> Dict[str, Any]:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.post(self.token_url, data=data, timeout=30.0)
            response.raise_for_status()
            return response.json()

    async def exchange_code_for_token(self, client_id: str, client_secret: str, code: str) -> Dict[str, Any]:
        """Exchange authorization code for access token."""
        return await self._post_token({
            "client_id": client_id,
            "client_secret": client_secret,
            "code": code,
            "grant_type": "authorization_code",
        })

    async def refresh_token(self, client_id: str, client_secret: str, refresh_token: str) -> Dict[str, Any]:
        """Refresh access token using refresh token."""
        return await self._post_token({
            "client_id": client_id,
            "client_secret": client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        })

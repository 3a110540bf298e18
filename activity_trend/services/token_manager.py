"""OAuth token lifecycle: connect, refresh on demand, disconnect."""

import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from activity_trend.models.strava import AuthStatus, StravaAuthResponse, StravaCredentials
from activity_trend.services.credential_store import CredentialStore
from activity_trend.services.errors import AuthError, DataError
from activity_trend.utils.auth import StravaAuthHelper, extract_authorization_code

logger = logging.getLogger(__name__)

# Refresh this many seconds before the token actually expires
REFRESH_MARGIN_SECONDS = 60
# Manually pasted tokens carry no expiry, assume roughly five and a half hours
MANUAL_TOKEN_LIFETIME_SECONDS = 20000


class TokenManager:
    """Owns credential state and hands out valid access tokens.

    The credential store is read at the start of every call, so a refresh
    performed by one operation is visible to the next one.
    """

    def __init__(
        self,
        store: CredentialStore,
        auth_helper: Optional[StravaAuthHelper] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.auth_helper = auth_helper or StravaAuthHelper()
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def _apply_tokens(self, tokens: StravaAuthResponse) -> StravaCredentials:
        credentials = self.store.load()
        credentials.access_token = tokens.access_token
        credentials.refresh_token = tokens.refresh_token
        credentials.expires_at = tokens.expires_at
        self.store.save(credentials)
        return credentials

    async def get_valid_token(self) -> str:
        """Return an access token, refreshing it first if it is about to expire."""
        credentials = self.store.load()

        if credentials.expires_at and self._now() > credentials.expires_at - REFRESH_MARGIN_SECONDS:
            if not (credentials.refresh_token and credentials.client_id and credentials.client_secret):
                if credentials.access_token:
                    return credentials.access_token
                raise AuthError("missing credentials")

            logger.info(f"Strava token expiring (expires_at: {credentials.expires_at}). Refreshing...")
            try:
                data = await self.auth_helper.refresh_token(
                    credentials.client_id,
                    credentials.client_secret,
                    credentials.refresh_token,
                )
                tokens = StravaAuthResponse(**data)
            except (httpx.HTTPError, ValidationError, ValueError, TypeError) as e:
                logger.error(f"Token refresh failed: {e}")
                raise AuthError("refresh failed") from e

            self._apply_tokens(tokens)
            return tokens.access_token

        if not credentials.access_token:
            raise AuthError("missing credentials")
        return credentials.access_token

    async def connect(self, code_or_url: str) -> StravaAuthResponse:
        """Exchange an authorization code (or pasted redirect URL) for tokens."""
        credentials = self.store.load()
        if not credentials.has_client:
            raise AuthError("missing credentials")

        code = extract_authorization_code(code_or_url)
        if not code:
            raise DataError("Authorization code is empty")

        try:
            data = await self.auth_helper.exchange_code_for_token(
                credentials.client_id, credentials.client_secret, code
            )
            tokens = StravaAuthResponse(**data)
        except (httpx.HTTPError, ValidationError, ValueError, TypeError) as e:
            logger.error(f"Authorization code exchange failed: {e}")
            raise AuthError("authentication failed") from e

        self._apply_tokens(tokens)
        firstname = tokens.athlete.firstname if tokens.athlete else None
        logger.info(f"Connected to Strava as {firstname or 'unknown athlete'}")
        return tokens

    def save_manual_tokens(self, access_token: str, refresh_token: str = "") -> StravaCredentials:
        if not access_token:
            raise DataError("Access Token is required.")
        credentials = self.store.load()
        credentials.access_token = access_token
        credentials.refresh_token = refresh_token
        credentials.expires_at = self._now() + MANUAL_TOKEN_LIFETIME_SECONDS
        self.store.save(credentials)
        return credentials

    def update_client(self, client_id: str, client_secret: str) -> StravaCredentials:
        credentials = self.store.load()
        credentials.client_id = client_id.strip()
        credentials.client_secret = client_secret.strip()
        self.store.save(credentials)
        return credentials

    def disconnect(self) -> None:
        """Forget the token triple; the app client id/secret are kept."""
        credentials = self.store.load()
        credentials.access_token = ""
        credentials.refresh_token = ""
        credentials.expires_at = 0
        self.store.save(credentials)
        logger.info("Disconnected from Strava")

    def authorization_url(self, redirect_uri: str) -> str:
        credentials = self.store.load()
        if not credentials.client_id:
            raise AuthError("missing credentials")
        return self.auth_helper.get_authorization_url(credentials.client_id, redirect_uri)

    def status(self) -> AuthStatus:
        credentials = self.store.load()
        return AuthStatus(
            connected=bool(credentials.access_token),
            has_client=credentials.has_client,
            expires_at=credentials.expires_at,
        )

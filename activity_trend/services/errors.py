"""Exception taxonomy shared by the Strava client and the sync engine."""

from typing import Optional


class StravaAPIError(Exception):
    """Base class for every failure talking to, or making sense of, Strava."""
    pass


class AuthError(StravaAPIError):
    """Missing, invalid or expired credentials.

    Callers surface this as "reconnect required". A request that failed with
    this error is never retried with the same token.
    """
    pass


class TransportError(StravaAPIError):
    """Network failure or non-auth error status from the remote server."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DataError(StravaAPIError):
    """Malformed or unexpected response shape."""
    pass

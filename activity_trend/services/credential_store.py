"""Durable storage for OAuth credentials."""

import json
import logging
import os
from typing import Optional

from pydantic import ValidationError

from activity_trend.models.strava import StravaCredentials

logger = logging.getLogger(__name__)


class CredentialStore:
    """Load/save interface consulted by TokenManager on every token request."""

    def load(self) -> StravaCredentials:
        raise NotImplementedError

    def save(self, credentials: StravaCredentials) -> None:
        raise NotImplementedError


class InMemoryCredentialStore(CredentialStore):
    """Process-local store, used by tests and ephemeral sessions."""

    def __init__(self, credentials: Optional[StravaCredentials] = None):
        self._credentials = credentials or StravaCredentials()

    def load(self) -> StravaCredentials:
        return self._credentials.model_copy()

    def save(self, credentials: StravaCredentials) -> None:
        self._credentials = credentials.model_copy()


class JsonCredentialStore(CredentialStore):
    """Credentials persisted as a JSON document on local disk.

    ``defaults`` seeds any field missing from the file (typically values from
    the environment). ``save`` writes through to disk before returning and
    replaces the file atomically, so in-memory state never outlives the
    durable copy.
    """

    def __init__(self, token_file: str, defaults: Optional[StravaCredentials] = None):
        self.token_file = token_file
        self._credentials = self._load_file(defaults or StravaCredentials())

    def _load_file(self, defaults: StravaCredentials) -> StravaCredentials:
        """Load credentials from the local file if it exists."""
        if not os.path.exists(self.token_file):
            return defaults
        try:
            with open(self.token_file, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error loading credentials from {self.token_file}: {e}")
            return defaults
        if not isinstance(data, dict):
            logger.error(f"Ignoring credentials in {self.token_file}: expected a JSON object")
            return defaults
        merged = defaults.model_dump()
        merged.update({k: v for k, v in data.items() if k in merged and v is not None})
        try:
            return StravaCredentials(**merged)
        except ValidationError as e:
            logger.error(f"Ignoring malformed credentials in {self.token_file}: {e}")
            return defaults

    def load(self) -> StravaCredentials:
        return self._credentials.model_copy()

    def save(self, credentials: StravaCredentials) -> None:
        directory = os.path.dirname(self.token_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.token_file}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(credentials.model_dump(), f, indent=4)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.token_file)
        self._credentials = credentials.model_copy()

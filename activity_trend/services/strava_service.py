"""Strava API service for handling all Strava-related operations."""

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from activity_trend.config import settings
from activity_trend.models.strava import Activity, Athlete, Segment, SegmentEffort
from activity_trend.services.errors import AuthError, DataError, TransportError
from activity_trend.services.pagination import (
    ACTIVITY_PAGE_LIMIT,
    EFFORT_PAGE_LIMIT,
    PER_PAGE,
    ProgressCallback,
    fetch_all,
)
from activity_trend.services.token_manager import TokenManager

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class StravaService:
    """Service class for interacting with Strava API."""

    def __init__(
        self,
        token_manager: TokenManager,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_manager = token_manager
        self.base_url = (base_url or settings.strava_api_base_url).rstrip("/")
        self._transport = transport

    async def _get_headers(self) -> Dict[str, str]:
        """Get authorization headers for API requests."""
        access_token = await self.token_manager.get_valid_token()
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Make an authenticated request to Strava API.

        A 401 is reported as AuthError and never retried with the same token.
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        headers = await self._get_headers()
        logger.debug(f"[Strava] {method} {url} {params or ''}")

        async with httpx.AsyncClient(transport=self._transport) as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    timeout=30.0
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 401:
                    raise AuthError("Unauthorized: access token is invalid or expired.") from e
                raise TransportError(
                    f"API request failed: {e.response.status_code} - {e.response.text}",
                    status_code=e.response.status_code,
                ) from e
            except httpx.RequestError as e:
                raise TransportError(f"Request error: {str(e)}") from e

        try:
            return response.json()
        except ValueError as e:
            raise DataError(f"Invalid JSON from {endpoint}") from e

    @staticmethod
    def _parse(model: Type[M], data: Any, what: str) -> M:
        if not isinstance(data, dict):
            raise DataError(f"Unexpected {what} response: {type(data).__name__}")
        try:
            return model(**data)
        except ValidationError as e:
            raise DataError(f"Malformed {what} response: {e}") from e

    @classmethod
    def _parse_list(cls, model: Type[M], data: Any, what: str) -> List[M]:
        if not isinstance(data, list):
            raise DataError(f"Unexpected {what} response: expected a list, got {type(data).__name__}")
        return [cls._parse(model, item, what) for item in data]

    async def get_athlete(self) -> Athlete:
        """Get the authenticated athlete's information."""
        data = await self._make_request("GET", "/athlete")
        return self._parse(Athlete, data, "athlete")

    async def get_activities_page(self, page: int, per_page: int = PER_PAGE) -> List[Activity]:
        """One page of activity summaries, newest first. Summaries carry no segment efforts."""
        data = await self._make_request(
            "GET", "/athlete/activities", params={"page": page, "per_page": per_page}
        )
        return self._parse_list(Activity, data, "activity list")

    async def get_activity_by_id(self, activity_id: int) -> Activity:
        """Get detailed information about a specific activity, including segment efforts."""
        data = await self._make_request("GET", f"/activities/{activity_id}")
        activity = self._parse(Activity, data, "activity")
        if activity.segment_efforts is None:
            activity.segment_efforts = []
        return activity

    async def get_segment_by_id(self, segment_id: int) -> Segment:
        data = await self._make_request("GET", f"/segments/{segment_id}")
        return self._parse(Segment, data, "segment")

    async def get_segment_efforts_page(
        self, segment_id: int, page: int, per_page: int = PER_PAGE
    ) -> List[SegmentEffort]:
        data = await self._make_request(
            "GET",
            "/segment_efforts",
            params={"segment_id": segment_id, "per_page": per_page, "page": page},
        )
        return self._parse_list(SegmentEffort, data, "segment efforts")

    async def fetch_all_activities(self, on_progress: Optional[ProgressCallback] = None) -> List[Activity]:
        """Download the athlete's whole activity history (summaries)."""
        return await fetch_all(self.get_activities_page, on_progress, max_pages=ACTIVITY_PAGE_LIMIT)

    async def fetch_segment_efforts(
        self, segment_id: int, on_progress: Optional[ProgressCallback] = None
    ) -> List[SegmentEffort]:
        """Download the athlete's effort history on one segment."""

        async def page_fetcher(page: int) -> List[SegmentEffort]:
            return await self.get_segment_efforts_page(segment_id, page)

        return await fetch_all(page_fetcher, on_progress, max_pages=EFFORT_PAGE_LIMIT)

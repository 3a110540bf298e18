"""Entry points used by the HTTP layer, over one shared in-memory activity set."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from activity_trend.config import Settings, settings
from activity_trend.models.strava import (
    Activity,
    RefinementResult,
    SegmentHistory,
    StravaCredentials,
    SyncResult,
    SyncStatus,
)
from activity_trend.services.activity_store import ActivityStore
from activity_trend.services.credential_store import CredentialStore, JsonCredentialStore
from activity_trend.services.pagination import ProgressCallback
from activity_trend.services.segment_service import SegmentService
from activity_trend.services.similarity import SimilarityService, find_similar, merge_activities
from activity_trend.services.strava_service import StravaService
from activity_trend.services.sync_service import SyncService
from activity_trend.services.token_manager import TokenManager
from activity_trend.utils.auth import StravaAuthHelper

logger = logging.getLogger(__name__)


class SyncInProgressError(Exception):
    """Raised when a sync is requested while another one is running."""
    pass


class ActivityTrendService:
    def __init__(
        self,
        token_manager: TokenManager,
        strava_service: StravaService,
        store: ActivityStore,
    ):
        self.token_manager = token_manager
        self.strava_service = strava_service
        self.store = store
        self.sync_service = SyncService(strava_service, store)
        self.segment_service = SegmentService(strava_service)
        self.similarity_service = SimilarityService(strava_service, store)

        self.activities: List[Activity] = []
        self._sync_lock = asyncio.Lock()
        self._sync_progress = 0
        self._last_synced_at: Optional[datetime] = None
        self._last_count: Optional[int] = None

    @classmethod
    def from_settings(
        cls,
        config: Settings = settings,
        credential_store: Optional[CredentialStore] = None,
    ) -> "ActivityTrendService":
        credential_store = credential_store or JsonCredentialStore(
            config.strava_token_file,
            defaults=StravaCredentials(
                client_id=config.strava_client_id,
                client_secret=config.strava_client_secret,
                access_token=config.strava_access_token,
                refresh_token=config.strava_refresh_token,
                expires_at=config.strava_token_expires_at,
            ),
        )
        token_manager = TokenManager(credential_store, StravaAuthHelper(config.strava_oauth_base_url))
        strava_service = StravaService(token_manager, config.strava_api_base_url)
        return cls(token_manager, strava_service, ActivityStore(config.database_path))

    def load(self) -> List[Activity]:
        """Populate the in-memory set from the local store."""
        self.activities = self.store.get_all()
        logger.info(f"Loaded {len(self.activities)} stored activities")
        return self.activities

    def get_activity(self, activity_id: int) -> Optional[Activity]:
        return next((a for a in self.activities if a.id == activity_id), None)

    async def get_valid_token(self) -> str:
        return await self.token_manager.get_valid_token()

    async def full_sync(self, on_progress: Optional[ProgressCallback] = None) -> SyncResult:
        """Run a full sync; only one may be in flight at a time."""
        if self._sync_lock.locked():
            raise SyncInProgressError("A sync is already running")

        async with self._sync_lock:
            self._sync_progress = 0

            def progress(count: int) -> None:
                self._sync_progress = count
                if on_progress:
                    on_progress(count)

            try:
                activities = await self.sync_service.full_sync(progress)
            finally:
                self._sync_progress = 0

            self.activities = sorted(activities, key=lambda a: a.start_date.timestamp(), reverse=True)
            self._last_synced_at = datetime.now(timezone.utc)
            self._last_count = len(activities)
            return SyncResult(count=len(activities), synced_at=self._last_synced_at)

    def sync_status(self) -> SyncStatus:
        return SyncStatus(
            in_progress=self._sync_lock.locked(),
            progress=self._sync_progress,
            last_synced_at=self._last_synced_at,
            last_count=self._last_count,
        )

    async def load_segment_history(
        self, segment_id: int, on_progress: Optional[ProgressCallback] = None
    ) -> SegmentHistory:
        return await self.segment_service.load_segment_history(segment_id, self.activities, on_progress)

    def find_similar(self, reference: Activity, use_segment_refinement: bool = False) -> List[Activity]:
        return find_similar(reference, self.activities, use_segment_refinement)

    async def refine_matches(self, reference: Activity) -> RefinementResult:
        result = await self.similarity_service.refine_matches(reference, self.activities)
        self.activities = merge_activities(self.activities, result.updated)
        return result

    def disconnect(self) -> None:
        self.token_manager.disconnect()

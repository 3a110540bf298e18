"""Full resynchronization of the local activity store."""

import logging
from typing import List, Optional

from activity_trend.models.strava import Activity
from activity_trend.services.activity_store import ActivityStore
from activity_trend.services.pagination import ProgressCallback
from activity_trend.services.strava_service import StravaService

logger = logging.getLogger(__name__)


class SyncService:
    """Replaces the stored activity set with a fresh download.

    The list endpoint only returns summaries. Merging them field by field into
    previously detailed records would silently drop ``segment_efforts``, so a
    sync is always a bulk replace and details are re-fetched lazily.
    """

    def __init__(self, strava_service: StravaService, store: ActivityStore):
        self.strava_service = strava_service
        self.store = store

    async def full_sync(self, on_progress: Optional[ProgressCallback] = None) -> List[Activity]:
        """Download every activity and bulk-replace the store.

        The wipe and the write happen in one transaction after the download
        completes, so any failure (auth, transport, data) leaves the stored
        set untouched. Errors propagate to the caller.
        """
        # Fail fast on auth before touching anything
        await self.strava_service.token_manager.get_valid_token()

        logger.info("Starting full activity sync")
        activities = await self.strava_service.fetch_all_activities(on_progress)

        # A page boundary shift during download can repeat an activity
        unique = list({activity.id: activity for activity in activities}.values())
        self.store.replace_all(unique)

        logger.info(f"Sync complete: {len(unique)} activities")
        return unique

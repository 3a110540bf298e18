"""Segment effort history: local cache reconciled with the remote endpoint."""

import logging
from typing import Iterable, List, Optional

from activity_trend.models.strava import Activity, SegmentEffort, SegmentHistory
from activity_trend.services.errors import DataError, StravaAPIError
from activity_trend.services.pagination import ProgressCallback
from activity_trend.services.strava_service import StravaService

logger = logging.getLogger(__name__)


def effort_sort_key(effort: SegmentEffort) -> float:
    return effort.start_date.timestamp() if effort.start_date else 0.0


def collect_local_efforts(activities: Iterable[Activity], segment_id: int) -> List[SegmentEffort]:
    """Efforts on ``segment_id`` embedded in detailed activities.

    Takes the first matching effort of each activity. An effort without its
    own start date inherits the activity's; efforts with no resolvable date
    are dropped.
    """
    efforts = []
    for activity in activities:
        match = next(
            (e for e in activity.segment_efforts or [] if e.segment.id == segment_id),
            None,
        )
        if match is None:
            continue
        effort = match.model_copy(update={"start_date": match.start_date or activity.start_date})
        if effort.start_date:
            efforts.append(effort)
    return efforts


def merge_efforts(local: Iterable[SegmentEffort], remote: Iterable[SegmentEffort]) -> List[SegmentEffort]:
    """Local efforts first, then remote efforts with an id not seen yet.

    Local always wins on an id collision: the remote per-segment history can
    be incomplete, rate limited or restricted, while the locally cached
    efforts are known good. Ids are the only equality used.
    """
    merged: List[SegmentEffort] = []
    seen = set()
    for effort in list(local) + list(remote):
        if effort.id in seen:
            continue
        seen.add(effort.id)
        merged.append(effort)
    return merged


class SegmentService:
    def __init__(self, strava_service: StravaService):
        self.strava_service = strava_service

    async def load_segment_history(
        self,
        segment_id: int,
        activities: Iterable[Activity],
        on_progress: Optional[ProgressCallback] = None,
    ) -> SegmentHistory:
        """Segment detail plus every known effort on it, oldest first.

        Detail fetch failures propagate. The remote effort history is best
        effort: if it fails, the locally cached efforts are still returned.
        """
        segment = await self.strava_service.get_segment_by_id(segment_id)
        if not segment.name:
            raise DataError("Invalid segment data returned from Strava.")

        local = collect_local_efforts(activities, segment_id)

        remote: List[SegmentEffort] = []
        try:
            remote = await self.strava_service.fetch_segment_efforts(segment_id, on_progress)
        except StravaAPIError as e:
            logger.warning(f"Could not fetch remote history for segment {segment_id}, using local only: {e}")

        merged = merge_efforts(local, remote)
        merged.sort(key=effort_sort_key)
        logger.info(
            f"Segment {segment_id}: {len(local)} local + {len(remote)} remote -> {len(merged)} efforts"
        )
        return SegmentHistory(segment=segment, efforts=merged)

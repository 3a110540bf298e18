"""Comparable-effort matching against a reference activity."""

import asyncio
import logging
from typing import Dict, Iterable, List

from activity_trend.models.strava import Activity, RefinementResult
from activity_trend.services.activity_store import ActivityStore
from activity_trend.services.errors import StravaAPIError
from activity_trend.services.strava_service import StravaService
from activity_trend.utils.geo import haversine_km

logger = logging.getLogger(__name__)

DISTANCE_TOLERANCE = 0.05
ELEVATION_TOLERANCE = 0.10
# Flat or short efforts would otherwise get a near-zero elevation band
ELEVATION_FLOOR_M = 20.0
START_RADIUS_KM = 0.5

REFINE_CANDIDATE_LIMIT = 15
DETAIL_FETCH_DELAY_SECONDS = 0.4


def activity_sort_key(activity: Activity) -> float:
    return activity.start_date.timestamp()


def is_base_match(reference: Activity, activity: Activity) -> bool:
    """Type, distance, elevation and start-point checks relative to ``reference``.

    Tolerances are taken from the reference only, so the relation is not
    transitive.
    """
    if activity.type != reference.type:
        return False

    if abs(activity.distance - reference.distance) > reference.distance * DISTANCE_TOLERANCE:
        return False

    max_elev_diff = max(ELEVATION_FLOOR_M, reference.total_elevation_gain * ELEVATION_TOLERANCE)
    if abs(activity.total_elevation_gain - reference.total_elevation_gain) > max_elev_diff:
        return False

    if reference.start_latlng:
        # Partial data never matches a located reference
        if not activity.start_latlng:
            return False
        if haversine_km(reference.start_latlng, activity.start_latlng) > START_RADIUS_KM:
            return False

    return True


def shares_segment(reference: Activity, activity: Activity) -> bool:
    if not activity.segment_efforts:
        return False
    return bool(reference.segment_ids & activity.segment_ids)


def find_similar(
    reference: Activity,
    pool: Iterable[Activity],
    use_segment_refinement: bool = False,
) -> List[Activity]:
    """Activities comparable to ``reference``, oldest first.

    The reference itself is always part of the result; a pool entry with the
    same id is replaced by it. With ``use_segment_refinement`` and a reference
    that has segment efforts, only matches sharing at least one segment id
    are kept. Refinement needs detail on both sides, see
    ``SimilarityService.refine_matches``.
    """
    candidates = [reference] + [a for a in pool if a.id != reference.id]
    matches = [a for a in candidates if is_base_match(reference, a)]
    matches.sort(key=activity_sort_key)

    if use_segment_refinement and reference.segment_efforts:
        matches = [a for a in matches if shares_segment(reference, a)]

    return matches


def merge_activities(pool: Iterable[Activity], updates: Iterable[Activity]) -> List[Activity]:
    """Replace pool entries by id with ``updates`` (whole records, last write wins)."""
    by_id: Dict[int, Activity] = {a.id: a for a in pool}
    for activity in updates:
        by_id[activity.id] = activity
    return list(by_id.values())


class SimilarityService:
    """Fetches the activity details that segment refinement depends on."""

    def __init__(self, strava_service: StravaService, store: ActivityStore):
        self.strava_service = strava_service
        self.store = store

    async def refine_matches(self, reference: Activity, pool: List[Activity]) -> RefinementResult:
        """Make segment refinement possible for ``reference``'s cohort.

        Fetches the reference detail if missing, then the detail of up to the
        first 15 base matches that lack it, one at a time with a short pause
        before each request. A failed candidate is logged and skipped. Fetched
        details are persisted and listed in ``RefinementResult.updated``.
        Errors on the reference itself propagate.
        """
        if not reference.has_details:
            reference = await self.strava_service.get_activity_by_id(reference.id)
            self.store.bulk_upsert([reference])
        pool = merge_activities(pool, [reference])

        if not reference.segment_efforts:
            logger.info(f"Activity {reference.id} has no segments to match against")
            return RefinementResult(
                reference=reference,
                segments_available=False,
                matches=find_similar(reference, pool),
                updated=[reference],
            )

        candidates = find_similar(reference, pool)[:REFINE_CANDIDATE_LIMIT]
        to_fetch = [c for c in candidates if not c.has_details]

        fetched: List[Activity] = []
        failed: List[int] = []
        for candidate in to_fetch:
            await asyncio.sleep(DETAIL_FETCH_DELAY_SECONDS)
            try:
                fetched.append(await self.strava_service.get_activity_by_id(candidate.id))
            except StravaAPIError as e:
                logger.warning(f"Failed details fetch for activity {candidate.id}: {e}")
                failed.append(candidate.id)

        if fetched:
            self.store.bulk_upsert(fetched)
            pool = merge_activities(pool, fetched)

        logger.info(f"Refined cohort of {reference.id}: {len(fetched)} fetched, {len(failed)} failed")
        return RefinementResult(
            reference=reference,
            segments_available=True,
            fetched=len(fetched),
            failed=failed,
            matches=find_similar(reference, pool, use_segment_refinement=True),
            updated=[reference] + fetched,
        )


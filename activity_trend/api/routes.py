from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from activity_trend.config import settings
from activity_trend.models.strava import (
    Activity,
    ActivityFilter,
    Athlete,
    AuthStatus,
    RefinementResult,
    SegmentHistory,
    SegmentSummary,
    SyncResult,
    SyncStatus,
)
from activity_trend.services import analytics
from activity_trend.services.activity_trend_service import ActivityTrendService, SyncInProgressError
from activity_trend.services.errors import AuthError, DataError, StravaAPIError, TransportError

router = APIRouter()
_service: Optional[ActivityTrendService] = None


def get_service() -> ActivityTrendService:
    """Process-wide service instance, built lazily from settings."""
    global _service
    if _service is None:
        _service = ActivityTrendService.from_settings()
    return _service


def _raise_http(e: StravaAPIError):
    if isinstance(e, AuthError):
        # The UI offers "disconnect and reconnect" on this response
        raise HTTPException(status_code=401, detail={"message": str(e), "reconnect_required": True})
    if isinstance(e, (DataError, TransportError)):
        raise HTTPException(status_code=502, detail=str(e))
    raise HTTPException(status_code=400, detail=str(e))


def _require_activity(service: ActivityTrendService, activity_id: int) -> Activity:
    activity = service.get_activity(activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail=f"Activity {activity_id} not found")
    return activity


class ClientCredentialsRequest(BaseModel):
    client_id: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)


class ConnectRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Authorization code or the full redirect URL")


class ManualTokensRequest(BaseModel):
    access_token: str
    refresh_token: str = ""


@router.get("/", summary="Health check")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "message": "Activity Trend API is running"}


# --- Auth ---

@router.get("/auth/status", response_model=AuthStatus, summary="Connection status")
async def auth_status(service: ActivityTrendService = Depends(get_service)):
    return service.token_manager.status()


@router.get("/auth/url", summary="Strava authorization URL")
async def auth_url(
    redirect_uri: Optional[str] = Query(None, description="Callback domain; defaults to the configured one"),
    service: ActivityTrendService = Depends(get_service),
):
    try:
        return {"url": service.token_manager.authorization_url(redirect_uri or settings.strava_redirect_uri)}
    except StravaAPIError as e:
        _raise_http(e)


@router.put("/auth/client", response_model=AuthStatus, summary="Update app client credentials")
async def update_client(body: ClientCredentialsRequest, service: ActivityTrendService = Depends(get_service)):
    service.token_manager.update_client(body.client_id, body.client_secret)
    return service.token_manager.status()


@router.post("/auth/connect", response_model=AuthStatus, summary="Exchange an authorization code")
async def connect(body: ConnectRequest, service: ActivityTrendService = Depends(get_service)):
    try:
        await service.token_manager.connect(body.code)
    except StravaAPIError as e:
        _raise_http(e)
    return service.token_manager.status()


@router.post("/auth/tokens", response_model=AuthStatus, summary="Store manually entered tokens")
async def manual_tokens(body: ManualTokensRequest, service: ActivityTrendService = Depends(get_service)):
    try:
        service.token_manager.save_manual_tokens(body.access_token, body.refresh_token)
    except DataError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return service.token_manager.status()


@router.get("/auth/token", summary="Get a valid access token")
async def valid_token(service: ActivityTrendService = Depends(get_service)):
    try:
        return {"access_token": await service.get_valid_token()}
    except StravaAPIError as e:
        _raise_http(e)


@router.get("/auth/athlete", response_model=Athlete, summary="Connected athlete profile")
async def athlete_profile(service: ActivityTrendService = Depends(get_service)):
    try:
        return await service.strava_service.get_athlete()
    except StravaAPIError as e:
        _raise_http(e)


@router.delete("/auth", response_model=AuthStatus, summary="Disconnect from Strava")
async def disconnect(service: ActivityTrendService = Depends(get_service)):
    service.disconnect()
    return service.token_manager.status()


# --- Sync ---

@router.post("/sync", response_model=SyncResult, summary="Full resync of the activity history")
async def sync(service: ActivityTrendService = Depends(get_service)):
    try:
        return await service.full_sync()
    except SyncInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StravaAPIError as e:
        _raise_http(e)


@router.get("/sync/status", response_model=SyncStatus, summary="Progress of the running sync")
async def sync_status(service: ActivityTrendService = Depends(get_service)):
    return service.sync_status()


# --- Activities ---

@router.get("/activities", response_model=List[Activity], summary="Get stored activities")
async def get_activities(
    name: Optional[str] = Query(None, description="Name contains (case-insensitive)"),
    activity_type: Optional[str] = Query(None, description="Filter by activity type (Run, Ride, etc.)"),
    min_distance_km: Optional[float] = Query(None, ge=0),
    max_distance_km: Optional[float] = Query(None, ge=0),
    near_lat: Optional[float] = Query(None, ge=-90, le=90),
    near_lng: Optional[float] = Query(None, ge=-180, le=180),
    service: ActivityTrendService = Depends(get_service),
):
    activity_filter = ActivityFilter(
        name=name,
        activity_type=activity_type,
        min_distance_km=min_distance_km,
        max_distance_km=max_distance_km,
        near_lat=near_lat,
        near_lng=near_lng,
    )
    return analytics.filter_activities(service.activities, activity_filter)


@router.get("/activities/types", response_model=List[str], summary="Activity types present locally")
async def get_activity_types(service: ActivityTrendService = Depends(get_service)):
    return analytics.activity_types(service.activities)


@router.get("/activities/{activity_id}", response_model=Activity, summary="Get activity by ID")
async def get_activity(activity_id: int, service: ActivityTrendService = Depends(get_service)):
    return _require_activity(service, activity_id)


@router.get("/activities/{activity_id}/similar", summary="Comparable activities")
async def get_similar(
    activity_id: int,
    refine: bool = Query(False, description="Keep only matches sharing a segment"),
    service: ActivityTrendService = Depends(get_service),
):
    reference = _require_activity(service, activity_id)
    matches = service.find_similar(reference, use_segment_refinement=refine)
    return {
        "reference_id": reference.id,
        "refined": refine and bool(reference.segment_efforts),
        "activities": [a.model_dump(mode="json") for a in matches],
        "chart": analytics.similar_chart_series(matches),
    }


@router.post("/activities/{activity_id}/refine", response_model=RefinementResult, summary="Fetch segment details for matching")
async def refine(activity_id: int, service: ActivityTrendService = Depends(get_service)):
    reference = _require_activity(service, activity_id)
    try:
        return await service.refine_matches(reference)
    except StravaAPIError as e:
        _raise_http(e)


# --- Segments ---

@router.get("/segments", response_model=List[SegmentSummary], summary="Segments found in stored activities")
async def get_segments(
    sort: str = Query("effort_count", description="One of: " + ", ".join(analytics.SEGMENT_SORT_KEYS)),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    service: ActivityTrendService = Depends(get_service),
):
    try:
        return analytics.list_segments(service.activities, sort_key=sort, descending=order == "desc")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/segments/{segment_id}/history", summary="Merged effort history of a segment")
async def get_segment_history(segment_id: int, service: ActivityTrendService = Depends(get_service)):
    try:
        history: SegmentHistory = await service.load_segment_history(segment_id)
    except StravaAPIError as e:
        _raise_http(e)
    return {
        **history.model_dump(mode="json"),
        "chart": analytics.segment_chart_series(history.efforts),
    }

"""
Analytics API Router

Client-reported events (page views mostly). Server-side events are
tracked directly by the routers that cause them.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, status

from core.auth import get_current_user
from core.dependencies import get_analytics_context
from models import User
from schemas import AnalyticsEventCreate
from services import analytics
from services.analytics import AnalyticsContext

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.post("/events", status_code=status.HTTP_202_ACCEPTED)
def record_event(
    payload: AnalyticsEventCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_user),
    context: AnalyticsContext = Depends(get_analytics_context),
):
    """Accepted immediately; storage happens after the response is sent."""
    if payload.page:
        context = AnalyticsContext(user_id=context.user_id, page=payload.page)
    background_tasks.add_task(analytics.track, context, payload.event_name, payload.properties)
    return {"accepted": True}

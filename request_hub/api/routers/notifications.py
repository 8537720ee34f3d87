from fastapi import APIRouter, Depends, Query

from request_hub.api.deps import get_current_user
from request_hub.models.auth import CurrentUser
from request_hub.models.request import NotificationRecord
from request_hub.services.container import notifier


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationRecord])
def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[NotificationRecord]:
    return notifier.recent_for(current_user.user_id, limit=limit)

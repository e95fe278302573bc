import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from app.models.notifications import AppNotification, NotificationType
from app.models.users import AuthenticatedUser
from app.server.dependencies import get_collaboration_manager, get_notification_manager
from app.server.routers.auth_routes import get_current_user
from app.server.streaming import sse_response
from app.services.collaboration.collaboration_manager import CollaborationManager
from app.services.collaboration.rating_manager import can_rate_back
from app.services.notification_manager import NotificationManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for notification operations
notification_router = APIRouter()


class NotificationsResponse(BaseModel):
    data: List[AppNotification]


class MarkAllReadResponse(BaseModel):
    updated: int


class RateBackResponse(BaseModel):
    can_rate_back: bool = Field(..., alias="canRateBack")

    model_config = {"populate_by_name": True}


@notification_router.get("", response_model=NotificationsResponse)
async def get_notifications(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    notification_manager: Annotated[
        NotificationManager, Depends(get_notification_manager)
    ],
) -> NotificationsResponse:
    notifications = await notification_manager.list_notifications(current_user.uid)
    return NotificationsResponse(data=notifications)


@notification_router.get("/stream")
async def stream_notifications(
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    notification_manager: Annotated[
        NotificationManager, Depends(get_notification_manager)
    ],
):
    """Live notification feed of the current user (SSE)."""
    return sse_response(
        request,
        lambda callback: notification_manager.subscribe_notifications(
            current_user.uid, callback
        ),
    )


@notification_router.post("/read_all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    notification_manager: Annotated[
        NotificationManager, Depends(get_notification_manager)
    ],
) -> MarkAllReadResponse:
    updated = await notification_manager.mark_all_read(current_user.uid)
    return MarkAllReadResponse(updated=updated)


@notification_router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    notification_manager: Annotated[
        NotificationManager, Depends(get_notification_manager)
    ],
):
    await notification_manager.mark_read(notification_id, current_user.uid)
    return {"message": "success"}


@notification_router.get(
    "/{notification_id}/can_rate_back", response_model=RateBackResponse
)
async def get_can_rate_back(
    notification_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    notification_manager: Annotated[
        NotificationManager, Depends(get_notification_manager)
    ],
    collaboration_manager: Annotated[
        CollaborationManager, Depends(get_collaboration_manager)
    ],
) -> RateBackResponse:
    """Whether the notification should offer a one-click rate back."""
    notification = await notification_manager.get_notification(notification_id)
    if notification.user_id != current_user.uid:
        raise HTTPException(status_code=403, detail="Not your notification")
    if notification.type != NotificationType.RATING_RECEIVED.value:
        return RateBackResponse(can_rate_back=False)

    collaboration = await collaboration_manager.get_collaboration(
        notification.data.collab_id
    )
    return RateBackResponse(
        can_rate_back=can_rate_back(notification, collaboration, current_user.uid)
    )

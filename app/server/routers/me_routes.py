import logging
from traceback import format_exc
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from app.models.chats import BadgeCounts
from app.models.users import AuthenticatedUser, CreatorProfile
from app.server.dependencies import (
    get_chat_manager,
    get_notification_manager,
    get_profile_manager,
    get_request_manager,
)
from app.server.routers.auth_routes import get_current_user
from app.services.chat_manager import ChatManager, count_unread_chats
from app.services.collaboration.request_manager import CollabRequestManager
from app.services.notification_manager import NotificationManager
from app.services.profile_manager import ProfileManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for user-specific operations
me_router = APIRouter()


@me_router.get("/profile", response_model=CreatorProfile)
async def get_my_profile(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    profile_manager: Annotated[ProfileManager, Depends(get_profile_manager)],
) -> CreatorProfile:
    profile = await profile_manager.get_profile(current_user.uid)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile


@me_router.get("/badges", response_model=BadgeCounts)
async def get_badge_counts(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
    notification_manager: Annotated[
        NotificationManager, Depends(get_notification_manager)
    ],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
) -> BadgeCounts:
    """Unread chats, and separately unread notifications plus pending requests."""
    try:
        chats = await chat_manager.list_chats(current_user.uid)
        unread_notifications = await notification_manager.count_unread(current_user.uid)
        pending_requests = await request_manager.count_received(current_user.uid)
    except Exception as e:
        logger.error(f"Failed to compute badge counts: {str(e)}\n{format_exc()}")
        raise HTTPException(status_code=500, detail="Failed to compute badge counts")

    return BadgeCounts(
        messages=count_unread_chats(chats, current_user.uid),
        activity=unread_notifications + pending_requests,
    )

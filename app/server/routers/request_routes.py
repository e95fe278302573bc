import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from app.models.collaborations import (
    Collaboration,
    CollabRequest,
    CollabRequestCreate,
    NewCollabRequest,
)
from app.models.users import AuthenticatedUser
from app.server.dependencies import get_collaboration_manager, get_request_manager
from app.server.routers.auth_routes import get_current_user
from app.server.streaming import sse_response
from app.services.collaboration.collaboration_manager import CollaborationManager
from app.services.collaboration.request_manager import CollabRequestManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for collaboration request operations
request_router = APIRouter()


class CollabRequestsResponse(BaseModel):
    data: List[CollabRequest]


@request_router.post("", response_model=CollabRequest, status_code=201)
async def send_collab_request(
    body: CollabRequestCreate,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
) -> CollabRequest:
    """Send a collaboration request from the current user."""
    return await request_manager.send_request(
        body.receiver_id,
        NewCollabRequest(
            sender_id=current_user.uid,
            sender_name=current_user.display_name,
            sender_photo=current_user.photo_url,
            project_name=body.project_name,
            description=body.description,
            dates=body.dates,
        ),
    )


@request_router.get("/received", response_model=CollabRequestsResponse)
async def get_received_requests(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
) -> CollabRequestsResponse:
    requests = await request_manager.list_received(current_user.uid)
    return CollabRequestsResponse(data=requests)


@request_router.get("/received/stream")
async def stream_received_requests(
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
):
    """Live pending requests addressed to the current user (SSE)."""
    return sse_response(
        request,
        lambda callback: request_manager.subscribe_received(current_user.uid, callback),
    )


@request_router.get("/sent", response_model=CollabRequestsResponse)
async def get_sent_requests(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
) -> CollabRequestsResponse:
    requests = await request_manager.list_sent(current_user.uid)
    return CollabRequestsResponse(data=requests)


@request_router.get("/sent/stream")
async def stream_sent_requests(
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
):
    """Live pending requests sent by the current user (SSE)."""
    return sse_response(
        request,
        lambda callback: request_manager.subscribe_sent(current_user.uid, callback),
    )


@request_router.delete("/{request_id}")
async def delete_collab_request(
    request_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    request_manager: Annotated[CollabRequestManager, Depends(get_request_manager)],
):
    """Decline or withdraw a pending request."""
    await request_manager.decline(request_id, current_user.uid)
    return {"message": "success"}


@request_router.post("/{request_id}/accept", response_model=Collaboration)
async def accept_collab_request(
    request_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    collaboration_manager: Annotated[
        CollaborationManager, Depends(get_collaboration_manager)
    ],
) -> Collaboration:
    """Accept a pending request and start the collaboration."""
    return await collaboration_manager.accept_request(current_user, request_id)

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from app.models.collaborations import Collaboration, CompleteCollaborationRequest
from app.models.users import AuthenticatedUser
from app.server.dependencies import get_collaboration_manager
from app.server.routers.auth_routes import get_current_user
from app.server.streaming import sse_response
from app.services.collaboration.collaboration_manager import CollaborationManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for collaboration operations
collaboration_router = APIRouter()


class CollaborationsResponse(BaseModel):
    data: List[Collaboration]


@collaboration_router.get("", response_model=CollaborationsResponse)
async def get_collaborations(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    collaboration_manager: Annotated[
        CollaborationManager, Depends(get_collaboration_manager)
    ],
) -> CollaborationsResponse:
    collaborations = await collaboration_manager.list_collaborations(current_user.uid)
    return CollaborationsResponse(data=collaborations)


@collaboration_router.get("/stream")
async def stream_collaborations(
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    collaboration_manager: Annotated[
        CollaborationManager, Depends(get_collaboration_manager)
    ],
):
    """Live collaborations of the current user (SSE)."""
    return sse_response(
        request,
        lambda callback: collaboration_manager.subscribe_collaborations(
            current_user.uid, callback
        ),
    )


@collaboration_router.get("/{collab_id}", response_model=Collaboration)
async def get_collaboration(
    collab_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    collaboration_manager: Annotated[
        CollaborationManager, Depends(get_collaboration_manager)
    ],
) -> Collaboration:
    collaboration = await collaboration_manager.get_collaboration(collab_id)
    if current_user.uid not in collaboration.participant_ids:
        raise HTTPException(
            status_code=403, detail="Not a participant in this collaboration"
        )
    return collaboration


@collaboration_router.post("/{collab_id}/complete", response_model=Collaboration)
async def complete_collaboration(
    collab_id: str,
    body: CompleteCollaborationRequest,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    collaboration_manager: Annotated[
        CollaborationManager, Depends(get_collaboration_manager)
    ],
) -> Collaboration:
    """Complete a collaboration with its final deliverable link."""
    return await collaboration_manager.complete_collaboration(
        collab_id, body.link, current_user.uid
    )

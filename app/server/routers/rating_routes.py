import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from app.models.ratings import RatedRating, RatingResult, RatingStatus, RatingSubmission
from app.models.users import AuthenticatedUser
from app.server.dependencies import get_rating_manager
from app.server.routers.auth_routes import get_current_user
from app.server.streaming import sse_response
from app.services.collaboration.rating_manager import RatingManager
from config import RATING_FAILURES_AS_SUCCESS

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for rating operations
rating_router = APIRouter()


class RatingRequest(BaseModel):
    rated_user_id: str = Field(..., alias="ratedUserId", min_length=1)
    collab_id: str = Field(..., alias="collabId", min_length=1)
    rating_value: int = Field(..., alias="ratingValue", ge=1, le=5)
    comment: Optional[str] = None

    model_config = {"populate_by_name": True}


class RatingsResponse(BaseModel):
    data: List[RatedRating]


@rating_router.post("", response_model=RatingResult)
async def submit_rating(
    body: RatingRequest,
    response: Response,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    rating_manager: Annotated[RatingManager, Depends(get_rating_manager)],
) -> RatingResult:
    """
    Rate the other participant of a completed collaboration.

    A backend failure is answered with 503, or with 202 and a failed status
    when CC_RATING_FAILURES_AS_SUCCESS is enabled for optimistic clients.
    """
    result = await rating_manager.submit_rating(
        RatingSubmission(
            rated_user_id=body.rated_user_id,
            rater_id=current_user.uid,
            collab_id=body.collab_id,
            rating_value=body.rating_value,
            comment=body.comment,
        )
    )

    if result.status == RatingStatus.FAILED:
        if not RATING_FAILURES_AS_SUCCESS:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Failed to submit rating, please try again",
            )
        response.status_code = status.HTTP_202_ACCEPTED
    return result


@rating_router.get("/users/{user_id}", response_model=RatingsResponse)
async def get_user_ratings(
    user_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    rating_manager: Annotated[RatingManager, Depends(get_rating_manager)],
) -> RatingsResponse:
    """Ratings a creator has received, newest first."""
    ratings = await rating_manager.list_ratings(user_id)
    return RatingsResponse(data=await rating_manager.enrich_ratings(ratings))


@rating_router.get("/users/{user_id}/stream")
async def stream_user_ratings(
    user_id: str,
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    rating_manager: Annotated[RatingManager, Depends(get_rating_manager)],
):
    return sse_response(
        request,
        lambda callback: rating_manager.subscribe_ratings(user_id, callback),
        transform=rating_manager.enrich_ratings,
    )

"""
Rating Data Models

This module contains models for collaboration ratings and the typed outcome
returned by rating submission.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from app.models.shared import FirestoreBaseModel


class RatingSubmission(FirestoreBaseModel):
    """A rating one collaborator gives the other."""

    rated_user_id: str = Field(..., min_length=1, description="Uid being rated")
    rater_id: str = Field(..., min_length=1, description="Uid giving the rating")
    collab_id: str = Field(..., min_length=1, description="Rated collaboration")
    rating_value: int = Field(..., ge=1, le=5, description="Score from 1 to 5")
    comment: Optional[str] = Field(None, description="Optional review text")


class Rating(RatingSubmission):
    """Rating document model for the ratings collection."""

    id: str = Field(..., description="Rating identifier")
    timestamp: Optional[datetime] = Field(None, description="Submission timestamp")


class RatedRating(Rating):
    """Rating enriched with the rater's display details for listings."""

    rater_name: str = Field("Unknown", description="Rater display name")
    rater_photo: str = Field("", description="Rater photo URL")


class RatingStatus(str, Enum):
    """Outcome of a rating submission."""

    SUBMITTED = "submitted"
    ALREADY_RATED = "already_rated"
    FAILED = "failed"


class RatingResult(FirestoreBaseModel):
    """Typed result of a rating submission."""

    status: RatingStatus
    rating_id: Optional[str] = None
    new_rating: Optional[float] = None
    new_rating_count: Optional[int] = None
    detail: Optional[str] = None

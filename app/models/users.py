"""
User Data Models

This module contains models for creator profiles and the portfolio and calendar
entries embedded in them. Profiles are owned by the identity store; this service
only patches the rating aggregate, collab counter, portfolio and schedule.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from app.models.shared import FirestoreBaseModel


class CalendarEventType(str, Enum):
    """Calendar event type enumeration."""

    CONTENT = "content"
    COLLAB = "collab"
    MEETING = "meeting"


class CalendarEvent(FirestoreBaseModel):
    """Calendar entry embedded in a profile's schedule."""

    id: str = Field(..., description="Event identifier")
    title: str = Field(..., description="Event title")
    date: datetime = Field(..., description="Event date")
    type: CalendarEventType = Field(..., description="Event type")
    description: Optional[str] = Field(None, description="Event description")
    location: Optional[str] = Field(None, description="Event location")


class PastCollaboration(FirestoreBaseModel):
    """Portfolio entry generated when a collaboration is completed."""

    id: str = Field(..., description="Identifier of the completed collaboration")
    title: str = Field(..., description="Project name")
    partner_name: str = Field(..., description="Display name of the partner")
    description: str = Field(..., description="Entry description")
    image_url: str = Field(..., description="Partner photo shown with the entry")
    date: Optional[str] = Field(None, description="Completion month, e.g. 'Oct 2026'")
    link: Optional[str] = Field(None, description="Final deliverable link")


class AuthenticatedUser(FirestoreBaseModel):
    """Principal resolved from a verified Firebase ID token."""

    uid: str = Field(..., description="Firebase Auth uid")
    display_name: str = Field("", description="Display name")
    photo_url: str = Field("", alias="photoURL", description="Profile picture URL")
    email: Optional[str] = Field(None, description="User email address")


class CreatorProfile(FirestoreBaseModel):
    """Creator profile document model for the users collection."""

    id: str = Field(..., description="Firebase Auth uid")
    display_name: str = Field("", description="Display name")
    photo_url: str = Field("", alias="photoURL", description="Profile picture URL")
    email: Optional[str] = Field(None, description="User email address")
    niche: Optional[str] = Field(None, description="Content niche")
    rating: float = Field(0.0, description="Running average of received ratings")
    rating_count: int = Field(0, ge=0, description="Number of ratings received")
    collabs: int = Field(0, ge=0, description="Accepted collaborations")
    past_collaborations: List[PastCollaboration] = Field(
        default_factory=list, description="Portfolio entries, newest first"
    )
    schedule: List[CalendarEvent] = Field(
        default_factory=list, description="Calendar events"
    )

"""
Collaboration Data Models

This module contains models for collaboration requests and the collaborations
they turn into once accepted.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.models.shared import FirestoreBaseModel


class CollabRequestStatus(str, Enum):
    """Collaboration request status enumeration.

    Requests are deleted once resolved, so only the pending state is stored.
    """

    PENDING = "pending"


class CollaborationStatus(str, Enum):
    """Collaboration status enumeration."""

    ACTIVE = "active"
    COMPLETED = "completed"


class NewCollabRequest(FirestoreBaseModel):
    """Sender-side payload used to create a collaboration request."""

    sender_id: str = Field(..., min_length=1, description="Sender uid")
    sender_name: str = Field("", description="Sender display name")
    sender_photo: str = Field("", description="Sender photo URL")
    project_name: str = Field(..., min_length=1, description="Project name")
    description: str = Field("", description="Project description")
    dates: str = Field("", description="Free-text date hint")


class CollabRequest(NewCollabRequest):
    """Collaboration request document model for the requests collection."""

    id: str = Field(..., description="Request identifier")
    receiver_id: str = Field(..., description="Receiver uid")
    status: CollabRequestStatus = Field(
        CollabRequestStatus.PENDING, description="Request status"
    )
    timestamp: Optional[datetime] = Field(None, description="Creation timestamp")


class ParticipantInfo(FirestoreBaseModel):
    """Display details of one collaboration participant."""

    display_name: str = Field("", description="Display name")
    photo_url: str = Field("", alias="photoURL", description="Profile picture URL")


class Collaboration(FirestoreBaseModel):
    """Collaboration document model for the collaborations collection."""

    id: str = Field(..., description="Collaboration identifier")
    participant_ids: List[str] = Field(
        ..., min_length=2, max_length=2, description="Both participant uids"
    )
    participants: Dict[str, ParticipantInfo] = Field(
        default_factory=dict, description="Participant display details by uid"
    )
    project_name: str = Field(..., description="Project name")
    description: str = Field("", description="Project description")
    status: CollaborationStatus = Field(
        CollaborationStatus.ACTIVE, description="Collaboration status"
    )
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    rated_by: List[str] = Field(
        default_factory=list, description="Participants who have submitted a rating"
    )
    final_link: Optional[str] = Field(None, description="Final deliverable link")

    def partner_of(self, uid: str) -> Optional[str]:
        """Return the other participant's uid, or None if uid is not a participant."""
        if uid not in self.participant_ids:
            return None
        return next((p for p in self.participant_ids if p != uid), None)


# API request bodies
class CollabRequestCreate(BaseModel):
    """Request body for sending a collaboration request."""

    receiver_id: str = Field(..., alias="receiverId", min_length=1)
    project_name: str = Field(..., alias="projectName", min_length=1)
    description: str = ""
    dates: str = ""

    model_config = {"populate_by_name": True}


class CompleteCollaborationRequest(BaseModel):
    """Request body for completing a collaboration with its final link."""

    link: str

    @field_validator("link")
    @classmethod
    def strip_link(cls, value: str) -> str:
        return value.strip()

"""
Notification Data Models

Notifications are stored in a single collection. The shape of the ``data``
payload depends on the notification ``type``, so the document model is a
discriminated union with one class per type.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from app.models.shared import FirestoreBaseModel


class NotificationType(str, Enum):
    """Notification type enumeration."""

    RATING_RECEIVED = "rating_received"
    COLLAB_UPDATE = "collab_update"
    SYSTEM = "system"


class RatingReceivedData(FirestoreBaseModel):
    """Payload that lets the recipient rate the rater back in one click."""

    collab_id: str
    rater_id: str
    rater_name: str = "Unknown"
    rater_photo: str = ""


class CollabUpdateData(FirestoreBaseModel):
    collab_id: str


class BaseNotification(FirestoreBaseModel):
    """Fields shared by every notification document."""

    id: str = Field(..., description="Notification identifier")
    user_id: str = Field(..., description="Recipient uid")
    title: str = Field(..., description="Notification title")
    message: str = Field(..., description="Notification body")
    read: bool = Field(False, description="Whether the recipient has read it")
    timestamp: Optional[datetime] = Field(None, description="Creation timestamp")


class RatingReceivedNotification(BaseNotification):
    type: Literal["rating_received"] = "rating_received"
    data: RatingReceivedData


class CollabUpdateNotification(BaseNotification):
    type: Literal["collab_update"] = "collab_update"
    data: CollabUpdateData


class SystemNotification(BaseNotification):
    type: Literal["system"] = "system"
    data: Optional[Dict[str, Any]] = None


AppNotification = Annotated[
    Union[RatingReceivedNotification, CollabUpdateNotification, SystemNotification],
    Field(discriminator="type"),
]

# Validates raw notification documents into the matching union member
NOTIFICATION_ADAPTER = TypeAdapter(AppNotification)

"""
Chat Data Models

This module contains models for chat documents, their messages, and the badge
counts derived from them.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.shared import FirestoreBaseModel
from app.models.users import CreatorProfile


class MessageType(str, Enum):
    """Message type enumeration."""

    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"


class Message(FirestoreBaseModel):
    """Message document model for the chats/{chat_id}/messages subcollection."""

    id: str = Field(..., description="Message identifier")
    text: str = Field("", description="Message text")
    sender_id: str = Field(..., description="Sender uid")
    timestamp: Optional[datetime] = Field(None, description="Send timestamp")
    type: MessageType = Field(MessageType.TEXT, description="Message type")
    media_url: Optional[str] = Field(None, description="Attached media URL")
    status: Optional[str] = Field(None, description="Delivery status")


class LastMessage(FirestoreBaseModel):
    """Denormalised copy of the newest message in a chat."""

    text: str = ""
    timestamp: Optional[datetime] = None
    sender_id: str


class Chat(FirestoreBaseModel):
    """Chat document model for the chats collection."""

    id: str = Field(..., description="Chat identifier (sorted uids joined by '_')")
    participant_ids: List[str] = Field(default_factory=list)
    last_message: Optional[LastMessage] = None
    last_read: Dict[str, datetime] = Field(
        default_factory=dict, description="Read watermark per uid"
    )
    updated_at: Optional[datetime] = None


class ChatSummary(Chat):
    """Chat enriched with the partner's profile for chat listings."""

    partner: CreatorProfile
    unread: bool = False


# API models
class SendMessageRequest(BaseModel):
    text: str = ""
    type: MessageType = MessageType.TEXT
    media_url: Optional[str] = Field(None, alias="mediaUrl")

    model_config = {"populate_by_name": True}


class BadgeCounts(FirestoreBaseModel):
    """Badge totals shown by the app shell."""

    messages: int = Field(0, ge=0, description="Unread chats")
    activity: int = Field(
        0, ge=0, description="Unread notifications plus pending received requests"
    )

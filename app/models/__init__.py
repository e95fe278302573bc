"""
Models Package

This package contains document and API models organized by domain:
- users.py: Creator profiles, portfolio entries, calendar events, auth principal
- collaborations.py: Collaboration requests and collaborations
- ratings.py: Ratings and rating submission results
- notifications.py: Notification documents, discriminated by type
- chats.py: Chats, messages and badge counts
- shared.py: Common base model
- firestore.py: Collection names and collection-to-model mapping
"""

# Import all models for easy access
from app.models.chats import (
    BadgeCounts,
    Chat,
    ChatSummary,
    LastMessage,
    Message,
    MessageType,
)
from app.models.collaborations import (
    Collaboration,
    CollaborationStatus,
    CollabRequest,
    CollabRequestStatus,
    NewCollabRequest,
    ParticipantInfo,
)
from app.models.firestore import COLLECTION_MODELS
from app.models.notifications import (
    AppNotification,
    CollabUpdateNotification,
    NotificationType,
    RatingReceivedData,
    RatingReceivedNotification,
    SystemNotification,
)
from app.models.ratings import (
    RatedRating,
    Rating,
    RatingResult,
    RatingStatus,
    RatingSubmission,
)
from app.models.shared import FirestoreBaseModel
from app.models.users import (
    AuthenticatedUser,
    CalendarEvent,
    CalendarEventType,
    CreatorProfile,
    PastCollaboration,
)

__all__ = [
    # Base models
    "FirestoreBaseModel",
    # User models
    "AuthenticatedUser",
    "CalendarEvent",
    "CalendarEventType",
    "CreatorProfile",
    "PastCollaboration",
    # Collaboration models
    "Collaboration",
    "CollaborationStatus",
    "CollabRequest",
    "CollabRequestStatus",
    "NewCollabRequest",
    "ParticipantInfo",
    # Rating models
    "RatedRating",
    "Rating",
    "RatingResult",
    "RatingStatus",
    "RatingSubmission",
    # Notification models
    "AppNotification",
    "CollabUpdateNotification",
    "NotificationType",
    "RatingReceivedData",
    "RatingReceivedNotification",
    "SystemNotification",
    # Chat models
    "BadgeCounts",
    "Chat",
    "ChatSummary",
    "LastMessage",
    "Message",
    "MessageType",
    # Collection mappings
    "COLLECTION_MODELS",
]

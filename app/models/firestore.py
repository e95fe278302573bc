"""
Firestore Data Models

This module maps Firestore collections to the Pydantic models that describe
their documents. The collections are shared with the Creator Connect web client.

Collection Mapping:
- users -> CreatorProfile
- requests -> CollabRequest
- collaborations -> Collaboration
- ratings -> Rating
- notifications -> AppNotification (discriminated by type)
- chats -> Chat
- chats/{chat_id}/messages -> Message
"""

from app.models.chats import Chat
from app.models.collaborations import Collaboration, CollabRequest
from app.models.notifications import AppNotification
from app.models.ratings import Rating
from app.models.users import CreatorProfile

# Collection names
USERS = "users"
REQUESTS = "requests"
COLLABORATIONS = "collaborations"
RATINGS = "ratings"
NOTIFICATIONS = "notifications"
CHATS = "chats"


def messages_collection(chat_id: str) -> str:
    """Path of the messages subcollection for a chat."""
    return f"{CHATS}/{chat_id}/messages"


# Model mappings for easy reference
COLLECTION_MODELS = {
    USERS: CreatorProfile,
    REQUESTS: CollabRequest,
    COLLABORATIONS: Collaboration,
    RATINGS: Rating,
    NOTIFICATIONS: AppNotification,
    CHATS: Chat,
}

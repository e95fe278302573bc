from fastapi import Depends, Request

from app.services.chat_manager import ChatManager
from app.services.collaboration.collaboration_manager import CollaborationManager
from app.services.collaboration.rating_manager import RatingManager
from app.services.collaboration.request_manager import CollabRequestManager
from app.services.firestore_service import FirestoreService
from app.services.notification_manager import NotificationManager
from app.services.profile_manager import ProfileManager


def get_firestore_service(request: Request) -> FirestoreService:
    """The Firestore handle created by the application lifespan."""
    return request.app.state.firestore_service


def get_request_manager(
    firestore_service: FirestoreService = Depends(get_firestore_service),
) -> CollabRequestManager:
    return CollabRequestManager(firestore_service)


def get_collaboration_manager(
    firestore_service: FirestoreService = Depends(get_firestore_service),
) -> CollaborationManager:
    return CollaborationManager(firestore_service)


def get_rating_manager(
    firestore_service: FirestoreService = Depends(get_firestore_service),
) -> RatingManager:
    return RatingManager(firestore_service)


def get_notification_manager(
    firestore_service: FirestoreService = Depends(get_firestore_service),
) -> NotificationManager:
    return NotificationManager(firestore_service)


def get_chat_manager(
    firestore_service: FirestoreService = Depends(get_firestore_service),
) -> ChatManager:
    return ChatManager(firestore_service)


def get_profile_manager(
    firestore_service: FirestoreService = Depends(get_firestore_service),
) -> ProfileManager:
    return ProfileManager(firestore_service)

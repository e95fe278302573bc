"""Pytest fixtures shared by the service and API tests."""

import pytest
from fastapi.testclient import TestClient

from app.models.collaborations import NewCollabRequest
from app.models.firestore import USERS
from app.models.users import AuthenticatedUser
from app.server.main import create_app
from app.server.routers.auth_routes import get_current_user
from app.services.chat_manager import ChatManager
from app.services.collaboration.collaboration_manager import CollaborationManager
from app.services.collaboration.rating_manager import RatingManager
from app.services.collaboration.request_manager import CollabRequestManager
from app.services.notification_manager import NotificationManager
from tests.fakes import ALICE_PHOTO, BOB_PHOTO, InMemoryFirestoreService


@pytest.fixture
def firestore():
    """In-memory Firestore with Alice (a1) and Bob (b1) profiles."""
    service = InMemoryFirestoreService()
    service.seed(
        USERS,
        "a1",
        {"displayName": "Alice", "photoURL": ALICE_PHOTO, "rating": 0.0, "ratingCount": 0},
    )
    service.seed(
        USERS,
        "b1",
        {"displayName": "Bob", "photoURL": BOB_PHOTO, "rating": 0.0, "ratingCount": 0},
    )
    return service


@pytest.fixture
def alice():
    return AuthenticatedUser(uid="a1", display_name="Alice", photo_url=ALICE_PHOTO)


@pytest.fixture
def bob():
    return AuthenticatedUser(uid="b1", display_name="Bob", photo_url=BOB_PHOTO)


@pytest.fixture
def request_manager(firestore):
    return CollabRequestManager(firestore)


@pytest.fixture
def collaboration_manager(firestore):
    return CollaborationManager(firestore)


@pytest.fixture
def rating_manager(firestore):
    return RatingManager(firestore)


@pytest.fixture
def notification_manager(firestore):
    return NotificationManager(firestore)


@pytest.fixture
def chat_manager(firestore):
    return ChatManager(firestore)


@pytest.fixture
def new_request(alice):
    """Collaboration request from Alice."""
    return NewCollabRequest(
        sender_id=alice.uid,
        sender_name=alice.display_name,
        sender_photo=alice.photo_url,
        project_name="Vlog",
        description="Travel vlog",
        dates="next week",
    )


@pytest.fixture
def active_collaboration(request_manager, collaboration_manager, new_request, bob):
    """Async factory: Alice asks Bob, Bob accepts."""

    async def _create():
        request = await request_manager.send_request(bob.uid, new_request)
        return await collaboration_manager.accept_request(bob, request.id)

    return _create


@pytest.fixture
def completed_collaboration(active_collaboration, collaboration_manager):
    """Async factory: an accepted collaboration that Alice has completed."""

    async def _create(link: str = "https://youtu.be/x"):
        collaboration = await active_collaboration()
        return await collaboration_manager.complete_collaboration(
            collaboration.id, link, "a1"
        )

    return _create


@pytest.fixture
def api(firestore):
    """TestClient factory; call with a user to act as that user."""
    app = create_app(firestore)
    principal = {}
    app.dependency_overrides[get_current_user] = lambda: principal["user"]

    with TestClient(app) as client:

        def _as(user: AuthenticatedUser) -> TestClient:
            principal["user"] = user
            return client

        yield _as

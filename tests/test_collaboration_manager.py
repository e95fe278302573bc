"""Tests for CollaborationManager: accepting requests and completing collaborations."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException

from app.models.collaborations import NewCollabRequest
from app.models.firestore import COLLABORATIONS, REQUESTS, USERS
from app.models.users import AuthenticatedUser
from config import FALLBACK_AVATAR_URL
from tests.fakes import ALICE_PHOTO, BOB_PHOTO


class TestAcceptRequest:
    """Tests for CollaborationManager.accept_request."""

    @pytest.mark.asyncio
    async def test_accept_creates_collaboration(
        self, firestore, request_manager, collaboration_manager, new_request, bob
    ):
        request = await request_manager.send_request("b1", new_request)

        collaboration = await collaboration_manager.accept_request(bob, request.id)

        stored = firestore.doc(COLLABORATIONS, collaboration.id)
        assert stored["status"] == "active"
        assert set(stored["participantIds"]) == {"a1", "b1"}
        assert stored["ratedBy"] == []
        assert stored["projectName"] == "Vlog"
        assert stored["participants"]["a1"] == {"displayName": "Alice", "photoURL": ALICE_PHOTO}
        assert stored["participants"]["b1"] == {"displayName": "Bob", "photoURL": BOB_PHOTO}
        assert firestore.doc(REQUESTS, request.id) is None

    @pytest.mark.asyncio
    async def test_names_come_from_profiles_not_token(
        self, firestore, request_manager, collaboration_manager
    ):
        request = await request_manager.send_request(
            "b1", NewCollabRequest(sender_id="a1", project_name="Vlog")
        )
        nameless_bob = AuthenticatedUser(uid="b1")

        collaboration = await collaboration_manager.accept_request(nameless_bob, request.id)

        participants = firestore.doc(COLLABORATIONS, collaboration.id)["participants"]
        assert participants["a1"] == {"displayName": "Alice", "photoURL": ALICE_PHOTO}
        assert participants["b1"] == {"displayName": "Bob", "photoURL": BOB_PHOTO}
        assert "Alice" in firestore.doc(USERS, "b1")["schedule"][0]["description"]
        assert "Bob" in firestore.doc(USERS, "a1")["schedule"][0]["description"]

    @pytest.mark.asyncio
    async def test_token_claims_used_when_profile_has_no_name(
        self, firestore, request_manager, collaboration_manager, new_request
    ):
        firestore.store[USERS]["b1"] = {}
        request = await request_manager.send_request("b1", new_request)
        bob = AuthenticatedUser(uid="b1", display_name="Bobby", photo_url=BOB_PHOTO)

        collaboration = await collaboration_manager.accept_request(bob, request.id)

        assert collaboration.participants["b1"].display_name == "Bobby"
        assert collaboration.participants["b1"].photo_url == BOB_PHOTO

    @pytest.mark.asyncio
    async def test_accept_updates_both_profiles(
        self, firestore, request_manager, collaboration_manager, new_request, bob
    ):
        request = await request_manager.send_request("b1", new_request)
        before = datetime.now(timezone.utc)

        collaboration = await collaboration_manager.accept_request(bob, request.id)

        for uid, partner in (("a1", "Bob"), ("b1", "Alice")):
            profile = firestore.doc(USERS, uid)
            assert profile["collabs"] == 1
            assert len(profile["schedule"]) == 1
            event = profile["schedule"][0]
            assert event["id"] == f"collab-{collaboration.id}"
            assert event["title"] == "Project: Vlog"
            assert event["type"] == "collab"
            assert partner in event["description"]
            assert event["date"] >= before + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_failed_commit_leaves_everything_untouched(
        self, firestore, request_manager, collaboration_manager, new_request, bob
    ):
        request = await request_manager.send_request("b1", new_request)
        firestore.fail_next_commit = RuntimeError("contention")

        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.accept_request(bob, request.id)

        assert exc_info.value.status_code == 500
        assert firestore.doc(REQUESTS, request.id) is not None
        assert firestore.docs(COLLABORATIONS) == {}
        assert "collabs" not in firestore.doc(USERS, "a1")
        assert "collabs" not in firestore.doc(USERS, "b1")

    @pytest.mark.asyncio
    async def test_missing_profile_aborts_accept(
        self, firestore, request_manager, collaboration_manager, new_request, bob
    ):
        request = await request_manager.send_request("b1", new_request)
        del firestore.store[USERS]["a1"]

        with pytest.raises(HTTPException):
            await collaboration_manager.accept_request(bob, request.id)

        assert firestore.doc(REQUESTS, request.id) is not None
        assert firestore.docs(COLLABORATIONS) == {}
        assert "collabs" not in firestore.doc(USERS, "b1")

    @pytest.mark.asyncio
    async def test_only_receiver_can_accept(
        self, firestore, request_manager, collaboration_manager, new_request, alice
    ):
        request = await request_manager.send_request("b1", new_request)

        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.accept_request(alice, request.id)

        assert exc_info.value.status_code == 403
        assert firestore.doc(REQUESTS, request.id) is not None

    @pytest.mark.asyncio
    async def test_accepting_twice_is_not_found(
        self, request_manager, collaboration_manager, new_request, bob
    ):
        request = await request_manager.send_request("b1", new_request)
        await collaboration_manager.accept_request(bob, request.id)

        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.accept_request(bob, request.id)

        assert exc_info.value.status_code == 404


class TestCompleteCollaboration:
    """Tests for CollaborationManager.complete_collaboration."""

    @pytest.mark.asyncio
    async def test_complete_sets_status_and_link(
        self, firestore, active_collaboration, collaboration_manager
    ):
        collaboration = await active_collaboration()

        completed = await collaboration_manager.complete_collaboration(
            collaboration.id, "  https://youtu.be/x  ", "a1"
        )

        assert completed.status == "completed"
        assert completed.final_link == "https://youtu.be/x"
        stored = firestore.doc(COLLABORATIONS, collaboration.id)
        assert stored["status"] == "completed"
        assert stored["finalLink"] == "https://youtu.be/x"

    @pytest.mark.asyncio
    async def test_complete_adds_portfolio_entries(
        self, firestore, active_collaboration, collaboration_manager
    ):
        collaboration = await active_collaboration()

        await collaboration_manager.complete_collaboration(
            collaboration.id, "https://youtu.be/x", "b1"
        )

        alice_entry = firestore.doc(USERS, "a1")["pastCollaborations"][0]
        bob_entry = firestore.doc(USERS, "b1")["pastCollaborations"][0]
        assert alice_entry["id"] == collaboration.id
        assert alice_entry["title"] == "Vlog"
        assert alice_entry["partnerName"] == "Bob"
        assert alice_entry["imageUrl"] == BOB_PHOTO
        assert alice_entry["link"] == "https://youtu.be/x"
        assert alice_entry["description"] == "Project Completed. Watch here: https://youtu.be/x"
        assert alice_entry["date"] == datetime.now(timezone.utc).strftime("%b %Y")
        assert bob_entry["partnerName"] == "Alice"
        assert bob_entry["imageUrl"] == ALICE_PHOTO

    @pytest.mark.asyncio
    async def test_new_entry_goes_first(self, firestore, active_collaboration, collaboration_manager):
        firestore.store[USERS]["a1"]["pastCollaborations"] = [
            {
                "id": "old",
                "title": "Old",
                "partnerName": "Carol",
                "description": "Earlier",
                "imageUrl": "https://img.example.com/carol.png",
            }
        ]
        collaboration = await active_collaboration()

        await collaboration_manager.complete_collaboration(
            collaboration.id, "https://youtu.be/x", "a1"
        )

        entries = firestore.doc(USERS, "a1")["pastCollaborations"]
        assert [e["id"] for e in entries] == [collaboration.id, "old"]

    @pytest.mark.asyncio
    async def test_missing_profile_is_skipped(
        self, firestore, active_collaboration, collaboration_manager
    ):
        collaboration = await active_collaboration()
        del firestore.store[USERS]["b1"]

        completed = await collaboration_manager.complete_collaboration(
            collaboration.id, "https://youtu.be/x", "a1"
        )

        assert completed.status == "completed"
        assert firestore.doc(USERS, "b1") is None
        alice_entry = firestore.doc(USERS, "a1")["pastCollaborations"][0]
        assert alice_entry["partnerName"] == "Bob"
        assert alice_entry["imageUrl"] == FALLBACK_AVATAR_URL

    @pytest.mark.asyncio
    async def test_second_completion_conflicts(
        self, firestore, completed_collaboration, collaboration_manager
    ):
        collaboration = await completed_collaboration()

        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.complete_collaboration(
                collaboration.id, "https://youtu.be/y", "b1"
            )

        assert exc_info.value.status_code == 409
        assert len(firestore.doc(USERS, "a1")["pastCollaborations"]) == 1
        assert firestore.doc(COLLABORATIONS, collaboration.id)["finalLink"] == "https://youtu.be/x"

    @pytest.mark.asyncio
    async def test_empty_link_rejected(self, active_collaboration, collaboration_manager):
        collaboration = await active_collaboration()

        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.complete_collaboration(collaboration.id, "   ", "a1")

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_outsider_cannot_complete(self, active_collaboration, collaboration_manager):
        collaboration = await active_collaboration()

        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.complete_collaboration(
                collaboration.id, "https://youtu.be/x", "c1"
            )

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_collaboration(self, collaboration_manager):
        with pytest.raises(HTTPException) as exc_info:
            await collaboration_manager.complete_collaboration(
                "missing", "https://youtu.be/x", "a1"
            )

        assert exc_info.value.status_code == 404


class TestListCollaborations:
    """Tests for listing a user's collaborations."""

    @pytest.mark.asyncio
    async def test_lists_for_both_participants_only(
        self, active_collaboration, collaboration_manager
    ):
        collaboration = await active_collaboration()

        assert [c.id for c in await collaboration_manager.list_collaborations("a1")] == [
            collaboration.id
        ]
        assert [c.id for c in await collaboration_manager.list_collaborations("b1")] == [
            collaboration.id
        ]
        assert await collaboration_manager.list_collaborations("c1") == []

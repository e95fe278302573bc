"""
Collaboration Manager

This module turns accepted requests into collaborations and completes them.
A collaboration moves from active to completed exactly once; completion stamps
a portfolio entry onto both participants' profiles.
"""

import logging
from datetime import timedelta
from traceback import format_exc
from typing import Any, Callable, Dict, List, Optional

from fastapi import HTTPException
from google.cloud.firestore import ArrayUnion, Increment

from app.models.collaborations import (
    Collaboration,
    CollaborationStatus,
    CollabRequest,
    ParticipantInfo,
)
from app.models.firestore import COLLABORATIONS, REQUESTS, USERS
from app.models.users import (
    AuthenticatedUser,
    CalendarEvent,
    CalendarEventType,
    PastCollaboration,
)
from app.services.firestore_service import (
    DocumentWrite,
    FirestoreService,
    Snapshots,
    Unsubscribe,
    WriteKind,
    utcnow,
)
from config import FALLBACK_AVATAR_URL

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CollaborationManager:
    """Manages the active -> completed collaboration lifecycle."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service

    async def accept_request(
        self, current_user: AuthenticatedUser, request_id: str
    ) -> Collaboration:
        """
        Accept a pending request and start a collaboration.

        In one transaction this creates the collaboration, deletes the request,
        increments the collabs counter on both profiles and adds a calendar
        event to both schedules. The event is always dated tomorrow; the
        request's free-text dates are not parsed. Participant names and photos
        come from both profiles, read in the same transaction; the token claims
        and the request's sender fields are only used when a profile has no
        name or photo.

        Args:
            current_user: The receiver accepting the request
            request_id: ID of the pending request

        Returns:
            The new active Collaboration

        Raises:
            HTTPException: 404 if the request no longer exists, 403 if the
                current user is not its receiver
        """
        pending = await self.firestore_service.get_document(
            collection_name=REQUESTS, document_id=request_id, model_class=CollabRequest
        )
        if pending is None:
            raise HTTPException(status_code=404, detail="Collaboration request not found")

        request_key = (REQUESTS, request_id)
        receiver_key = (USERS, current_user.uid)
        sender_key = (USERS, pending.sender_id)
        collab_id = self.firestore_service.new_document_id()
        outcome: Dict[str, Collaboration] = {}

        def plan(snapshots: Snapshots) -> List[DocumentWrite]:
            data = snapshots[request_key]
            if data is None:
                raise HTTPException(
                    status_code=404, detail="Collaboration request not found"
                )
            request = CollabRequest.model_validate({**data, "id": request_id})
            if request.receiver_id != current_user.uid:
                raise HTTPException(
                    status_code=403,
                    detail="Only the receiver can accept a collaboration request",
                )

            receiver = self._participant_info(
                snapshots[receiver_key],
                current_user.display_name,
                current_user.photo_url,
            )
            sender = self._participant_info(
                snapshots.get((USERS, request.sender_id)),
                request.sender_name,
                request.sender_photo,
            )

            now = utcnow()
            collaboration = Collaboration(
                id=collab_id,
                participant_ids=[current_user.uid, request.sender_id],
                participants={current_user.uid: receiver, request.sender_id: sender},
                project_name=request.project_name,
                description=request.description,
                status=CollaborationStatus.ACTIVE,
                created_at=now,
                rated_by=[],
            )
            outcome["collaboration"] = collaboration

            receiver_event = self._calendar_event(
                collab_id, request, sender.display_name, now
            )
            sender_event = self._calendar_event(
                collab_id, request, receiver.display_name, now
            )

            return [
                DocumentWrite(
                    kind=WriteKind.CREATE,
                    collection_name=COLLABORATIONS,
                    document_id=collab_id,
                    data=collaboration.to_firestore(exclude={"id"}),
                ),
                DocumentWrite(
                    kind=WriteKind.DELETE,
                    collection_name=REQUESTS,
                    document_id=request_id,
                ),
                DocumentWrite(
                    kind=WriteKind.UPDATE,
                    collection_name=USERS,
                    document_id=current_user.uid,
                    data={
                        "collabs": Increment(1),
                        "schedule": ArrayUnion([receiver_event.to_firestore()]),
                    },
                ),
                DocumentWrite(
                    kind=WriteKind.UPDATE,
                    collection_name=USERS,
                    document_id=request.sender_id,
                    data={
                        "collabs": Increment(1),
                        "schedule": ArrayUnion([sender_event.to_firestore()]),
                    },
                ),
            ]

        try:
            await self.firestore_service.run_transaction(
                [request_key, receiver_key, sender_key], plan
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                f"Failed to accept collaboration request {request_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail="Failed to accept collaboration request"
            )

        logger.info(
            f"User {current_user.uid} accepted request {request_id} as collaboration {collab_id}"
        )
        return outcome["collaboration"]

    async def complete_collaboration(
        self, collab_id: str, link: str, acting_user_id: str
    ) -> Collaboration:
        """
        Mark a collaboration completed and add it to both portfolios.

        Both participant profiles are read before anything is written. A
        participant without a profile document is skipped; the collaboration
        is still completed.

        Args:
            collab_id: ID of the collaboration
            link: Final deliverable link; must be non-empty, format is not checked
            acting_user_id: Participant supplying the link

        Returns:
            The completed Collaboration

        Raises:
            HTTPException: 400 for an empty link, 403 if the user is not a
                participant, 404 if missing, 409 if already completed
        """
        link = (link or "").strip()
        if not link:
            raise HTTPException(status_code=400, detail="A final link is required")

        collaboration = await self.get_collaboration(collab_id)
        if acting_user_id not in collaboration.participant_ids:
            raise HTTPException(
                status_code=403, detail="Not a participant in this collaboration"
            )
        if collaboration.status == CollaborationStatus.COMPLETED:
            raise HTTPException(
                status_code=409, detail="Collaboration is already completed"
            )

        collab_key = (COLLABORATIONS, collab_id)
        user_keys = {uid: (USERS, uid) for uid in collaboration.participant_ids}

        def plan(snapshots: Snapshots) -> List[DocumentWrite]:
            current = snapshots[collab_key]
            if current is None:
                raise HTTPException(status_code=404, detail="Collaboration not found")
            if current.get("status") == CollaborationStatus.COMPLETED.value:
                raise HTTPException(
                    status_code=409, detail="Collaboration is already completed"
                )

            writes = [
                DocumentWrite(
                    kind=WriteKind.UPDATE,
                    collection_name=COLLABORATIONS,
                    document_id=collab_id,
                    data={
                        "status": CollaborationStatus.COMPLETED.value,
                        "finalLink": link,
                    },
                )
            ]

            completed_on = utcnow().strftime("%b %Y")
            for uid in collaboration.participant_ids:
                user_data = snapshots[user_keys[uid]]
                if user_data is None:
                    logger.warning(
                        f"Skipping portfolio update for missing profile {uid} "
                        f"on collaboration {collab_id}"
                    )
                    continue

                partner_id = collaboration.partner_of(uid)
                partner_data = snapshots[user_keys[partner_id]] or {}
                partner_info = collaboration.participants.get(partner_id)

                entry = PastCollaboration(
                    id=collab_id,
                    title=collaboration.project_name,
                    partner_name=(partner_info.display_name if partner_info else "")
                    or "Partner",
                    description=f"Project Completed. Watch here: {link}",
                    image_url=partner_data.get("photoURL") or FALLBACK_AVATAR_URL,
                    date=completed_on,
                    link=link,
                )
                existing = user_data.get("pastCollaborations") or []
                writes.append(
                    DocumentWrite(
                        kind=WriteKind.UPDATE,
                        collection_name=USERS,
                        document_id=uid,
                        data={"pastCollaborations": [entry.to_firestore(), *existing]},
                    )
                )
            return writes

        try:
            await self.firestore_service.run_transaction(
                [collab_key, *user_keys.values()], plan
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                f"Failed to complete collaboration {collab_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail="Failed to complete collaboration"
            )

        logger.info(f"Collaboration {collab_id} completed by {acting_user_id}")
        return collaboration.model_copy(
            update={"status": CollaborationStatus.COMPLETED.value, "final_link": link}
        )

    async def get_collaboration(self, collab_id: str) -> Collaboration:
        collaboration = await self.firestore_service.get_document(
            collection_name=COLLABORATIONS,
            document_id=collab_id,
            model_class=Collaboration,
        )
        if collaboration is None:
            raise HTTPException(status_code=404, detail="Collaboration not found")
        return collaboration

    async def list_collaborations(self, user_id: str) -> List[Collaboration]:
        """Collaborations the user participates in."""
        return await self.firestore_service.query_collection(
            collection_name=COLLABORATIONS,
            filters=[("participantIds", "array_contains", user_id)],
            model_class=Collaboration,
        )

    def subscribe_collaborations(
        self, user_id: str, callback: Callable[[List[Collaboration]], None]
    ) -> Unsubscribe:
        return self.firestore_service.subscribe(
            collection_name=COLLABORATIONS,
            callback=callback,
            filters=[("participantIds", "array_contains", user_id)],
            model_class=Collaboration,
        )

    @staticmethod
    def _participant_info(
        profile_data: Optional[Dict[str, Any]], fallback_name: str, fallback_photo: str
    ) -> ParticipantInfo:
        profile_data = profile_data or {}
        return ParticipantInfo(
            display_name=profile_data.get("displayName") or fallback_name or "",
            photo_url=profile_data.get("photoURL") or fallback_photo or "",
        )

    @staticmethod
    def _calendar_event(
        collab_id: str, request: CollabRequest, partner_name: str, now
    ) -> CalendarEvent:
        # TODO: use the request's dates hint once the product decides how to parse it
        description = f"Collaboration with {partner_name or 'Partner'}. {request.description}"
        return CalendarEvent(
            id=f"collab-{collab_id}",
            title=f"Project: {request.project_name}",
            date=now + timedelta(days=1),
            type=CalendarEventType.COLLAB,
            description=description.strip(),
        )

"""
Collaboration Request Manager

This module manages pending collaboration requests between two creators.
Requests only ever exist in the pending state: accepting or declining one
deletes it.
"""

import hashlib
import logging
from traceback import format_exc
from typing import Callable, List

from fastapi import HTTPException

from app.models.collaborations import (
    CollabRequest,
    CollabRequestStatus,
    NewCollabRequest,
)
from app.models.firestore import REQUESTS
from app.services.firestore_service import (
    DocumentWrite,
    FirestoreService,
    Snapshots,
    Unsubscribe,
    WriteKind,
    utcnow,
)
from app.services.profile_manager import ProfileManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def request_id_for(sender_id: str, receiver_id: str) -> str:
    """Deterministic request id, so a pair can only have one pending request."""
    return hashlib.sha256(f"{sender_id}:{receiver_id}".encode("utf-8")).hexdigest()


class CollabRequestManager:
    """Creates, lists and deletes pending collaboration requests."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service
        self.profile_manager = ProfileManager(firestore_service)

    async def send_request(
        self, receiver_id: str, request: NewCollabRequest
    ) -> CollabRequest:
        """
        Create a pending collaboration request.

        Args:
            receiver_id: Uid of the creator receiving the request
            request: Sender details and project description. The sender's
                stored profile name and photo take precedence over the ones given

        Returns:
            The stored CollabRequest

        Raises:
            HTTPException: 400 for a request to oneself, 409 if the pair already
                has a pending request
        """
        if not receiver_id:
            raise HTTPException(status_code=400, detail="Receiver is required")
        if request.sender_id == receiver_id:
            raise HTTPException(
                status_code=400, detail="Cannot send a collaboration request to yourself"
            )

        sender_profile = await self.profile_manager.get_profile(request.sender_id)
        if sender_profile is not None:
            request = request.model_copy(
                update={
                    "sender_name": sender_profile.display_name or request.sender_name,
                    "sender_photo": sender_profile.photo_url or request.sender_photo,
                }
            )

        request_id = request_id_for(request.sender_id, receiver_id)
        collab_request = CollabRequest(
            **request.model_dump(),
            id=request_id,
            receiver_id=receiver_id,
            status=CollabRequestStatus.PENDING,
            timestamp=utcnow(),
        )
        key = (REQUESTS, request_id)

        def plan(snapshots: Snapshots) -> List[DocumentWrite]:
            if snapshots[key] is not None:
                raise HTTPException(
                    status_code=409,
                    detail="A pending collaboration request already exists",
                )
            return [
                DocumentWrite(
                    kind=WriteKind.CREATE,
                    collection_name=REQUESTS,
                    document_id=request_id,
                    data=collab_request.to_firestore(exclude={"id"}),
                )
            ]

        try:
            await self.firestore_service.run_transaction([key], plan)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                f"Failed to send collaboration request from {request.sender_id} "
                f"to {receiver_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail="Failed to send collaboration request"
            )

        logger.info(
            f"Sent collaboration request {request_id} from {request.sender_id} to {receiver_id}"
        )
        return collab_request

    async def get_request(self, request_id: str) -> CollabRequest:
        request = await self.firestore_service.get_document(
            collection_name=REQUESTS,
            document_id=request_id,
            model_class=CollabRequest,
        )
        if request is None:
            raise HTTPException(status_code=404, detail="Collaboration request not found")
        return request

    async def list_received(self, user_id: str) -> List[CollabRequest]:
        """Pending requests addressed to the user."""
        return await self.firestore_service.query_collection(
            collection_name=REQUESTS,
            filters=self._received_filters(user_id),
            model_class=CollabRequest,
        )

    async def list_sent(self, user_id: str) -> List[CollabRequest]:
        """Pending requests the user has sent."""
        return await self.firestore_service.query_collection(
            collection_name=REQUESTS,
            filters=self._sent_filters(user_id),
            model_class=CollabRequest,
        )

    async def count_received(self, user_id: str) -> int:
        return await self.firestore_service.count_documents(
            collection_name=REQUESTS, filters=self._received_filters(user_id)
        )

    def subscribe_received(
        self, user_id: str, callback: Callable[[List[CollabRequest]], None]
    ) -> Unsubscribe:
        return self.firestore_service.subscribe(
            collection_name=REQUESTS,
            callback=callback,
            filters=self._received_filters(user_id),
            model_class=CollabRequest,
        )

    def subscribe_sent(
        self, user_id: str, callback: Callable[[List[CollabRequest]], None]
    ) -> Unsubscribe:
        return self.firestore_service.subscribe(
            collection_name=REQUESTS,
            callback=callback,
            filters=self._sent_filters(user_id),
            model_class=CollabRequest,
        )

    async def decline(self, request_id: str, user_id: str) -> bool:
        """
        Delete a pending request. Either party may withdraw or decline it.

        Raises:
            HTTPException: 404 if the request does not exist, 403 if the user
                is neither sender nor receiver
        """
        request = await self.get_request(request_id)
        if user_id not in (request.sender_id, request.receiver_id):
            logger.error(f"User {user_id} is not a party to request {request_id}")
            raise HTTPException(
                status_code=403, detail="Not a party to this collaboration request"
            )

        try:
            await self.firestore_service.delete_document(
                collection_name=REQUESTS, document_id=request_id
            )
        except Exception as e:
            logger.error(
                f"Failed to delete collaboration request {request_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(
                status_code=500, detail="Failed to delete collaboration request"
            )

        logger.info(f"Deleted collaboration request {request_id} by user {user_id}")
        return True

    @staticmethod
    def _received_filters(user_id: str) -> List[tuple]:
        return [
            ("receiverId", "==", user_id),
            ("status", "==", CollabRequestStatus.PENDING.value),
        ]

    @staticmethod
    def _sent_filters(user_id: str) -> List[tuple]:
        return [
            ("senderId", "==", user_id),
            ("status", "==", CollabRequestStatus.PENDING.value),
        ]

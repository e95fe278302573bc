"""
Chat Manager

This module derives unread state for chats and maintains the per-user read
watermark. Message delivery itself is handled by Firestore live queries; this
module only appends messages and keeps the chat's denormalised last message
in sync.

A chat is unread for a user when its last message was sent by someone else
and the user's watermark is missing or older than that message.
"""

import logging
from traceback import format_exc
from typing import Callable, List, Optional

from fastapi import HTTPException

from app.models.chats import Chat, ChatSummary, LastMessage, Message, MessageType
from app.models.firestore import CHATS, messages_collection
from app.models.users import CreatorProfile
from app.services.firestore_service import (
    DocumentWrite,
    FirestoreService,
    Unsubscribe,
    WriteKind,
    utcnow,
)
from app.services.profile_manager import ProfileManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def chat_id_for(uid1: str, uid2: str) -> str:
    """Chat id shared by two users regardless of who starts the chat."""
    return f"{uid1}_{uid2}" if uid1 < uid2 else f"{uid2}_{uid1}"


def is_unread(chat: Chat, user_id: str) -> bool:
    last_message = chat.last_message
    if last_message is None or last_message.sender_id == user_id:
        return False

    last_read = chat.last_read.get(user_id)
    if last_read is None:
        return True
    # A missing timestamp means the server has not stamped the write yet,
    # so the message is newer than any watermark.
    if last_message.timestamp is None:
        return True
    return last_message.timestamp > last_read


def count_unread_chats(chats: List[Chat], user_id: str) -> int:
    return sum(1 for chat in chats if is_unread(chat, user_id))


def _preview_text(text: str, message_type: MessageType) -> str:
    if message_type == MessageType.IMAGE:
        return "Sent an image"
    if message_type == MessageType.SYSTEM:
        return "System Notification"
    return text


class ChatManager:
    """Appends messages, tracks read watermarks and lists chats."""

    def __init__(self, firestore_service: FirestoreService):
        self.firestore_service = firestore_service
        self.profile_manager = ProfileManager(firestore_service)

    async def send_message(
        self,
        chat_id: str,
        sender_id: str,
        text: str = "",
        message_type: MessageType = MessageType.TEXT,
        media_url: Optional[str] = None,
    ) -> Message:
        """
        Append a message and update the chat's last message in one batch.

        Raises:
            HTTPException: 400 for a malformed chat id or empty text message,
                403 if the sender is not one of the chat's participants
        """
        participant_ids = self._participants(chat_id)
        if sender_id not in participant_ids:
            raise HTTPException(status_code=403, detail="Not a participant in this chat")
        if message_type == MessageType.TEXT and not text.strip():
            raise HTTPException(status_code=400, detail="Message text is required")

        now = utcnow()
        message = Message(
            id=self.firestore_service.new_document_id(),
            text=text,
            sender_id=sender_id,
            timestamp=now,
            type=message_type,
            media_url=media_url,
            status="sent",
        )
        last_message = LastMessage(
            text=_preview_text(text, message_type), timestamp=now, sender_id=sender_id
        )

        writes = [
            DocumentWrite(
                kind=WriteKind.CREATE,
                collection_name=messages_collection(chat_id),
                document_id=message.id,
                data=message.to_firestore(exclude={"id"}),
            ),
            DocumentWrite(
                kind=WriteKind.MERGE,
                collection_name=CHATS,
                document_id=chat_id,
                data={
                    "lastMessage": last_message.to_firestore(),
                    "participantIds": participant_ids,
                    "updatedAt": now,
                },
            ),
        ]

        try:
            await self.firestore_service.commit_batch(writes)
        except Exception as e:
            logger.error(
                f"Failed to send message in chat {chat_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(status_code=500, detail="Failed to send message")

        return message

    async def get_chat(self, chat_id: str) -> Chat:
        chat = await self.firestore_service.get_document(
            collection_name=CHATS, document_id=chat_id, model_class=Chat
        )
        if chat is None:
            raise HTTPException(status_code=404, detail="Chat not found")
        return chat

    async def mark_chat_as_read(self, chat_id: str, user_id: str) -> bool:
        """
        Move the user's read watermark to now.

        Safe to call repeatedly: on chat open and on every incoming message
        while the chat is on screen.
        """
        chat = await self.get_chat(chat_id)
        self.require_participant(chat, user_id)

        try:
            await self.firestore_service.update_document(
                collection_name=CHATS,
                document_id=chat_id,
                update_data={f"lastRead.{user_id}": utcnow()},
            )
        except Exception as e:
            logger.error(
                f"Failed to mark chat {chat_id} read for {user_id}: {str(e)}\n{format_exc()}"
            )
            raise HTTPException(status_code=500, detail="Failed to mark chat as read")
        return True

    async def list_chats(self, user_id: str) -> List[Chat]:
        return await self.firestore_service.query_collection(
            collection_name=CHATS,
            filters=[("participantIds", "array_contains", user_id)],
            model_class=Chat,
        )

    def subscribe_chats(
        self, user_id: str, callback: Callable[[List[Chat]], None]
    ) -> Unsubscribe:
        return self.firestore_service.subscribe(
            collection_name=CHATS,
            callback=callback,
            filters=[("participantIds", "array_contains", user_id)],
            model_class=Chat,
        )

    async def list_messages(self, chat_id: str) -> List[Message]:
        return await self.firestore_service.query_collection(
            collection_name=messages_collection(chat_id),
            order_by="timestamp",
            model_class=Message,
        )

    def subscribe_messages(
        self, chat_id: str, callback: Callable[[List[Message]], None]
    ) -> Unsubscribe:
        return self.firestore_service.subscribe(
            collection_name=messages_collection(chat_id),
            callback=callback,
            order_by="timestamp",
            model_class=Message,
        )

    async def build_summaries(
        self, user_id: str, chats: List[Chat]
    ) -> List[ChatSummary]:
        """Attach partner profiles and unread flags, newest conversation first."""
        partner_ids = {
            partner_id
            for chat in chats
            for partner_id in chat.participant_ids
            if partner_id != user_id
        }
        profiles = await self.profile_manager.get_profiles(partner_ids)

        summaries = []
        for chat in chats:
            partner_id = next((p for p in chat.participant_ids if p != user_id), "")
            partner = profiles.get(partner_id) or CreatorProfile(
                id=partner_id, display_name="Creator"
            )
            summaries.append(
                ChatSummary(
                    **chat.model_dump(),
                    partner=partner,
                    unread=is_unread(chat, user_id),
                )
            )

        summaries.sort(
            key=lambda s: s.last_message.timestamp.timestamp()
            if s.last_message and s.last_message.timestamp
            else 0.0,
            reverse=True,
        )
        return summaries

    @staticmethod
    def require_participant(chat: Chat, user_id: str) -> None:
        if user_id not in chat.participant_ids:
            raise HTTPException(status_code=403, detail="Not a participant in this chat")

    @staticmethod
    def _participants(chat_id: str) -> List[str]:
        participant_ids = chat_id.split("_")
        if len(participant_ids) != 2 or not all(participant_ids):
            raise HTTPException(status_code=400, detail="Malformed chat id")
        return participant_ids

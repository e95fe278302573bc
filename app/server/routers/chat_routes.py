import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from app.models.chats import ChatSummary, Message, SendMessageRequest
from app.models.users import AuthenticatedUser
from app.server.dependencies import get_chat_manager
from app.server.routers.auth_routes import get_current_user
from app.server.streaming import sse_response
from app.services.chat_manager import ChatManager

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create a router for chat operations
chat_router = APIRouter()


class ChatsResponse(BaseModel):
    data: List[ChatSummary]


class MessagesResponse(BaseModel):
    data: List[Message]


@chat_router.get("", response_model=ChatsResponse)
async def get_chats(
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
) -> ChatsResponse:
    """Chats of the current user with partner details and unread flags."""
    chats = await chat_manager.list_chats(current_user.uid)
    return ChatsResponse(data=await chat_manager.build_summaries(current_user.uid, chats))


@chat_router.get("/stream")
async def stream_chats(
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
):
    async def _summarise(chats):
        return await chat_manager.build_summaries(current_user.uid, chats)

    return sse_response(
        request,
        lambda callback: chat_manager.subscribe_chats(current_user.uid, callback),
        transform=_summarise,
    )


@chat_router.get("/{chat_id}/messages", response_model=MessagesResponse)
async def get_messages(
    chat_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
) -> MessagesResponse:
    chat = await chat_manager.get_chat(chat_id)
    chat_manager.require_participant(chat, current_user.uid)
    return MessagesResponse(data=await chat_manager.list_messages(chat_id))


@chat_router.get("/{chat_id}/messages/stream")
async def stream_messages(
    chat_id: str,
    request: Request,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
):
    chat = await chat_manager.get_chat(chat_id)
    chat_manager.require_participant(chat, current_user.uid)
    return sse_response(
        request,
        lambda callback: chat_manager.subscribe_messages(chat_id, callback),
    )


@chat_router.post("/{chat_id}/messages", response_model=Message, status_code=201)
async def send_message(
    chat_id: str,
    body: SendMessageRequest,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
) -> Message:
    return await chat_manager.send_message(
        chat_id,
        current_user.uid,
        text=body.text,
        message_type=body.type,
        media_url=body.media_url,
    )


@chat_router.post("/{chat_id}/read")
async def mark_chat_as_read(
    chat_id: str,
    current_user: Annotated[AuthenticatedUser, Depends(get_current_user)],
    chat_manager: Annotated[ChatManager, Depends(get_chat_manager)],
):
    """Advance the current user's read watermark for the chat."""
    await chat_manager.mark_chat_as_read(chat_id, current_user.uid)
    return {"message": "success"}

"""
Messaging endpoints
===================

GET /api/messages/conversations      -- one entry per counterpart, newest first
GET /api/messages/{user_id}          -- conversation with one user
POST /api/messages                   -- send a message
PUT /api/messages/{message_id}/read  -- mark a received message as read

Delivery is pull-based: clients poll ``GET /api/messages/{user_id}``
(every 5 s in the web client) and may pass ``afterId`` to fetch only
messages newer than the last one they hold.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from campuspool.api.dependencies import get_current_user, get_storage
from campuspool.api.middleware import limiter
from campuspool.api.schemas import (
    ConversationResponse,
    MessageCreateRequest,
    MessageResponse,
    UserResponse,
)
from campuspool.config import settings
from campuspool.domain.entities import Conversation, User
from campuspool.infrastructure.storage import Storage

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get(
    "/conversations",
    response_model=list[ConversationResponse],
    summary="List conversations",
)
@limiter.limit(settings.rate_limit)
async def list_conversations(
    request: Request,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    conversations: dict[int, Conversation] = {}
    for message in await storage.list_user_messages(user.id):
        other_id = (
            message.receiver_id if message.sender_id == user.id else message.sender_id
        )
        if other_id not in conversations:
            other = await storage.get_user(other_id)
            if other is None:
                continue
            conversations[other_id] = Conversation(user=other)

        conversation = conversations[other_id]
        conversation.messages.append(message)
        # messages arrive oldest first
        conversation.last_message = message
        if message.receiver_id == user.id and not message.read:
            conversation.unread_count += 1

    ordered = sorted(
        conversations.values(),
        key=lambda c: (c.last_message.created_at, c.last_message.id),
        reverse=True,
    )
    return [
        ConversationResponse(
            user_id=c.user.id,
            user=UserResponse.model_validate(c.user),
            messages=[MessageResponse.model_validate(m) for m in c.messages],
            last_message=MessageResponse.model_validate(c.last_message),
            unread_count=c.unread_count,
        )
        for c in ordered
    ]


@router.get(
    "/{user_id}",
    response_model=list[MessageResponse],
    summary="Messages exchanged with a user",
)
@limiter.limit(settings.rate_limit)
async def list_messages(
    request: Request,
    user_id: int,
    after_id: Optional[int] = Query(
        None, alias="afterId", description="Only return messages with a larger id."
    ),
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_messages_between(user.id, user_id, after_id=after_id)


@router.post(
    "",
    status_code=201,
    response_model=MessageResponse,
    summary="Send a message",
)
@limiter.limit(settings.rate_limit)
async def send_message(
    request: Request,
    body: MessageCreateRequest,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    if await storage.get_user(body.receiver_id) is None:
        raise HTTPException(status_code=404, detail="Receiver not found")
    return await storage.create_message(user.id, body.receiver_id, body.content)


@router.put(
    "/{message_id}/read",
    status_code=204,
    summary="Mark a received message as read",
)
@limiter.limit(settings.rate_limit)
async def mark_read(
    request: Request,
    message_id: int,
    user: User = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    message = await storage.get_message(message_id)
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    if message.receiver_id != user.id:
        raise HTTPException(
            status_code=403, detail="You can only mark messages sent to you as read"
        )
    await storage.mark_message_read(message_id)

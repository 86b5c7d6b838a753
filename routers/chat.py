from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_active_user
from models.user import User
from schemas.chat import (
    ConversationDetail,
    ConversationRead,
    ConversationsResponse,
    LastMessage,
    ReadReceipt,
    SendMessageRequest,
    SendMessageResponse,
)
from services.chat import get_conversation, list_conversations, mark_read, send_message
from services.delivery import DeliveryRouter
from services.gateway import get_delivery
from utils.user_helpers import to_message_read, to_user_read

router = APIRouter(prefix="/chat", tags=["chat"])


@router.get(
    "/conversations",
    response_model=ConversationsResponse,
    summary="Список переписок по активным матчам",
)
async def get_conversations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
) -> ConversationsResponse:
    conversations = await list_conversations(db, current_user.id)
    out = []
    for conv in conversations:
        last = None
        if conv.last_message is not None:
            last = LastMessage(
                content=conv.last_message.content,
                sender_id=conv.last_message.sender_id,
                created_at=conv.last_message.created_at,
            )
        out.append(
            ConversationRead(
                match_id=conv.match.id,
                user=to_user_read(conv.other),
                last_message=last,
                unread_count=conv.unread_count,
                updated_at=conv.updated_at,
            )
        )
    return ConversationsResponse(conversations=out)


@router.get(
    "/conversation/{match_id}",
    response_model=ConversationDetail,
    summary="Сообщения переписки, старые сверху",
)
async def get_conversation_messages(
    match_id: int,
    limit: Optional[int] = Query(None, ge=1, le=200),
    before: Optional[datetime] = Query(None, description="Только сообщения старше этого момента"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
) -> ConversationDetail:
    page = await get_conversation(db, current_user.id, match_id, limit=limit, before=before)
    return ConversationDetail(
        match_id=page.match.id,
        user=to_user_read(page.other),
        messages=[to_message_read(m) for m in page.messages],
        total=page.total,
    )


@router.post(
    "/message",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Отправить сообщение в переписку матча",
)
async def post_message(
    payload: SendMessageRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
    delivery: DeliveryRouter = Depends(get_delivery),
) -> SendMessageResponse:
    message = await send_message(
        db,
        delivery,
        sender_id=current_user.id,
        recipient_id=payload.recipient_id,
        match_id=payload.match_id,
        content=payload.content,
    )
    return SendMessageResponse(message=to_message_read(message))


@router.put(
    "/read/{match_id}",
    response_model=ReadReceipt,
    summary="Отметить входящие сообщения прочитанными",
)
async def put_read(
    match_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
) -> ReadReceipt:
    count = await mark_read(db, current_user.id, match_id)
    return ReadReceipt(count=count)

"""Отправка сообщений, чтение переписки и отметка прочитанного."""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import insert_or_fetch
from core.errors import AuthorizationError, NotFoundError, ValidationError
from models.match import Match, MatchStatus
from models.message import Message
from models.user import User
from services.delivery import DeliveryRouter

logger = logging.getLogger(__name__)


@dataclass
class Conversation:
    match: Match
    other: User
    last_message: Optional[Message]
    unread_count: int

    @property
    def updated_at(self) -> datetime:
        if self.last_message is not None:
            return self.last_message.created_at
        return self.match.created_at


@dataclass
class ConversationPage:
    match: Match
    other: User
    messages: List[Message]
    total: int


def as_utc(value: datetime) -> datetime:
    """Время без зоны считаем UTC: колонки хранятся как timestamptz."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_content(content: Optional[str]) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Message content cannot be empty", code="CONTENT_REQUIRED")
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message cannot exceed {settings.MESSAGE_MAX_LENGTH} characters",
            code="CONTENT_TOO_LONG",
        )
    return content.strip()


async def get_member_match(
    db: AsyncSession,
    user_id: int,
    match_id: int,
    require_active: bool = True,
) -> Match:
    match = await db.get(Match, match_id)
    if not match:
        raise NotFoundError("Conversation not found", code="MATCH_NOT_FOUND")
    if require_active and match.status != MatchStatus.active:
        raise AuthorizationError("This conversation is blocked", code="MATCH_BLOCKED")
    if user_id not in match.participants:
        raise AuthorizationError("You do not have access to this conversation", code="NOT_PARTICIPANT")
    return match


async def send_message(
    db: AsyncSession,
    delivery: DeliveryRouter,
    sender_id: int,
    recipient_id: int,
    match_id: int,
    content: Optional[str],
) -> Message:
    """
    Проверить, сохранить и разослать сообщение.

    Одинаково вызывается из HTTP-роутера и из realtime-шлюза. Пара участников
    матча должна в точности совпадать с {sender, recipient}.
    """
    text = validate_content(content)
    if sender_id == recipient_id:
        raise ValidationError("You cannot send messages to yourself", code="SELF_MESSAGE")

    match = await get_member_match(db, sender_id, match_id)
    if match.participants != frozenset((sender_id, recipient_id)):
        raise AuthorizationError(
            "You do not have permission to send messages in this conversation",
            code="NOT_PARTICIPANT",
        )

    message, _ = await insert_or_fetch(
        db,
        Message(
            sender_id=sender_id,
            recipient_id=recipient_id,
            match_id=match_id,
            content=text,
            read=False,
        ),
    )

    await delivery.deliver(message)
    return message


async def mark_read(db: AsyncSession, user_id: int, match_id: int) -> int:
    """Отметить прочитанными все входящие сообщения матча. Повторный вызов вернёт 0."""
    await get_member_match(db, user_id, match_id, require_active=False)

    result = await db.execute(
        update(Message)
        .where(
            Message.match_id == match_id,
            Message.recipient_id == user_id,
            Message.read.is_(False),
        )
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def list_conversations(db: AsyncSession, user_id: int) -> List[Conversation]:
    res = await db.execute(
        select(Match).where(
            or_(Match.user_a_id == user_id, Match.user_b_id == user_id),
            Match.status == MatchStatus.active,
        )
    )
    matches = res.scalars().all()

    conversations: List[Conversation] = []
    for match in matches:
        other = await db.get(User, match.other_participant(user_id))
        if not other or not other.is_active:
            continue

        last = await db.execute(
            select(Message)
            .where(Message.match_id == match.id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        unread = await db.execute(
            select(func.count(Message.id)).where(
                Message.match_id == match.id,
                Message.recipient_id == user_id,
                Message.read.is_(False),
            )
        )
        conversations.append(
            Conversation(
                match=match,
                other=other,
                last_message=last.scalar_one_or_none(),
                unread_count=unread.scalar_one(),
            )
        )

    conversations.sort(key=lambda c: c.updated_at, reverse=True)
    return conversations


async def get_conversation(
    db: AsyncSession,
    user_id: int,
    match_id: int,
    limit: Optional[int] = None,
    before: Optional[datetime] = None,
) -> ConversationPage:
    match = await get_member_match(db, user_id, match_id)
    other = await db.get(User, match.other_participant(user_id))
    if not other:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    stmt = select(Message).where(Message.match_id == match_id)
    if before is not None:
        stmt = stmt.where(Message.created_at < as_utc(before))
    stmt = stmt.order_by(Message.created_at.desc()).limit(limit or settings.CONVERSATION_PAGE_LIMIT)
    res = await db.execute(stmt)
    # Берём последние N и разворачиваем в хронологический порядок
    messages = list(reversed(res.scalars().all()))

    total = await db.execute(select(func.count(Message.id)).where(Message.match_id == match_id))
    return ConversationPage(match=match, other=other, messages=messages, total=total.scalar_one())

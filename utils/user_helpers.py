"""Утилиты для преобразования моделей в схемы Pydantic."""
from models.message import Message
from models.user import User
from schemas.chat import MessageRead
from schemas.user import UserRead


def to_user_read(user: User) -> UserRead:
    """Сконвертировать модель пользователя в UserRead."""
    return UserRead(
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        about=user.about,
        created_at=user.created_at,
    )


def to_message_read(message: Message) -> MessageRead:
    return MessageRead.model_validate(message)


def message_projection(message: Message) -> dict:
    """JSON-проекция сообщения для отправки по сокету."""
    return to_message_read(message).model_dump(mode="json")

from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from schemas.user import UserRead


class SendMessageRequest(BaseModel):
    match_id: int = Field(..., description="ID матча (комнаты чата)")
    recipient_id: int = Field(..., description="ID получателя")
    # Пустое содержимое отклоняет сервис со своим кодом ошибки, не pydantic
    content: Optional[str] = Field(None, description="Текст сообщения, до 1000 символов")


class MessageRead(BaseModel):
    id: int
    sender_id: int
    recipient_id: int
    match_id: int
    content: str
    read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class SendMessageResponse(BaseModel):
    message: MessageRead


class ReadReceipt(BaseModel):
    count: int


class LastMessage(BaseModel):
    content: str
    sender_id: int
    created_at: datetime


class ConversationRead(BaseModel):
    match_id: int
    user: UserRead
    last_message: Optional[LastMessage] = None
    unread_count: int
    updated_at: datetime


class ConversationsResponse(BaseModel):
    conversations: List[ConversationRead]


class ConversationDetail(BaseModel):
    match_id: int
    user: UserRead
    messages: List[MessageRead]
    total: int

from typing import Optional
from datetime import datetime

from pydantic import BaseModel, Field


class UserRead(BaseModel):
    user_id: int = Field(..., description="PK в базе данных")
    first_name: str = Field(..., max_length=100, description="Имя пользователя")
    last_name: Optional[str] = Field(None, description="Фамилия")
    about: Optional[str] = Field(None, description="О себе")
    created_at: Optional[datetime] = Field(None, description="Дата и время создания аккаунта")

    class Config:
        from_attributes = True

from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from models.match import MatchStatus
from schemas.user import UserRead


class SwipeRequest(BaseModel):
    target_id: int = Field(..., description="ID пользователя, по которому свайпают")
    kind: str = Field(..., description="'like' или 'dislike'")


class MatchRead(BaseModel):
    id: int
    user_a_id: int
    user_b_id: int
    status: MatchStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SwipeResponse(BaseModel):
    matched: bool
    match: Optional[MatchRead] = None


class CandidateResponse(BaseModel):
    candidate: Optional[UserRead] = None


class MatchListItem(BaseModel):
    id: int
    user: UserRead
    created_at: Optional[datetime] = None


class MatchListResponse(BaseModel):
    matches: List[MatchListItem]
    total: int

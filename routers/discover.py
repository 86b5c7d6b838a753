from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.security import get_active_user
from models.user import User
from schemas.interaction import (
    CandidateResponse,
    MatchListItem,
    MatchListResponse,
    MatchRead,
    SwipeRequest,
    SwipeResponse,
)
from services.discovery import list_matches, next_candidate
from services.match_engine import swipe
from utils.user_helpers import to_user_read

router = APIRouter(prefix="/discover", tags=["discover"])


@router.post(
    "/swipe",
    response_model=SwipeResponse,
    status_code=status.HTTP_200_OK,
    summary="Поставить лайк или дизлайк и узнать, образовался ли матч",
)
async def swipe_user(
    payload: SwipeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
) -> SwipeResponse:
    user_id = current_user.id
    result = await swipe(db, user_id, payload.target_id, payload.kind)
    if not result.matched:
        return SwipeResponse(matched=False)
    return SwipeResponse(matched=True, match=MatchRead.model_validate(result.match))


@router.get(
    "/next",
    response_model=CandidateResponse,
    summary="Следующий случайный кандидат для свайпа",
)
async def get_next_candidate(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
) -> CandidateResponse:
    candidate = await next_candidate(db, current_user.id)
    if candidate is None:
        return CandidateResponse(candidate=None)
    return CandidateResponse(candidate=to_user_read(candidate))


@router.get(
    "/matches",
    response_model=MatchListResponse,
    summary="Список активных матчей",
)
async def get_my_matches(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_active_user),
) -> MatchListResponse:
    rows = await list_matches(db, current_user.id)
    items = [
        MatchListItem(id=match.id, user=to_user_read(other), created_at=match.created_at)
        for match, other in rows
    ]
    return MatchListResponse(matches=items, total=len(items))

"""Выдача кандидатов и список матчей."""
from typing import List, Optional, Set, Tuple

from sqlalchemy import func, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.interaction import Interaction
from models.match import Match, MatchStatus
from models.user import User


async def excluded_user_ids(db: AsyncSession, user_id: int) -> Set[int]:
    """
    Кого нельзя показывать пользователю: его самого, всех, по кому он уже
    свайпал (лайк или дизлайк), и всех, с кем у него есть матч.

    Считается заново на каждый запрос, без кэша.
    """
    res = await db.execute(select(Interaction.target_id).where(Interaction.actor_id == user_id))
    interacted = {row[0] for row in res.all()}

    res = await db.execute(
        select(Match.user_a_id, Match.user_b_id).where(
            or_(Match.user_a_id == user_id, Match.user_b_id == user_id)
        )
    )
    matched = {b if a == user_id else a for a, b in res.all()}

    return interacted | matched | {user_id}


async def next_candidate(db: AsyncSession, user_id: int) -> Optional[User]:
    excluded = await excluded_user_ids(db, user_id)
    stmt = (
        select(User)
        .where(
            User.is_active.is_(True),
            not_(User.id.in_(excluded)),
        )
        .order_by(func.random())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_matches(db: AsyncSession, user_id: int) -> List[Tuple[Match, User]]:
    """Активные матчи пользователя вместе со вторым участником, новые сверху."""
    stmt = (
        select(Match)
        .where(
            or_(Match.user_a_id == user_id, Match.user_b_id == user_id),
            Match.status == MatchStatus.active,
        )
        .order_by(Match.created_at.desc())
    )
    result = await db.execute(stmt)
    matches = result.scalars().all()

    out: List[Tuple[Match, User]] = []
    for match in matches:
        other = await db.get(User, match.other_participant(user_id))
        # Пропускаем удалённых и деактивированных
        if not other or not other.is_active:
            continue
        out.append((match, other))
    return out

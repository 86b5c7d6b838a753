"""Формирование матчей из взаимных лайков."""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import insert_or_fetch
from core.errors import ConflictError
from models.interaction import InteractionKind
from models.match import Match, MatchStatus, normalize_pair
from services.ledger import find_interaction, parse_kind, record_interaction

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    matched: bool
    match: Optional[Match] = None
    created: bool = False


def pair_lookup(first_id: int, second_id: int):
    user_a_id, user_b_id = normalize_pair(first_id, second_id)
    return select(Match).where(Match.user_a_id == user_a_id, Match.user_b_id == user_b_id)


async def find_match_between(db: AsyncSession, first_id: int, second_id: int) -> Optional[Match]:
    result = await db.execute(pair_lookup(first_id, second_id))
    return result.scalar_one_or_none()


async def evaluate_for_match(db: AsyncSession, actor_id: int, target_id: int) -> MatchResult:
    """
    Проверить взаимность после лайка actor → target и создать матч.

    Повторный вызов для той же пары возвращает уже существующий матч, а гонка
    двух одновременных вызовов разрешается уникальным ключом на паре: проигравший
    перечитывает строку победителя.
    """
    reciprocal = await find_interaction(db, target_id, actor_id, kind=InteractionKind.like)
    if not reciprocal:
        return MatchResult(matched=False)

    user_a_id, user_b_id = normalize_pair(actor_id, target_id)
    match, created = await insert_or_fetch(
        db,
        Match(user_a_id=user_a_id, user_b_id=user_b_id, status=MatchStatus.active),
        pair_lookup(actor_id, target_id),
    )
    if created:
        logger.info("Match %s created for %s↔%s", match.id, user_a_id, user_b_id)
    return MatchResult(matched=True, match=match, created=created)


async def swipe(db: AsyncSession, actor_id: int, target_id: int, kind) -> MatchResult:
    """
    Записать свайп и, если это лайк, проверить взаимность.

    Повторный лайк по той же паре всё равно отвечает конфликтом, но перед этим
    взаимность проверяется ещё раз: если прошлая попытка сохранила лайк и упала
    на создании матча, матч будет создан сейчас.
    """
    try:
        interaction = await record_interaction(db, actor_id, target_id, kind)
    except ConflictError:
        if parse_kind(kind) == InteractionKind.like:
            previous = await find_interaction(db, actor_id, target_id, kind=InteractionKind.like)
            if previous is not None:
                result = await evaluate_for_match(db, actor_id, target_id)
                if result.created:
                    logger.warning("Match %s recovered on repeated like %s→%s", result.match.id, actor_id, target_id)
        raise

    if interaction.kind != InteractionKind.like:
        return MatchResult(matched=False)
    return await evaluate_for_match(db, actor_id, target_id)

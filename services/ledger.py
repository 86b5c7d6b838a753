"""Журнал свайпов: одна запись like/dislike на упорядоченную пару пользователей."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import insert_or_fetch
from core.errors import ConflictError, NotFoundError, ValidationError
from models.interaction import Interaction, InteractionKind
from models.user import User

logger = logging.getLogger(__name__)


def parse_kind(kind) -> InteractionKind:
    try:
        return InteractionKind(kind)
    except ValueError:
        raise ValidationError("kind must be 'like' or 'dislike'", code="INVALID_KIND")


async def find_interaction(
    db: AsyncSession,
    actor_id: int,
    target_id: int,
    kind: Optional[InteractionKind] = None,
) -> Optional[Interaction]:
    stmt = select(Interaction).where(
        Interaction.actor_id == actor_id,
        Interaction.target_id == target_id,
    )
    if kind is not None:
        stmt = stmt.where(Interaction.kind == kind)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def record_interaction(
    db: AsyncSession,
    actor_id: int,
    target_id: int,
    kind,
) -> Interaction:
    """
    Записать свайп actor → target.

    Существующая запись никогда не перезаписывается: повторный свайп по той же
    паре, в том числе с другим kind, даёт ConflictError. Проверка взаимности
    здесь не выполняется, это делает match_engine.
    """
    kind = parse_kind(kind)
    if actor_id == target_id:
        raise ValidationError("You cannot interact with yourself", code="SELF_INTERACTION")

    target = await db.get(User, target_id)
    if not target:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")

    lookup = select(Interaction).where(
        Interaction.actor_id == actor_id,
        Interaction.target_id == target_id,
    )
    interaction, created = await insert_or_fetch(
        db,
        Interaction(actor_id=actor_id, target_id=target_id, kind=kind),
        lookup,
    )
    if not created:
        raise ConflictError("You have already interacted with this user", code="DUPLICATE_INTERACTION")

    logger.info("Interaction %s→%s recorded: %s", actor_id, target_id, kind.value)
    return interaction

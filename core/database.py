import logging
from typing import AsyncGenerator, Optional, Tuple, TypeVar

from sqlalchemy import Select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

# Сколько раз перегенерировать случайный id при совпадении первичного ключа
ID_RETRY_ATTEMPTS = 5

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQL_ECHO,
    future=True,
    pool_pre_ping=True,      # проверка соединения перед использованием
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Асинхронный генератор сессии.
    Используется как Depends(get_db) в роутерах.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def insert_or_fetch(
    db: AsyncSession,
    obj: ModelT,
    lookup: Optional[Select] = None,
) -> Tuple[ModelT, bool]:
    """
    Вставить строку, а при нарушении уникальности вернуть уже существующую.

    `lookup`: запрос, который находит конфликтующую строку по уникальному ключу.
    Возвращает пару (строка, создана_ли). Если конфликт произошёл, а строку
    найти не удалось, значит совпал случайный первичный ключ: id генерируется
    заново, вставка повторяется до ID_RETRY_ATTEMPTS раз, потом исходная
    IntegrityError пробрасывается дальше.
    """
    for attempt in range(1, ID_RETRY_ATTEMPTS + 1):
        db.add(obj)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            if lookup is not None:
                result = await db.execute(lookup)
                existing = result.scalar_one_or_none()
                if existing is not None:
                    logger.debug("Unique conflict resolved with existing row %r", existing)
                    return existing, False
            if attempt == ID_RETRY_ATTEMPTS:
                raise
            logger.warning("Insert of %r collided (attempt %d), retrying with a new id", obj, attempt)
            # before_insert выдаст новый id
            obj.id = None
            continue

        await db.refresh(obj)
        return obj, True

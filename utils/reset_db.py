"""
Пересоздать схему UniMatch с нуля.

Перед удалением печатает, сколько строк было в каждой таблице, после создания
выводит список таблиц. Запуск: python -m utils.reset_db
"""
import asyncio
import logging
from typing import Dict

from sqlalchemy import func, inspect, select

from core.database import engine
from models.base import Base
# Регистрируем все таблицы в metadata
from models import interaction, match, message, user  # noqa: F401

log = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


async def row_counts() -> Dict[str, int]:
    """Число строк в каждой существующей таблице схемы."""
    async with engine.connect() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
        counts = {}
        for table in Base.metadata.sorted_tables:
            if table.name in existing:
                result = await conn.execute(select(func.count()).select_from(table))
                counts[table.name] = result.scalar_one()
        return counts


async def async_reset_database():
    counts = await row_counts()
    for name, count in counts.items():
        log.info("Dropping %s (%d rows)", name, count)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all, checkfirst=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    log.info("Schema recreated: %s", ", ".join(t.name for t in Base.metadata.sorted_tables))
    await engine.dispose()


def reset_database():
    asyncio.run(async_reset_database())


if __name__ == "__main__":
    reset_database()

# utils/seed_db.py
import asyncio
import logging
import random

from core.database import AsyncSessionLocal, engine
from core.errors import ConflictError
from core.security import create_access_token
from models.base import Base
from models.interaction import InteractionKind
from models.user import User
from services.match_engine import swipe

log = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

# Константы для семплов
NUM_USERS = 20
NUM_SWIPES = 120
LIKE_RATIO = 0.7
TOKENS_TO_PRINT = 5

FIRST_NAMES = [
    "Alex", "Sam", "Jordan", "Taylor", "Morgan", "Casey", "Jamie", "Reese", "Drew", "Quinn",
    "Riley", "Avery", "Cameron", "Logan", "Hayden", "Peyton", "Skyler", "Dakota", "Emerson", "Kai"
]
LAST_NAMES = ["Rojas", "Silva", "Muñoz", "Soto", "Díaz", "Pérez", "Vera", "Fuentes"]
ABOUT_TEMPLATES = [
    "Engineering student, coffee fanatic.",
    "Law school survivor and book lover.",
    "Med student who still finds time for concerts.",
    "Architecture major, always sketching.",
    "Economics, running and bad puns.",
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        # 1. Пользователи
        users = []
        for i in range(NUM_USERS):
            first_name = random.choice(FIRST_NAMES)
            user = User(
                email=f"{first_name.lower()}.{i}@campus.example",
                first_name=first_name,
                last_name=random.choice(LAST_NAMES),
                about=random.choice(ABOUT_TEMPLATES),
            )
            session.add(user)
            users.append(user)
        await session.commit()
        all_ids = [u.id for u in users]

        # 2. Свайпы через тот же сервис, что и API: матчи появляются сами
        matches = 0
        for _ in range(NUM_SWIPES):
            actor, target = random.sample(all_ids, 2)
            kind = InteractionKind.like if random.random() < LIKE_RATIO else InteractionKind.dislike
            try:
                result = await swipe(session, actor, target, kind)
            except ConflictError:
                continue
            if result.created:
                matches += 1

    log.info("Seeded %d users, %d matches", len(all_ids), matches)
    for user_id in all_ids[:TOKENS_TO_PRINT]:
        print(f"user {user_id}: {create_access_token(user_id)}")


if __name__ == "__main__":
    asyncio.run(seed())

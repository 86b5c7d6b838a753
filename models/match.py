# models/match.py
import enum
from typing import Tuple

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class MatchStatus(str, enum.Enum):
    active = "active"
    # Зарезервировано: переходов в blocked пока нет, но статус закрывает чат
    blocked = "blocked"


def normalize_pair(first_id: int, second_id: int) -> Tuple[int, int]:
    """Пара хранится упорядоченной, поэтому (A,B) и (B,A) дают одну строку."""
    u1, u2 = sorted([first_id, second_id])
    return u1, u2


class Match(Base):
    __tablename__ = "matches"

    id = Column(BigInteger, primary_key=True, index=True)
    user_a_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_b_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(
            MatchStatus,
            name="match_status",
            native_enum=False,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=MatchStatus.active,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user_a = relationship("User", foreign_keys=[user_a_id], backref="matches_as_a")
    user_b = relationship("User", foreign_keys=[user_b_id], backref="matches_as_b")

    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", name="uq_matches_pair"),
        CheckConstraint("user_a_id < user_b_id", name="ordered_pair"),
    )

    @property
    def participants(self) -> frozenset:
        return frozenset((self.user_a_id, self.user_b_id))

    def other_participant(self, user_id: int) -> int:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id

    def __repr__(self):
        return f"<Match {self.user_a_id}↔{self.user_b_id} {self.status}>"

# models/interaction.py
import enum

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base


class InteractionKind(str, enum.Enum):
    like = "like"
    dislike = "dislike"


class Interaction(Base):
    """Свайп одного пользователя по другому. Одна запись на упорядоченную пару, навсегда."""

    __tablename__ = "interactions"

    id = Column(BigInteger, primary_key=True, index=True)
    actor_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    kind = Column(
        Enum(
            InteractionKind,
            name="interaction_kind",
            native_enum=False,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    actor = relationship("User", foreign_keys=[actor_id], backref="interactions_given")
    target = relationship("User", foreign_keys=[target_id], backref="interactions_received")

    __table_args__ = (
        UniqueConstraint("actor_id", "target_id", name="uq_interactions_actor_target"),
        CheckConstraint("actor_id <> target_id", name="no_self_interaction"),
    )

    def __repr__(self):
        return f"<Interaction {self.actor_id}→{self.target_id} {self.kind}>"

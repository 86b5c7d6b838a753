# models/message.py
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Index, String

from .base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(Base):
    __tablename__ = "messages"

    id = Column(BigInteger, primary_key=True, index=True)
    sender_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    match_id = Column(BigInteger, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    content = Column(String(1000), nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    # Время ставится в приложении: нужна точность до микросекунд для порядка в переписке
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index("ix_messages_match_created", "match_id", "created_at"),
    )

    def __repr__(self):
        return f"<Message {self.sender_id}→{self.recipient_id} match={self.match_id}>"

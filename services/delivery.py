"""Доставка новых сообщений живым соединениям."""
import logging
from typing import FrozenSet, Hashable

import socketio

from models.message import Message
from services.presence import BroadcastGroups, PresenceRegistry
from utils.user_helpers import message_projection

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT = "message:new"


class DeliveryRouter:
    """
    Отправляет сообщение соединениям получателя и всем подписчикам комнаты матча.

    Доставка best-effort: офлайн-получатель просто увидит сообщение при
    следующей загрузке переписки, ошибка отправки в один sid не мешает
    остальным.
    """

    def __init__(self, presence: PresenceRegistry, groups: BroadcastGroups, sio: socketio.AsyncServer) -> None:
        self.presence = presence
        self.groups = groups
        self.sio = sio

    def targets(self, recipient_id: int, match_id: int) -> FrozenSet[Hashable]:
        return self.presence.lookup(recipient_id) | self.groups.members(match_id)

    async def deliver(self, message: Message) -> int:
        payload = message_projection(message)
        targets = self.targets(message.recipient_id, message.match_id)

        delivered = 0
        for sid in targets:
            try:
                await self.sio.emit(NEW_MESSAGE_EVENT, payload, to=sid)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Delivery of message %s to %s failed: %s", message.id, sid, exc)
                continue
            delivered += 1

        logger.info(
            "Message %s from %s to %s delivered to %d/%d connections (recipient online: %s)",
            message.id,
            message.sender_id,
            message.recipient_id,
            delivered,
            len(targets),
            self.presence.is_online(message.recipient_id),
        )
        return delivered

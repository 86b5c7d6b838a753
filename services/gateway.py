"""
Realtime-шлюз чата поверх python-socketio.

Жизненный цикл соединения: connecting → authenticating → joined → closed.
Токен проверяется в обработчике connect: при ошибке поднимается
ConnectionRefusedError с кодом TOKEN_MISSING / TOKEN_EXPIRED / TOKEN_INVALID,
клиент получает connect_error, и никакого состояния для такого sid не создаётся.

После допуска sid регистрируется в PresenceRegistry, а подписка на комнаты
активных матчей идёт фоновой задачей (connection.subscription), которую можно
дождаться. По её завершении клиент получает событие session:ready.
"""
import enum
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import socketio
from fastapi import Request
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.errors import AuthenticationError, DomainError, InternalError, ValidationError
from core.security import bearer_from_header, verify_access_token
from models.match import Match, MatchStatus
from schemas.chat import SendMessageRequest
from services.chat import send_message
from services.delivery import DeliveryRouter
from services.presence import BroadcastGroups, PresenceRegistry
from utils.user_helpers import message_projection

logger = logging.getLogger(__name__)

SEND_MESSAGE_EVENT = "message:send"
SESSION_READY_EVENT = "session:ready"


class ConnectionState(str, enum.Enum):
    connecting = "connecting"
    authenticating = "authenticating"
    joined = "joined"
    closed = "closed"


class Connection:
    """Состояние одного Socket.IO-соединения (sid)."""

    def __init__(self, sid: str):
        self.sid = sid
        self.user_id: Optional[int] = None
        self.state = ConnectionState.connecting
        self.subscription = None

    def __repr__(self) -> str:
        return f"<Connection {self.sid} user={self.user_id} {self.state.value}>"


def failure(error: str, code: str) -> Dict[str, Any]:
    return {"success": False, "error": error, "code": code}


class ChatGateway:
    def __init__(self, sio: socketio.AsyncServer, session_factory: async_sessionmaker):
        self.sio = sio
        self.session_factory = session_factory
        self.presence = PresenceRegistry()
        self.groups = BroadcastGroups()
        self.delivery = DeliveryRouter(self.presence, self.groups, sio)
        self.connections: Dict[str, Connection] = {}

        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on(SEND_MESSAGE_EVENT, self.on_send_message)
        sio.on("*", self.on_unknown_event)

    # ---------- рукопожатие ----------

    @staticmethod
    def credential_from(environ: Dict[str, Any], auth: Optional[Dict[str, Any]]) -> Optional[str]:
        """Токен из query-параметра token, затем из auth, затем из заголовка Authorization."""
        query = parse_qs(environ.get("QUERY_STRING", ""))
        if query.get("token"):
            return query["token"][0]
        if isinstance(auth, dict) and auth.get("token"):
            return auth["token"]
        return bearer_from_header(environ.get("HTTP_AUTHORIZATION"))

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Optional[Dict[str, Any]] = None) -> None:
        connection = Connection(sid)
        connection.state = ConnectionState.authenticating
        try:
            user_id = verify_access_token(self.credential_from(environ, auth))
        except AuthenticationError as exc:
            logger.warning("Socket handshake %s refused: %s", sid, exc.code)
            raise socketio.exceptions.ConnectionRefusedError(exc.code, exc.to_dict())

        connection.user_id = user_id
        connection.state = ConnectionState.joined
        self.connections[sid] = connection
        self.presence.register(user_id, sid)
        logger.info("User %s connected (%r)", user_id, connection)

        connection.subscription = self.sio.start_background_task(self.join_match_groups, connection)

    async def active_match_ids(self, user_id: int) -> List[int]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Match.id).where(
                    or_(Match.user_a_id == user_id, Match.user_b_id == user_id),
                    Match.status == MatchStatus.active,
                )
            )
            return [row[0] for row in result.all()]

    async def join_match_groups(self, connection: Connection) -> List[int]:
        try:
            match_ids = await self.active_match_ids(connection.user_id)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to load matches for user %s", connection.user_id)
            return []

        # Соединение могло закрыться, пока читали матчи
        if connection.state != ConnectionState.joined:
            return []

        self.groups.join_many(connection.sid, match_ids)
        logger.info("User %s joined %d conversations", connection.user_id, len(match_ids))
        await self.sio.emit(
            SESSION_READY_EVENT,
            {"user_id": connection.user_id, "match_ids": sorted(match_ids)},
            to=connection.sid,
        )
        return match_ids

    async def on_disconnect(self, sid: str, reason=None) -> None:
        connection = self.connections.pop(sid, None)
        if connection is None:
            return
        connection.state = ConnectionState.closed
        if connection.subscription is not None and not connection.subscription.done():
            connection.subscription.cancel()
        self.presence.unregister(connection.user_id, sid)
        self.groups.drop(sid)
        logger.info("User %s disconnected (%r, %s)", connection.user_id, connection, reason)

    # ---------- события ----------

    async def on_send_message(self, sid: str, data=None) -> Dict[str, Any]:
        """Возвращаемый словарь уходит клиенту как ack."""
        connection = self.connections.get(sid)
        if connection is None or connection.state != ConnectionState.joined:
            return failure("Connection is not authenticated", AuthenticationError.default_code)

        try:
            payload = SendMessageRequest.model_validate(data)
            async with self.session_factory() as db:
                message = await send_message(
                    db,
                    self.delivery,
                    sender_id=connection.user_id,
                    recipient_id=payload.recipient_id,
                    match_id=payload.match_id,
                    content=payload.content,
                )
                return {"success": True, "message": message_projection(message)}
        except DomainError as exc:
            return failure(exc.detail, exc.code)
        except PayloadValidationError:
            return failure(
                "match_id, recipient_id and content are required",
                ValidationError.default_code,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Error while handling %s from %r", SEND_MESSAGE_EVENT, connection)
            return failure("Internal server error", InternalError.default_code)

    async def on_unknown_event(self, event: str, sid: str, *args) -> Dict[str, Any]:
        logger.debug("Unknown event %r from %s", event, sid)
        return failure(f"Unknown event '{event}'", "UNKNOWN_EVENT")


def get_gateway(request: Request) -> ChatGateway:
    return request.app.state.gateway


def get_delivery(request: Request) -> DeliveryRouter:
    return get_gateway(request).delivery

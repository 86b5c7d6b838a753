import asyncio
from datetime import timedelta

import pytest
import socketio

from core.security import create_access_token
from services.delivery import NEW_MESSAGE_EVENT
from services.gateway import SESSION_READY_EVENT, ChatGateway


@pytest.fixture
def gateway(sio, session_factory):
    return ChatGateway(sio, session_factory)


def _environ(query: str = "", authorization: str = None) -> dict:
    environ = {"QUERY_STRING": query}
    if authorization is not None:
        environ["HTTP_AUTHORIZATION"] = authorization
    return environ


async def _join(gateway: ChatGateway, sid: str, user_id: int) -> None:
    await gateway.on_connect(sid, _environ(f"token={create_access_token(user_id)}"))
    await gateway.connections[sid].subscription


def test_expired_token_refused_without_state(gateway, make_user):
    user_id = make_user("Ana")
    token = create_access_token(user_id, expires_delta=timedelta(minutes=-1))

    with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc:
        asyncio.run(gateway.on_connect("sid-a", _environ(f"token={token}")))

    assert exc.value.error_args["message"] == "TOKEN_EXPIRED"
    assert exc.value.error_args["data"]["code"] == "TOKEN_EXPIRED"
    assert len(gateway.presence) == 0
    assert gateway.connections == {}


def test_missing_and_invalid_tokens_refused(gateway):
    with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc:
        asyncio.run(gateway.on_connect("sid-a", _environ()))
    assert exc.value.error_args["message"] == "TOKEN_MISSING"

    with pytest.raises(socketio.exceptions.ConnectionRefusedError) as exc:
        asyncio.run(gateway.on_connect("sid-b", _environ("token=garbage")))
    assert exc.value.error_args["message"] == "TOKEN_INVALID"

    assert len(gateway.presence) == 0


def test_token_from_auth_payload_and_header(gateway, make_user):
    a = make_user("Ana")
    b = make_user("Bruno")

    async def scenario():
        await gateway.on_connect("sid-a", _environ(), {"token": create_access_token(a)})
        await gateway.on_connect("sid-b", _environ(authorization=f"Bearer {create_access_token(b)}"))
        await gateway.connections["sid-a"].subscription
        await gateway.connections["sid-b"].subscription

    asyncio.run(scenario())

    assert gateway.presence.lookup(a) == {"sid-a"}
    assert gateway.presence.lookup(b) == {"sid-b"}


def test_session_joins_active_match_rooms(gateway, sio, matched_pair):
    a, _, match_id = matched_pair

    asyncio.run(_join(gateway, "sid-a", a))

    assert sio.sent_to("sid-a") == [(SESSION_READY_EVENT, {"user_id": a, "match_ids": [match_id]})]
    assert gateway.groups.members(match_id) == {"sid-a"}
    assert gateway.presence.is_online(a)


def test_message_send_acks_and_pushes_to_recipient(gateway, sio, matched_pair):
    a, b, match_id = matched_pair

    async def scenario():
        await _join(gateway, "sid-b", b)
        await _join(gateway, "sid-a", a)
        return await gateway.on_send_message(
            "sid-a", {"match_id": match_id, "recipient_id": b, "content": " hi "}
        )

    ack = asyncio.run(scenario())

    assert ack["success"] is True
    assert ack["message"]["content"] == "hi"

    pushed = [data for event, data in sio.sent_to("sid-b") if event == NEW_MESSAGE_EVENT]
    assert len(pushed) == 1
    assert pushed[0]["id"] == ack["message"]["id"]
    assert pushed[0]["sender_id"] == a

    # Отправитель тоже в комнате матча: другие его вкладки видят сообщение
    echoed = [data for event, data in sio.sent_to("sid-a") if event == NEW_MESSAGE_EVENT]
    assert [m["id"] for m in echoed] == [ack["message"]["id"]]


def test_rejected_send_is_acked_with_code(gateway, matched_pair):
    a, _, match_id = matched_pair

    async def scenario():
        await _join(gateway, "sid-a", a)
        return await gateway.on_send_message(
            "sid-a", {"match_id": match_id, "recipient_id": a, "content": "me"}
        )

    ack = asyncio.run(scenario())

    assert ack == {"success": False, "error": "You cannot send messages to yourself", "code": "SELF_MESSAGE"}


def test_unknown_event_and_bad_payload(gateway, matched_pair):
    a, _, _ = matched_pair

    async def scenario():
        await _join(gateway, "sid-a", a)
        unknown = await gateway.on_unknown_event("typing", "sid-a", {})
        missing_ids = await gateway.on_send_message("sid-a", {"content": "no ids"})
        no_payload = await gateway.on_send_message("sid-a")
        return unknown, missing_ids, no_payload

    unknown, missing_ids, no_payload = asyncio.run(scenario())

    assert unknown["code"] == "UNKNOWN_EVENT"
    assert missing_ids["success"] is False
    assert missing_ids["code"] == "VALIDATION_ERROR"
    assert no_payload["code"] == "VALIDATION_ERROR"


def test_send_from_unknown_sid_is_rejected(gateway):
    ack = asyncio.run(gateway.on_send_message("ghost", {"match_id": 1, "recipient_id": 2, "content": "x"}))
    assert ack["success"] is False
    assert ack["code"] == "TOKEN_INVALID"


def test_disconnect_releases_presence_and_rooms(gateway, matched_pair):
    a, _, match_id = matched_pair

    async def scenario():
        await _join(gateway, "sid-a", a)
        await gateway.on_disconnect("sid-a", "client disconnect")
        await gateway.on_disconnect("sid-a")

    asyncio.run(scenario())

    assert not gateway.presence.is_online(a)
    assert gateway.groups.members(match_id) == frozenset()
    assert gateway.connections == {}


def test_http_message_is_pushed_to_connected_recipient(client, matched_pair, auth_headers, monkeypatch):
    import main

    a, b, match_id = matched_pair
    sent = []

    async def record_emit(event, data=None, to=None, **kwargs):
        sent.append((to, event, data))

    monkeypatch.setattr(main.sio, "emit", record_emit)
    gateway = main.app.state.gateway
    asyncio.run(_join(gateway, "sid-b", b))
    assert client.get("/health").json()["connections"] == 1

    resp = client.post(
        "/chat/message",
        json={"match_id": match_id, "recipient_id": b, "content": "from http"},
        headers=auth_headers(a),
    )
    assert resp.status_code == 201

    pushed = [data for to, event, data in sent if to == "sid-b" and event == NEW_MESSAGE_EVENT]
    assert len(pushed) == 1
    assert pushed[0]["content"] == "from http"
    assert pushed[0]["id"] == resp.json()["message"]["id"]

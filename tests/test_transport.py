"""
tests.test_transport
~~~~~~~~~~~~~~~~~~~~

WebSocketTransport 测试 —— 对接一个本地 ``websockets`` 服务端，验证握手顺序与入站分发。
"""
from __future__ import annotations

import pytest
from websockets.asyncio.server import ServerConnection, serve

from tests.conftest import SESSION_ID, FakePlayer, video
from watchsync.client.session import SyncSession
from watchsync.client.transport import WebSocketTransport
from watchsync.schemas.messages import MessageKind, QueueSnapshot, decode_message, encode_message


def test_send_before_connect_is_dropped() -> None:
    transport = WebSocketTransport.for_session("tok", "ws://127.0.0.1:1/ws")

    transport.send("ignored")

    assert transport.url == "ws://127.0.0.1:1/ws/tok"
    assert transport.connected is False


@pytest.mark.asyncio
async def test_handshake_and_inbound_dispatch() -> None:
    """连接后依次发出 AUTOPLAY 与缓存中的 ADD_TO_QUEUE，并处理服务端推送的 QUEUE。"""
    received: list[MessageKind] = []

    async def handler(ws: ServerConnection) -> None:
        for _ in range(2):
            received.append(decode_message(await ws.recv()).action)
        await ws.send(encode_message(MessageKind.QUEUE, QueueSnapshot(video=video("K"), videos=[video("K")])))

    async with serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        transport = WebSocketTransport.for_session(SESSION_ID, f"ws://127.0.0.1:{port}/ws")
        session = SyncSession(SESSION_ID, transport, player=FakePlayer())
        session.add_to_queue(video("K"))

        await transport.run(session)

    assert received == [MessageKind.AUTOPLAY, MessageKind.ADD_TO_QUEUE]
    assert session.queue.selected_id == "K"
    assert session.connected is False
    assert transport.connected is False

"""
watchsync.services.room_broadcaster
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接广播器 —— 维护某个会话的在线连接与广播能力。
"""
from __future__ import annotations

import asyncio

from fastapi import WebSocket

from watchsync.core.logging import get_logger

logger = get_logger(__name__)


class RoomBroadcaster:
    """WebSocket 连接广播器。

    每个 ``SessionRoom`` 持有一个独立的 ``RoomBroadcaster`` 实例，
    按 ``socket_id`` 管理该会话内的在线连接。

    Attributes:
        active_connections: socket_id → WebSocket。
    """

    def __init__(self) -> None:
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, socket_id: str) -> None:
        """接受新连接并加入在线集合。"""
        await websocket.accept()
        self.active_connections[socket_id] = websocket

    def disconnect(self, socket_id: str) -> None:
        """从在线集合移除断开的连接。"""
        self.active_connections.pop(socket_id, None)

    async def send_to(self, socket_id: str, message: str) -> None:
        """只发给指定连接。"""
        websocket = self.active_connections.get(socket_id)
        if websocket is not None:
            await websocket.send_text(message)

    async def broadcast(self, message: str, exclude: str | None = None) -> None:
        """向本会话所有在线连接广播消息（可排除发送者）。"""
        targets = [(sid, ws) for sid, ws in self.active_connections.items() if sid != exclude]
        results = await asyncio.gather(
            *(ws.send_text(message) for _, ws in targets),
            return_exceptions=True,
        )
        for (sid, _), result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("广播失败，移除断开的连接 | socket_id=%s", sid)
                self.active_connections.pop(sid, None)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.active_connections)

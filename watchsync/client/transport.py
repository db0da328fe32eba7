"""
watchsync.client.transport
~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 会话通道 —— 基于 ``websockets`` 的 asyncio 客户端。

``send()`` 只把文本帧放入发送队列后立即返回（fire-and-forget），
由单独的发送协程按放入顺序写出；接收协程把每个文本帧交给会话处理。
重连 / 退避策略不在此处实现。
"""
from __future__ import annotations

import asyncio

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from watchsync.client.session import SyncSession
from watchsync.client.tokens import session_endpoint
from watchsync.core.logging import get_logger, session_id_ctx_var

logger = get_logger(__name__)


class WebSocketTransport:
    """单个会话的 WebSocket 通道。

    Attributes:
        url: 协调服务器地址（已包含会话 token）。
    """

    def __init__(self, url: str, max_pending: int = 256) -> None:
        self.url = url
        self._ws: ClientConnection | None = None
        self._outbox: asyncio.Queue[str | None] = asyncio.Queue(maxsize=max_pending)

    @classmethod
    def for_session(cls, session_id: str, base_url: str | None = None) -> WebSocketTransport:
        return cls(session_endpoint(session_id, base_url))

    @property
    def connected(self) -> bool:
        return self._ws is not None

    def send(self, text: str) -> None:
        """投递一个文本帧。未连接或发送队列已满时丢弃并记录。"""
        if self._ws is None:
            logger.warning("通道未连接，丢弃出站消息")
            return
        try:
            self._outbox.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning("发送队列已满，丢弃出站消息")

    async def run(self, session: SyncSession) -> None:
        """连接并运行直到通道关闭。"""
        token = session_id_ctx_var.set(session.session_id)
        try:
            async with connect(self.url) as ws:
                self._ws = ws
                logger.info("通道已建立 | url=%s", self.url)
                try:
                    session.on_connected()
                    await asyncio.gather(self._receive_loop(ws, session), self._send_loop(ws))
                finally:
                    self._ws = None
                    session.on_disconnected()
        finally:
            session_id_ctx_var.reset(token)

    async def close(self) -> None:
        """关闭通道（离开会话）。"""
        if self._ws is not None:
            await self._ws.close()

    async def _receive_loop(self, ws: ClientConnection, session: SyncSession) -> None:
        try:
            async for frame in ws:
                try:
                    session.handle_message(frame)
                except Exception as e:
                    # 单条消息处理失败不应中断整个通道
                    logger.error("入站消息处理异常: %s", e, exc_info=True)
        except ConnectionClosed as e:
            logger.info("通道已关闭 | code=%s", e.rcvd.code if e.rcvd else None)
        finally:
            # 通知发送协程结束；队列已满时丢弃最早的待发消息腾出位置
            while True:
                try:
                    self._outbox.put_nowait(None)
                    break
                except asyncio.QueueFull:
                    self._outbox.get_nowait()

    async def _send_loop(self, ws: ClientConnection) -> None:
        while True:
            text = await self._outbox.get()
            if text is None:
                break
            try:
                await ws.send(text)
            except ConnectionClosed:
                logger.warning("通道已关闭，出站消息未送达")
                break

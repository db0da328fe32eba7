"""
watchsync.client.sender
~~~~~~~~~~~~~~~~~~~~~~~

出站消息封装 —— 把各组件的请求编码为文本帧并交给传输通道。

所有特权请求（加入/移出队列、播放指定视频、autoplay、提升权限）
只有在当前客户端拥有权限时才会被协调服务器执行；本地不做任何假设。
"""
from __future__ import annotations

from typing import Any

from watchsync.client.interfaces import Player, Transport
from watchsync.core.logging import get_logger
from watchsync.schemas.messages import TIME_KINDS, MessageKind, encode_message

logger = get_logger(__name__)


class MessageSender:
    """出站消息发送器。

    Attributes:
        transport: 会话通道。
    """

    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    def send(self, kind: MessageKind, payload: Any = None) -> None:
        """编码并发送一条消息（fire-and-forget）。"""
        frame = encode_message(kind, payload)
        logger.debug("发送消息 | action=%s", kind.value)
        self.transport.send(frame)

    def send_time(self, kind: MessageKind, player: Player) -> None:
        """发送携带当前播放进度的 PLAY / PAUSE / SEEK 消息。"""
        if kind not in TIME_KINDS:
            raise ValueError(f"{kind.value} 不是时间类消息")
        self.send(kind, max(0.0, float(player.get_current_time())))

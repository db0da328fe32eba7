"""
watchsync.client.autoplay
~~~~~~~~~~~~~~~~~~~~~~~~~

Autoplay 控制器 —— 会话级 autoplay 开关的本地镜像，以及播放结束后的队列推进。
"""
from __future__ import annotations

from collections.abc import Callable

from watchsync.client.interfaces import Origin
from watchsync.client.queue import QueueReplica
from watchsync.client.sender import MessageSender
from watchsync.core.logging import get_logger
from watchsync.schemas.messages import MessageKind, Video

logger = get_logger(__name__)


class AutoplayController:
    """Autoplay 控制器。

    本地切换开关只发出 AUTOPLAY 请求，本地标志在收到协调服务器广播后才改变。
    播放结束时推进是纯本地行为，不发出 PLAY_VIDEO。

    Attributes:
        queue: 队列副本。
        sender: 出站消息发送器。
        on_change: 标志变化后的回调（用于刷新界面上的开关）。
    """

    def __init__(
        self,
        queue: QueueReplica,
        sender: MessageSender,
        enabled: bool = True,
        on_change: Callable[[bool], None] | None = None,
    ) -> None:
        self.queue = queue
        self.sender = sender
        self.on_change = on_change
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def toggle(self, enabled: bool) -> None:
        """请求修改会话级 autoplay。"""
        self.sender.send(MessageKind.AUTOPLAY, enabled)

    def announce(self) -> None:
        """把本地当前的 autoplay 值发给会话（加入会话时调用）。"""
        self.sender.send(MessageKind.AUTOPLAY, self._enabled)

    def apply_autoplay(self, enabled: bool) -> None:
        """入站 AUTOPLAY：更新本地标志和界面，不回传。"""
        self._enabled = enabled
        if self.on_change is not None:
            self.on_change(enabled)
        logger.info("autoplay 已更新 | enabled=%s", enabled)

    def on_ended(self) -> Video | None:
        """本地播放结束：autoplay 开启且有下一个视频时切换过去。

        Returns:
            切换到的视频；未切换时为 ``None``（队列播放完毕不会循环）。
        """
        if not self._enabled:
            return None
        upcoming = self.queue.advance()
        if upcoming is None:
            logger.debug("队列已播放完毕")
            return None
        self.queue.select_and_navigate(upcoming.video_id, origin=Origin.AUTOPLAY)
        return upcoming

"""
watchsync.client.queue
~~~~~~~~~~~~~~~~~~~~~~

队列副本 —— 有序视频列表 + 当前选中标记。

协调服务器持有权威队列。本地队列只在收到对应的入站广播后才修改，
``request_*`` 系列方法只负责发出请求，从不预先修改本地状态。

选中标记按 ``video_id`` 记录而不是下标：两次选中之间列表可能被增删。
同一视频可以在队列中出现多次，此时以第一个匹配的位置为准。
"""
from __future__ import annotations

from collections.abc import Callable, Iterable

from watchsync.client.interfaces import Origin
from watchsync.client.sender import MessageSender
from watchsync.core.logging import get_logger
from watchsync.schemas.messages import MessageKind, Video

logger = get_logger(__name__)


class QueueReplica:
    """本地队列副本。

    Args:
        sender: 出站消息发送器。
        navigate: 导航副作用（切换宿主页面上正在播放的视频）。
    """

    def __init__(self, sender: MessageSender, navigate: Callable[[str], None]) -> None:
        self.sender = sender
        self._navigate = navigate
        self._videos: list[Video] = []
        self._selected_id: str | None = None

    # ── 查询 ──────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._videos)

    @property
    def videos(self) -> list[Video]:
        return list(self._videos)

    @property
    def selected_id(self) -> str | None:
        """当前选中的视频 ID（可能不在队列中）。"""
        return self._selected_id

    @property
    def selected_index(self) -> int | None:
        """选中视频在队列中的第一个位置；不在队列中时为 ``None``。"""
        if self._selected_id is None:
            return None
        for index, video in enumerate(self._videos):
            if video.video_id == self._selected_id:
                return index
        return None

    @property
    def selected(self) -> Video | None:
        index = self.selected_index
        return None if index is None else self._videos[index]

    # ── 入站：快照 / 增量 ─────────────────────────────────────────────

    def apply_queue_snapshot(self, video: Video | None, videos: Iterable[Video]) -> None:
        """用完整快照替换队列，并标记选中视频。

        快照中的选中视频不在列表里时，不标记任何选中。
        """
        self._videos = list(videos)
        selected_id = video.video_id if video is not None else None
        if selected_id is not None and not any(v.video_id == selected_id for v in self._videos):
            selected_id = None
        self._selected_id = selected_id
        logger.debug("队列快照已应用 | 长度: %d | 选中: %s", len(self._videos), selected_id)

    def apply_add(self, video: Video) -> None:
        """追加到队尾，不按 ``video_id`` 去重。"""
        self._videos.append(video)
        logger.debug("队列追加 | video_id=%s | 长度: %d", video.video_id, len(self._videos))

    def apply_remove(self, video_id: str) -> bool:
        """移除第一个匹配的位置。不存在时不做任何处理。

        Returns:
            是否移除了一个位置。
        """
        for index, video in enumerate(self._videos):
            if video.video_id == video_id:
                del self._videos[index]
                logger.debug("队列移除 | video_id=%s | 长度: %d", video_id, len(self._videos))
                return True
        return False

    # ── 出站：请求 ────────────────────────────────────────────────────

    def request_add(self, video: Video) -> None:
        """请求把视频加入队列。本地队列等确认广播到达后才会变化。"""
        self.sender.send(MessageKind.ADD_TO_QUEUE, video)

    def request_remove(self, video_id: str) -> None:
        """请求把视频移出队列。"""
        self.sender.send(MessageKind.REMOVE_FROM_QUEUE, video_id)

    # ── 选中 / 导航 ───────────────────────────────────────────────────

    def select_and_navigate(self, video_id: str, origin: Origin = Origin.LOCAL) -> None:
        """标记选中并切换到该视频。

        只有本地发起的选中才会发出 PLAY_VIDEO 请求；
        由入站 PLAY_VIDEO 或 autoplay 触发的选中不会再次广播。
        """
        self._selected_id = video_id
        self._navigate(video_id)
        if origin is Origin.LOCAL:
            self.sender.send(MessageKind.PLAY_VIDEO, video_id)
        logger.info("切换视频 | video_id=%s | origin=%s", video_id, origin.value)

    def advance(self) -> Video | None:
        """返回选中位置的下一个视频；选中的是最后一个或不在队列中时返回 ``None``。

        不产生任何副作用，是否导航由调用方决定。
        """
        index = self.selected_index
        if index is None or index + 1 >= len(self._videos):
            return None
        return self._videos[index + 1]

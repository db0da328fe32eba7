"""
watchsync.client.store
~~~~~~~~~~~~~~~~~~~~~~

待加入队列的本地缓存。

未加入会话时点击"加入队列"只会把视频存到这里；加入会话后由轮询任务
把缓存中的视频逐个转为 ADD_TO_QUEUE 请求。
"""
from __future__ import annotations

from watchsync.schemas.messages import Video


class PendingQueueStore:
    """按加入顺序保存待发送视频的缓存。"""

    def __init__(self) -> None:
        self._videos: list[Video] = []

    def __len__(self) -> int:
        return len(self._videos)

    def add(self, video: Video) -> None:
        self._videos.append(video)

    def drain(self) -> list[Video]:
        """取出并清空所有缓存的视频。"""
        videos, self._videos = self._videos, []
        return videos

"""
watchsync.services.session_room
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

会话领域模型（协调服务器端） —— 一个会话的权威状态与权限裁决。

每个 ``SessionRoom`` 拥有独立的队列、参与者名单、autoplay 开关、
最近一次播放进度和连接广播器，会话之间互不干扰。

权限规则:
  - 会话的第一个参与者自动获得权限
  - 最后一个有权限的参与者离开时，最早加入的剩余参与者获得权限
  - 特权请求只接受有权限的参与者发出的，其余静默忽略
"""
from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

from watchsync.core.logging import get_logger
from watchsync.schemas.messages import (
    Client,
    MessageKind,
    QueueSnapshot,
    SyncMessage,
    Video,
)
from watchsync.schemas.session_info import SessionDetailData, SessionInfoData
from watchsync.services.room_broadcaster import RoomBroadcaster

logger = get_logger(__name__)

# 只允许协调服务器发出的消息类型，客户端发来时直接忽略
SERVER_ONLY_KINDS: frozenset[MessageKind] = frozenset(
    {
        MessageKind.QUEUE,
        MessageKind.CLIENTS,
        MessageKind.CLIENT_CONNECT,
        MessageKind.CLIENT_DISCONNECT,
    },
)


class Outgoing(NamedTuple):
    """需要广播的一条消息。``exclude`` 为不需要接收的 socket_id。"""

    message: SyncMessage
    exclude: str | None = None


@dataclass
class PlaybackMark:
    """最近一次 PLAY / PAUSE / SEEK 记录的播放进度。"""

    position: float
    playing: bool
    at: float

    def position_at(self, now: float) -> float:
        return self.position + (now - self.at if self.playing else 0.0)


class SessionRoom:
    """一个会话的权威状态。

    Attributes:
        session_id: 会话 token。
        videos: 队列。
        selected: 当前选中的视频。
        autoplay: 会话级 autoplay 开关。
        clients: socket_id → Client，按加入顺序排列。
        playback: 最近一次播放进度。
        broadcaster: 本会话的连接广播器。
        lock: 串行化状态变更与广播，保证加入者先收到完整的欢迎序列。
    """

    def __init__(self, session_id: str, clock: Callable[[], float] = time.monotonic) -> None:
        self.session_id = session_id
        self.videos: list[Video] = []
        self.selected: Video | None = None
        self.autoplay: bool = True
        self.clients: dict[str, Client] = {}
        self.playback: PlaybackMark | None = None
        self.broadcaster = RoomBroadcaster()
        self.lock = asyncio.Lock()
        self._clock = clock

    @property
    def online_count(self) -> int:
        return len(self.clients)

    def is_promoted(self, socket_id: str) -> bool:
        client = self.clients.get(socket_id)
        return client is not None and client.promoted

    # ── 参与者 ────────────────────────────────────────────────────────

    def join(self, display_name: str | None = None) -> Client:
        """登记一个新连接，返回分配到的参与者。"""
        socket_id = uuid.uuid4().hex[:12]
        promoted = not any(c.promoted for c in self.clients.values())
        client = Client(socket_id=socket_id, promoted=promoted, display_name=display_name)
        self.clients[socket_id] = client
        logger.info("参与者加入 | socket_id=%s | promoted=%s | 在线: %d", socket_id, promoted, len(self.clients))
        return client

    def leave(self, socket_id: str) -> Client | None:
        """移除参与者。

        Returns:
            因此获得权限的参与者；没有权限移交时为 ``None``。
        """
        if self.clients.pop(socket_id, None) is None:
            return None
        logger.info("参与者离开 | socket_id=%s | 在线: %d", socket_id, len(self.clients))
        if not self.clients or any(c.promoted for c in self.clients.values()):
            return None
        heir = next(iter(self.clients.values()))
        return self._set_promoted(heir.socket_id, True)

    def welcome(self) -> list[SyncMessage]:
        """新参与者加入后需要收到的完整状态。"""
        messages = [
            SyncMessage(action=MessageKind.CLIENTS, data=list(self.clients.values())),
            SyncMessage(action=MessageKind.QUEUE, data=self.snapshot()),
            SyncMessage(action=MessageKind.AUTOPLAY, data=self.autoplay),
        ]
        if self.selected is not None:
            messages.append(SyncMessage(action=MessageKind.PLAY_VIDEO, data=self.selected.video_id))
        if self.playback is not None:
            kind = MessageKind.PLAY if self.playback.playing else MessageKind.PAUSE
            messages.append(SyncMessage(action=kind, data=self.playback.position_at(self._clock())))
        return messages

    # ── 请求裁决 ──────────────────────────────────────────────────────

    def apply(self, socket_id: str, message: SyncMessage) -> list[Outgoing]:
        """裁决并应用一个客户端请求，返回需要广播的消息。"""
        kind = message.action
        if kind is MessageKind.REACTION:
            return [Outgoing(message, exclude=socket_id)]
        if kind in SERVER_ONLY_KINDS:
            logger.debug("忽略客户端发来的服务端消息 | action=%s", kind.value)
            return []
        if not self.is_promoted(socket_id):
            logger.info("未授权请求，已忽略 | socket_id=%s | action=%s", socket_id, kind.value)
            return []

        if kind in (MessageKind.PLAY, MessageKind.PAUSE, MessageKind.SEEK):
            self._mark_playback(kind, message.data)
            return [Outgoing(message, exclude=socket_id)]
        if kind is MessageKind.PLAY_VIDEO:
            self.selected = next(
                (v for v in self.videos if v.video_id == message.data),
                Video(video_id=message.data),
            )
            self.playback = None
            return [Outgoing(message)]
        if kind is MessageKind.ADD_TO_QUEUE:
            self.videos.append(message.data)
            return [Outgoing(message)]
        if kind is MessageKind.REMOVE_FROM_QUEUE:
            return [Outgoing(message)] if self._remove(message.data) else []
        if kind is MessageKind.AUTOPLAY:
            self.autoplay = message.data
            return [Outgoing(message)]
        if kind in (MessageKind.PROMOTE, MessageKind.UNPROMOTE):
            return self._apply_promotion(message)
        return []

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(video=self.selected, videos=list(self.videos))

    # ── 摘要 ──────────────────────────────────────────────────────────

    def info(self) -> SessionInfoData:
        """返回会话摘要信息。"""
        return SessionInfoData(
            session_id=self.session_id,
            online_count=self.online_count,
            queue_length=len(self.videos),
            autoplay=self.autoplay,
        )

    def detail(self) -> SessionDetailData:
        return SessionDetailData(
            **self.info().model_dump(),
            selected=self.selected,
            videos=list(self.videos),
            clients=list(self.clients.values()),
        )

    # ── 内部 ──────────────────────────────────────────────────────────

    def _mark_playback(self, kind: MessageKind, position: float) -> None:
        now = self._clock()
        if kind is MessageKind.SEEK:
            playing = self.playback.playing if self.playback is not None else False
        else:
            playing = kind is MessageKind.PLAY
        self.playback = PlaybackMark(position=position, playing=playing, at=now)

    def _remove(self, video_id: str) -> bool:
        for index, video in enumerate(self.videos):
            if video.video_id == video_id:
                del self.videos[index]
                return True
        return False

    def _apply_promotion(self, message: SyncMessage) -> list[Outgoing]:
        target: str = message.data
        promoted = message.action is MessageKind.PROMOTE
        client = self.clients.get(target)
        if client is None or client.promoted == promoted:
            return []
        if not promoted and len([c for c in self.clients.values() if c.promoted]) == 1:
            logger.info("拒绝撤销最后一个有权限的参与者 | socket_id=%s", target)
            return []
        self._set_promoted(target, promoted)
        return [Outgoing(message)]

    def _set_promoted(self, socket_id: str, promoted: bool) -> Client:
        client = self.clients[socket_id].model_copy(update={"promoted": promoted})
        self.clients[socket_id] = client
        logger.info("权限变更 | socket_id=%s | promoted=%s", socket_id, promoted)
        return client

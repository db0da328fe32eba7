"""
watchsync.client.session
~~~~~~~~~~~~~~~~~~~~~~~~

会话副本 —— 把协议、名单、队列、播放同步和 autoplay 组装为一个显式的会话对象。

一个 ``SyncSession`` 对应一次加入会话：

- 入站：``handle_message(frame)`` 解码并分发给各组件，无法解析的帧记录日志后丢弃
- 出站：播放器事件（状态变化、seek）与界面操作转为请求发给协调服务器
- 轮询：seek 检测、URL 变化检测、待加入队列缓存

所有回调都在同一个事件循环中串行执行，因此不需要加锁。
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

from watchsync.client.autoplay import AutoplayController
from watchsync.client.interfaces import (
    HostPage,
    NullView,
    Origin,
    Player,
    PlayerState,
    SessionView,
    Transport,
)
from watchsync.client.playback import PlaybackSynchronizer
from watchsync.client.queue import QueueReplica
from watchsync.client.roster import ClientRoster
from watchsync.client.sender import MessageSender
from watchsync.client.store import PendingQueueStore
from watchsync.client.tokens import session_id_from_url, video_id_from_url
from watchsync.core.config import settings
from watchsync.core.exceptions import ProtocolError
from watchsync.core.logging import get_logger, session_id_ctx_var
from watchsync.core.scheduler import PollingTask, SeekDetector
from watchsync.schemas.messages import (
    Client,
    MessageKind,
    QueueSnapshot,
    SyncMessage,
    Video,
    decode_message,
)

logger = get_logger(__name__)


class SyncSession:
    """本地会话副本。

    Attributes:
        session_id: 会话 token。
        host: 宿主页面（可选；无宿主页面时通过播放器直接加载视频）。
        view: 队列 / 房间信息界面。
        store: 待加入队列缓存。
        sender: 出站消息发送器。
        roster: 参与者名单。
        queue: 队列副本。
        playback: 播放同步器。
        autoplay: autoplay 控制器。
        on_leave: URL 中的会话参数被移除时调用，参数为新的页面 URL。
    """

    def __init__(
        self,
        session_id: str,
        transport: Transport,
        player: Player | None = None,
        host: HostPage | None = None,
        view: SessionView | None = None,
        store: PendingQueueStore | None = None,
        margin: float | None = None,
        autoplay: bool | None = None,
    ) -> None:
        self.session_id = session_id
        self.host = host
        self.view: SessionView = view or NullView()
        self.store = store or PendingQueueStore()
        self.on_leave: Callable[[str], None] | None = None
        self.connected = False

        self.sender = MessageSender(transport)
        self.roster = ClientRoster(self.sender)
        self.queue = QueueReplica(self.sender, navigate=self._navigate)
        self.playback = PlaybackSynchronizer(
            self.sender,
            margin=settings.SYNC_MARGIN if margin is None else margin,
            on_remote_seek=self._reset_seek_detector,
        )
        self.autoplay = AutoplayController(
            self.queue,
            self.sender,
            enabled=settings.AUTOPLAY_DEFAULT if autoplay is None else autoplay,
            on_change=self.view.set_autoplay_indicator,
        )

        # 由本会话发起（入站 / autoplay / 本地点击）的最近一次导航目标，URL 轮询据此去重
        self._expected_video_id: str | None = None

        self.seek_detector: SeekDetector | None = None
        self.url_watcher: PollingTask[str] | None = None
        if host is not None:
            self.url_watcher = PollingTask(
                settings.URL_POLL_INTERVAL,
                observe=host.current_url,
                on_change=self.on_url_change,
                name="url-watcher",
            )
        self.store_watcher: PollingTask[int] = PollingTask(
            settings.QUEUE_STORE_POLL_INTERVAL,
            observe=lambda: len(self.store),
            on_change=lambda _old, _new: self._flush_store(),
            changed=lambda _old, new: new > 0,
            name="queue-store",
        )

        self._handlers: dict[MessageKind, Callable[[Any], None]] = {
            MessageKind.PLAY: self.playback.apply_play,
            MessageKind.PAUSE: self.playback.apply_pause,
            MessageKind.SEEK: self.playback.apply_seek,
            MessageKind.PLAY_VIDEO: self._on_play_video,
            MessageKind.ADD_TO_QUEUE: self._on_add_to_queue,
            MessageKind.REMOVE_FROM_QUEUE: self._on_remove_from_queue,
            MessageKind.QUEUE: self._on_queue,
            MessageKind.AUTOPLAY: self.autoplay.apply_autoplay,
            MessageKind.CLIENTS: self._on_clients,
            MessageKind.CLIENT_CONNECT: self._on_client_connect,
            MessageKind.CLIENT_DISCONNECT: self._on_client_disconnect,
            MessageKind.REACTION: self.view.show_reaction,
            MessageKind.PROMOTE: lambda socket_id: self._on_promotion(socket_id, True),
            MessageKind.UNPROMOTE: lambda socket_id: self._on_promotion(socket_id, False),
        }

        if player is not None:
            self.attach_player(player)

    def attach_player(self, player: Player) -> None:
        """绑定播放器。连接只应在播放器绑定之后建立。"""
        self.playback.player = player
        self.seek_detector = SeekDetector(
            read_position=player.get_current_time,
            is_playing=lambda: PlayerState(player.get_player_state()) is PlayerState.PLAYING,
            on_seek=self.playback.on_local_seek,
            interval=settings.SEEK_POLL_INTERVAL,
            threshold=settings.SEEK_THRESHOLD,
        )

    # ── 连接生命周期 ──────────────────────────────────────────────────

    def on_connected(self) -> None:
        """通道建立后的加入握手：请求加入并播放当前视频，同步 autoplay 值。"""
        self.connected = True
        logger.info("已连接会话 | session=%s", self.session_id)
        if self.host is not None:
            video = self.host.current_video()
            self.queue.request_add(video)
            self._expected_video_id = video.video_id
            self.sender.send(MessageKind.PLAY_VIDEO, video.video_id)
        self.autoplay.announce()
        self._flush_store()

    def on_disconnected(self) -> None:
        self.connected = False
        logger.info("会话连接已断开 | session=%s", self.session_id)

    def leave(self) -> None:
        """离开会话：停止所有轮询。通道由调用方关闭。"""
        self.stop_polling()
        self.connected = False
        logger.info("已离开会话 | session=%s", self.session_id)

    # ── 入站 ──────────────────────────────────────────────────────────

    def handle_message(self, frame: str | bytes) -> bool:
        """处理一个入站文本帧。

        Returns:
            是否成功分发。无法解析的帧会被记录并丢弃，不抛出异常。
        """
        token = session_id_ctx_var.set(self.session_id)
        try:
            try:
                message = decode_message(frame)
            except ProtocolError as e:
                logger.warning("丢弃无法解析的消息: %s | frame=%s", e, e.frame)
                return False
            self.dispatch(message)
            return True
        finally:
            session_id_ctx_var.reset(token)

    def dispatch(self, message: SyncMessage) -> None:
        """把已解码的消息交给对应组件。"""
        logger.debug("收到消息 | action=%s", message.action.value)
        self._handlers[message.action](message.data)

    def _on_play_video(self, video_id: str) -> None:
        self.queue.select_and_navigate(video_id, origin=Origin.REMOTE)

    def _on_add_to_queue(self, video: Video) -> None:
        self.queue.apply_add(video)
        self._render_queue()

    def _on_remove_from_queue(self, video_id: str) -> None:
        if self.queue.apply_remove(video_id):
            self._render_queue()

    def _on_queue(self, snapshot: QueueSnapshot) -> None:
        self.queue.apply_queue_snapshot(snapshot.video, snapshot.videos)
        self._render_queue()

    def _on_clients(self, clients: list[Client]) -> None:
        self.roster.apply_roster_snapshot(clients)
        self._render_roster()

    def _on_client_connect(self, client: Client) -> None:
        if self.roster.apply_connect(client):
            self._render_roster()

    def _on_client_disconnect(self, socket_id: str) -> None:
        if self.roster.apply_disconnect(socket_id):
            self._render_roster()

    def _on_promotion(self, socket_id: str, promoted: bool) -> None:
        if self.roster.apply_promotion(socket_id, promoted):
            self._render_roster()

    # ── 出站：播放器事件 ──────────────────────────────────────────────

    def on_player_state_change(self, state: PlayerState | int) -> None:
        """播放器状态变化回调。"""
        state = PlayerState(state)
        if state in (PlayerState.UNSTARTED, PlayerState.CUED):
            # 新视频开始加载
            self._reset_seek_detector()
        self.playback.on_state_change(state)
        if state is PlayerState.ENDED:
            self.autoplay.on_ended()

    def on_player_seek(self, position: float | None = None) -> None:
        """本地 seek 回调（由 seek 检测器或宿主环境调用）。"""
        self.playback.on_local_seek(position)

    def on_url_change(self, old_url: str, new_url: str) -> None:
        """页面 URL 变化回调。

        会话参数被移除 → 离开会话；视频变成了本会话没有导航过去的视频 → 请求播放它。
        """
        if session_id_from_url(old_url) is not None and session_id_from_url(new_url) is None:
            self.leave()
            if self.on_leave is not None:
                self.on_leave(new_url)
            return

        video_id = video_id_from_url(new_url)
        if video_id is not None and video_id != self._expected_video_id:
            self._expected_video_id = video_id
            self.sender.send(MessageKind.PLAY_VIDEO, video_id)

    # ── 出站：界面操作 ────────────────────────────────────────────────

    def add_to_queue(self, video: Video) -> None:
        """「加入队列」：已连接时直接请求，否则先放入本地缓存。"""
        if self.connected:
            self.queue.request_add(video)
        else:
            self.store.add(video)

    def click_queue_item(self, video_id: str) -> None:
        self.queue.select_and_navigate(video_id, origin=Origin.LOCAL)

    def remove_queue_item(self, video_id: str) -> None:
        self.queue.request_remove(video_id)

    def toggle_autoplay(self, enabled: bool) -> None:
        self.autoplay.toggle(enabled)

    def promote(self, client: Client) -> None:
        self.roster.request_promote(client)

    def unpromote(self, client: Client) -> None:
        self.roster.request_unpromote(client)

    def send_reaction(self, reaction_id: str | int) -> None:
        self.sender.send(MessageKind.REACTION, reaction_id)

    # ── 轮询 ──────────────────────────────────────────────────────────

    def start_polling(self) -> None:
        """启动 seek / URL / 缓存轮询（需在事件循环内调用）。"""
        if self.seek_detector is not None:
            self.seek_detector.start()
        if self.url_watcher is not None and self.host is not None:
            self.url_watcher.reset(self.host.current_url())
            self.url_watcher.start()
        self.store_watcher.reset(0)
        self.store_watcher.start()

    def stop_polling(self) -> None:
        if self.seek_detector is not None:
            self.seek_detector.stop()
        if self.url_watcher is not None:
            self.url_watcher.stop()
        self.store_watcher.stop()

    # ── 内部 ──────────────────────────────────────────────────────────

    def _navigate(self, video_id: str) -> None:
        self._expected_video_id = video_id
        # 换片后进度回到开头，不是本地 seek
        self._reset_seek_detector()
        if self.host is None:
            self.playback.player.load_video_by_id(video_id)
        elif video_id_from_url(self.host.current_url()) != video_id:
            self.host.navigate_to_video(video_id, self.session_id)
        self._render_queue()

    def _flush_store(self) -> None:
        if not self.connected:
            return
        for video in self.store.drain():
            self.queue.request_add(video)

    def _reset_seek_detector(self) -> None:
        if self.seek_detector is not None:
            self.seek_detector.reset()

    def _render_queue(self) -> None:
        self.view.render_queue(self.queue.videos, self.queue.selected_id)

    def _render_roster(self) -> None:
        self.view.render_roster(self.roster.clients)

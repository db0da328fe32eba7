"""
watchsync.client.playback
~~~~~~~~~~~~~~~~~~~~~~~~~

播放状态同步器 —— 本地播放器状态与会话播放进度之间的双向协调。

出站：本地切换到 PLAYING / PAUSED 时广播 PLAY / PAUSE，检测到 seek 时广播 SEEK。
入站：PLAY / PAUSE 只在偏差超过 ``margin`` 时才 seek，避免网络抖动和
播放器时钟漂移导致的反复微调；SEEK 则无条件跳转。

由入站指令引起的状态变化会被标记为"远端驱动"，播放器随后上报该状态时不再回传。
"""
from __future__ import annotations

from collections.abc import Callable

from watchsync.client.interfaces import Player, PlayerState
from watchsync.client.sender import MessageSender
from watchsync.core.exceptions import SessionNotReadyError
from watchsync.core.logging import get_logger
from watchsync.schemas.messages import MessageKind

logger = get_logger(__name__)

DEFAULT_MARGIN: float = 1.0


class PlaybackSynchronizer:
    """播放进度 / 状态同步器。

    Attributes:
        sender: 出站消息发送器。
        margin: 入站 PLAY / PAUSE 触发 seek 的最小偏差（秒）。
        on_remote_seek: 因入站指令执行 seek 后的回调（用于重置 seek 检测基线）。
    """

    def __init__(
        self,
        sender: MessageSender,
        player: Player | None = None,
        margin: float = DEFAULT_MARGIN,
        on_remote_seek: Callable[[], None] | None = None,
    ) -> None:
        self.sender = sender
        self.margin = margin
        self.on_remote_seek = on_remote_seek
        self._player = player
        # 入站指令期望播放器进入的状态；播放器上报该状态时不回传
        self._remote_intent: PlayerState | None = None

    @property
    def player(self) -> Player:
        if self._player is None:
            raise SessionNotReadyError("播放器尚未初始化")
        return self._player

    @player.setter
    def player(self, player: Player) -> None:
        self._player = player
        self._remote_intent = None

    @property
    def ready(self) -> bool:
        return self._player is not None

    @property
    def remote_intent(self) -> PlayerState | None:
        return self._remote_intent

    # ── 出站：本地事件 ────────────────────────────────────────────────

    def on_state_change(self, state: PlayerState | int) -> None:
        """处理播放器上报的状态变化。"""
        state = PlayerState(state)
        if state not in (PlayerState.PLAYING, PlayerState.PAUSED):
            if state is PlayerState.ENDED:
                self._remote_intent = None
            return

        intent, self._remote_intent = self._remote_intent, None
        if intent is state:
            logger.debug("远端驱动的状态变化，不回传 | state=%s", state.name)
            return

        kind = MessageKind.PLAY if state is PlayerState.PLAYING else MessageKind.PAUSE
        self.sender.send_time(kind, self.player)

    def on_local_seek(self, position: float | None = None) -> None:
        """本地 seek 检测回调：广播 SEEK。"""
        if position is None:
            self.sender.send_time(MessageKind.SEEK, self.player)
        else:
            self.sender.send(MessageKind.SEEK, max(0.0, position))

    # ── 入站：会话指令 ────────────────────────────────────────────────

    def reconcile(self, position: float) -> bool:
        """本地进度与 ``position`` 偏差超过 ``margin`` 时 seek。

        Returns:
            是否执行了 seek。偏差恰好等于 ``margin`` 时不 seek。
        """
        current = self.player.get_current_time()
        if abs(current - position) > self.margin:
            self._seek(position)
            return True
        return False

    def apply_play(self, position: float) -> None:
        """入站 PLAY：校正进度，本地暂停中则开始播放。"""
        self.reconcile(position)
        if PlayerState(self.player.get_player_state()) is PlayerState.PAUSED:
            self._remote_intent = PlayerState.PLAYING
            self.player.play_video()

    def apply_pause(self, position: float) -> None:
        """入站 PAUSE：校正进度，本地播放中则暂停。"""
        self.reconcile(position)
        if PlayerState(self.player.get_player_state()) is PlayerState.PLAYING:
            self._remote_intent = PlayerState.PAUSED
            self.player.pause_video()

    def apply_seek(self, position: float) -> None:
        """入站 SEEK：无条件跳转。"""
        self._seek(position)

    def _seek(self, position: float) -> None:
        # 播放中 seek 会经过 BUFFERING 再回到 PLAYING，该 PLAYING 不回传
        if PlayerState(self.player.get_player_state()) is PlayerState.PLAYING:
            self._remote_intent = PlayerState.PLAYING
        self.player.seek_to(position, True)
        logger.debug("同步进度 | position=%.3f", position)
        if self.on_remote_seek is not None:
            self.on_remote_seek()

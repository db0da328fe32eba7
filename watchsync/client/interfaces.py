"""
watchsync.client.interfaces
~~~~~~~~~~~~~~~~~~~~~~~~~~~

同步状态机依赖的外部协作者接口：播放器、宿主页面、传输通道、界面。

这些对象都由宿主环境提供，本包只通过下列 ``Protocol`` 与其交互。
"""
from __future__ import annotations

from collections.abc import Sequence
from enum import Enum, IntEnum
from typing import Protocol, Union

from watchsync.schemas.messages import Client, Video


class PlayerState(IntEnum):
    """播放器上报的状态值（与嵌入式播放器的数值保持一致）。"""

    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


class Origin(str, Enum):
    """一次导航 / 状态变化的来源，用于避免把远端指令再次广播出去。"""

    LOCAL = "local"
    REMOTE = "remote"
    AUTOPLAY = "autoplay"


class Player(Protocol):
    """播放引擎。"""

    def get_current_time(self) -> float: ...

    def get_player_state(self) -> Union[PlayerState, int]: ...

    def play_video(self) -> None: ...

    def pause_video(self) -> None: ...

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None: ...

    def load_video_by_id(self, video_id: str) -> None: ...


class HostPage(Protocol):
    """宿主页面：读取当前视频、读取 URL、在页面内切换视频（不整页刷新）。"""

    def current_video(self) -> Video: ...

    def current_url(self) -> str: ...

    def navigate_to_video(self, video_id: str, session_id: str) -> None: ...


class Transport(Protocol):
    """会话通道。``send`` 只负责投递，不等待确认。"""

    def send(self, text: str) -> None: ...


class SessionView(Protocol):
    """挂载在宿主页面上的队列 / 房间信息组件。"""

    def render_queue(self, videos: Sequence[Video], selected_id: str | None) -> None: ...

    def render_roster(self, clients: Sequence[Client]) -> None: ...

    def set_autoplay_indicator(self, enabled: bool) -> None: ...

    def show_reaction(self, reaction_id: str | int) -> None: ...


class NullView:
    """不渲染任何内容的界面实现（无界面运行或测试时使用）。"""

    def render_queue(self, videos: Sequence[Video], selected_id: str | None) -> None:
        pass

    def render_roster(self, clients: Sequence[Client]) -> None:
        pass

    def set_autoplay_indicator(self, enabled: bool) -> None:
        pass

    def show_reaction(self, reaction_id: str | int) -> None:
        pass

"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 用内存假对象替代播放器、宿主页面、传输通道和界面，
使同步状态机可在无浏览器、无网络的环境下测试。
"""
from __future__ import annotations

import os
from collections.abc import Sequence

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")  # 激活 .env.test 配置

from watchsync.client.interfaces import PlayerState  # noqa: E402
from watchsync.client.session import SyncSession  # noqa: E402
from watchsync.schemas.messages import (  # noqa: E402
    Client,
    MessageKind,
    SyncMessage,
    Video,
    decode_message,
)

SESSION_ID: str = "sess-1"


def video(video_id: str) -> Video:
    """构造一个测试用视频。"""
    return Video(video_id=video_id, title=f"Title {video_id}", byline="Channel")


def client(socket_id: str, promoted: bool = False) -> Client:
    return Client(socket_id=socket_id, promoted=promoted)


# ── 外部协作者假对象 ──────────────────────────────────────────────────

class FakePlayer:
    """记录所有调用的播放器。状态变化不会自动回调，由测试显式触发。"""

    def __init__(self, position: float = 0.0, state: PlayerState = PlayerState.PAUSED) -> None:
        self.position = position
        self.state = state
        self.seeks: list[tuple[float, bool]] = []
        self.play_calls = 0
        self.pause_calls = 0
        self.loaded: list[str] = []

    def get_current_time(self) -> float:
        return self.position

    def get_player_state(self) -> int:
        return int(self.state)

    def play_video(self) -> None:
        self.play_calls += 1
        self.state = PlayerState.PLAYING

    def pause_video(self) -> None:
        self.pause_calls += 1
        self.state = PlayerState.PAUSED

    def seek_to(self, seconds: float, allow_seek_ahead: bool) -> None:
        self.seeks.append((seconds, allow_seek_ahead))
        self.position = seconds

    def load_video_by_id(self, video_id: str) -> None:
        self.loaded.append(video_id)


class FakeHostPage:
    """宿主页面：URL 中携带当前视频和会话 token。"""

    def __init__(self, video_id: str = "A", session_id: str | None = SESSION_ID) -> None:
        self.video_id = video_id
        self.session_id = session_id
        self.navigations: list[str] = []

    def current_video(self) -> Video:
        return video(self.video_id)

    def current_url(self) -> str:
        url = f"https://www.youtube.com/watch?v={self.video_id}"
        if self.session_id is not None:
            url += f"&sessionId={self.session_id}"
        return url

    def navigate_to_video(self, video_id: str, session_id: str) -> None:
        self.navigations.append(video_id)
        self.video_id = video_id
        self.session_id = session_id


class RecordingTransport:
    """记录所有出站文本帧的传输通道。"""

    def __init__(self) -> None:
        self.frames: list[str] = []

    def send(self, text: str) -> None:
        self.frames.append(text)

    @property
    def messages(self) -> list[SyncMessage]:
        return [decode_message(frame) for frame in self.frames]

    def kinds(self) -> list[MessageKind]:
        return [m.action for m in self.messages]

    def of_kind(self, kind: MessageKind) -> list[SyncMessage]:
        return [m for m in self.messages if m.action is kind]

    def clear(self) -> None:
        self.frames.clear()


class RecordingView:
    """记录最近一次渲染结果的界面。"""

    def __init__(self) -> None:
        self.queue: list[str] = []
        self.selected_id: str | None = None
        self.roster: list[str] = []
        self.autoplay_indicator: bool | None = None
        self.reactions: list[str | int] = []

    def render_queue(self, videos: Sequence[Video], selected_id: str | None) -> None:
        self.queue = [v.video_id for v in videos]
        self.selected_id = selected_id

    def render_roster(self, clients: Sequence[Client]) -> None:
        self.roster = sorted(c.socket_id for c in clients)

    def set_autoplay_indicator(self, enabled: bool) -> None:
        self.autoplay_indicator = enabled

    def show_reaction(self, reaction_id: str | int) -> None:
        self.reactions.append(reaction_id)


# ── Fixtures ──────────────────────────────────────────────────────────

@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def player() -> FakePlayer:
    return FakePlayer()


@pytest.fixture()
def host() -> FakeHostPage:
    return FakeHostPage()


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture()
def session(
    transport: RecordingTransport,
    player: FakePlayer,
    host: FakeHostPage,
    view: RecordingView,
) -> SyncSession:
    """已绑定播放器和宿主页面、autoplay 开启、margin = 1.0 的会话。"""
    return SyncSession(
        SESSION_ID,
        transport,
        player=player,
        host=host,
        view=view,
        margin=1.0,
        autoplay=True,
    )

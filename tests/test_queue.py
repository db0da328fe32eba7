"""
tests.test_queue
~~~~~~~~~~~~~~~~

QueueReplica 队列副本单元测试。

本地队列只随入站确认变化：``request_*`` 不会修改本地状态。
"""
from __future__ import annotations

from tests.conftest import RecordingTransport, video
from watchsync.client.interfaces import Origin
from watchsync.client.queue import QueueReplica
from watchsync.client.sender import MessageSender
from watchsync.schemas.messages import MessageKind


class TestQueueReplica:
    """快照、增量、选中与推进。"""

    def setup_method(self) -> None:
        self.transport = RecordingTransport()
        self.navigations: list[str] = []
        self.queue = QueueReplica(MessageSender(self.transport), navigate=self.navigations.append)

    def ids(self) -> list[str]:
        return [v.video_id for v in self.queue.videos]

    # ── 快照 ──────────────────────────────────────────────────────────

    def test_snapshot_is_idempotent(self) -> None:
        """同一快照应用两次与应用一次结果相同。"""
        videos = [video("A"), video("B"), video("C")]

        self.queue.apply_queue_snapshot(video("B"), videos)
        once = (self.queue.videos, self.queue.selected_id)
        self.queue.apply_queue_snapshot(video("B"), videos)

        assert (self.queue.videos, self.queue.selected_id) == once
        assert self.ids() == ["A", "B", "C"]
        assert self.queue.selected_id == "B"

    def test_snapshot_converges_after_deltas(self) -> None:
        """无论之前应用过哪些增量，快照之后的状态都等于快照内容。"""
        self.queue.apply_add(video("X"))
        self.queue.apply_add(video("Y"))
        self.queue.apply_remove("X")
        self.queue.apply_add(video("Z"))

        self.queue.apply_queue_snapshot(video("A"), [video("A"), video("B")])

        assert self.ids() == ["A", "B"]
        assert self.queue.selected_id == "A"

    def test_snapshot_with_unknown_selection_selects_nothing(self) -> None:
        self.queue.apply_queue_snapshot(video("Q"), [video("A")])

        assert self.queue.selected_id is None
        assert self.queue.selected is None

    def test_empty_snapshot(self) -> None:
        self.queue.apply_add(video("A"))

        self.queue.apply_queue_snapshot(None, [])

        assert len(self.queue) == 0
        assert self.queue.selected_id is None

    # ── 增量 ──────────────────────────────────────────────────────────

    def test_add_does_not_deduplicate(self) -> None:
        self.queue.apply_add(video("A"))
        self.queue.apply_add(video("A"))

        assert self.ids() == ["A", "A"]

    def test_remove_only_first_matching_slot(self) -> None:
        """重复视频只移除第一个匹配的位置。"""
        for vid in ("A", "B", "A"):
            self.queue.apply_add(video(vid))

        assert self.queue.apply_remove("A") is True

        assert self.ids() == ["B", "A"]

    def test_remove_missing_is_noop(self) -> None:
        self.queue.apply_add(video("A"))

        assert self.queue.apply_remove("Z") is False
        assert self.ids() == ["A"]

    # ── 请求不修改本地状态 ────────────────────────────────────────────

    def test_request_add_does_not_mutate(self) -> None:
        self.queue.request_add(video("A"))

        assert len(self.queue) == 0
        assert self.transport.kinds() == [MessageKind.ADD_TO_QUEUE]
        assert self.transport.messages[0].data.video_id == "A"

    def test_request_remove_does_not_mutate(self) -> None:
        self.queue.apply_add(video("A"))

        self.queue.request_remove("A")

        assert self.ids() == ["A"]
        assert self.transport.kinds() == [MessageKind.REMOVE_FROM_QUEUE]

    # ── 选中 / 导航 ───────────────────────────────────────────────────

    def test_local_selection_requests_play_video(self) -> None:
        self.queue.apply_queue_snapshot(None, [video("A"), video("B")])

        self.queue.select_and_navigate("B", origin=Origin.LOCAL)

        assert self.queue.selected_id == "B"
        assert self.navigations == ["B"]
        assert self.transport.kinds() == [MessageKind.PLAY_VIDEO]

    def test_remote_selection_does_not_echo(self) -> None:
        """由入站 PLAY_VIDEO 引起的选中不应再次发出 PLAY_VIDEO。"""
        self.queue.select_and_navigate("B", origin=Origin.REMOTE)

        assert self.navigations == ["B"]
        assert self.transport.frames == []

    # ── 推进 ──────────────────────────────────────────────────────────

    def test_advance_returns_successor(self) -> None:
        self.queue.apply_queue_snapshot(video("A"), [video("A"), video("B"), video("C")])

        assert self.queue.advance().video_id == "B"
        # 推进本身没有副作用
        assert self.queue.selected_id == "A"
        assert self.navigations == []

    def test_advance_on_last_slot_returns_none(self) -> None:
        self.queue.apply_queue_snapshot(video("C"), [video("A"), video("B"), video("C")])

        assert self.queue.advance() is None

    def test_advance_on_empty_queue_returns_none(self) -> None:
        assert self.queue.advance() is None

    def test_advance_when_selected_removed_returns_none(self) -> None:
        self.queue.apply_queue_snapshot(video("B"), [video("A"), video("B"), video("C")])
        self.queue.apply_remove("B")

        assert self.queue.advance() is None

    def test_advance_uses_first_matching_slot(self) -> None:
        self.queue.apply_queue_snapshot(video("A"), [video("A"), video("B"), video("A"), video("C")])

        assert self.queue.advance().video_id == "B"

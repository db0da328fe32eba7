"""
tests.test_roster
~~~~~~~~~~~~~~~~~

ClientRoster 参与者名单单元测试。
"""
from __future__ import annotations

from tests.conftest import RecordingTransport, client
from watchsync.client.roster import ClientRoster
from watchsync.client.sender import MessageSender
from watchsync.schemas.messages import MessageKind


class TestClientRoster:
    """名单快照 / 增量 / 权限请求。"""

    def setup_method(self) -> None:
        self.transport = RecordingTransport()
        self.roster = ClientRoster(MessageSender(self.transport))

    def test_connect_duplicate_is_noop(self) -> None:
        """已存在的 socket_id 再次 CONNECT 不应重复加入。"""
        assert self.roster.apply_connect(client("s1")) is True
        assert self.roster.apply_connect(client("s1", promoted=True)) is False

        assert len(self.roster) == 1
        assert self.roster.get("s1").promoted is False

    def test_disconnect_unknown_is_noop(self) -> None:
        self.roster.apply_connect(client("s1"))

        assert self.roster.apply_disconnect("ghost") is False
        assert len(self.roster) == 1

    def test_size_counts_distinct_connects_minus_disconnects(self) -> None:
        for sid in ("s1", "s2", "s3", "s2"):
            self.roster.apply_connect(client(sid))
        self.roster.apply_disconnect("s1")
        self.roster.apply_disconnect("s1")

        assert len(self.roster) == 2
        assert "s2" in self.roster and "s3" in self.roster

    def test_snapshot_wins_over_deltas(self) -> None:
        """完整快照应覆盖之前累计的所有增量。"""
        self.roster.apply_connect(client("s1"))
        self.roster.apply_connect(client("s2"))

        self.roster.apply_roster_snapshot([client("s3", promoted=True)])

        assert [c.socket_id for c in self.roster] == ["s3"]
        assert [c.socket_id for c in self.roster.promoted_clients] == ["s3"]

    def test_promote_request_does_not_change_local_state(self) -> None:
        """请求提升权限只发出 PROMOTE，本地 promoted 不变。"""
        self.roster.apply_connect(client("s1"))

        self.roster.request_promote(self.roster.get("s1"))

        assert self.transport.kinds() == [MessageKind.PROMOTE]
        assert self.transport.messages[0].data == "s1"
        assert self.roster.get("s1").promoted is False

    def test_unpromote_request(self) -> None:
        self.roster.request_unpromote(client("s2", promoted=True))

        assert self.transport.kinds() == [MessageKind.UNPROMOTE]
        assert self.transport.messages[0].data == "s2"

    def test_promotion_notification_updates_flag(self) -> None:
        self.roster.apply_connect(client("s1"))

        assert self.roster.apply_promotion("s1", True) is True
        assert self.roster.apply_promotion("s1", True) is False
        assert self.roster.get("s1").promoted is True
        assert self.roster.apply_promotion("ghost", True) is False

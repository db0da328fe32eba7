"""
watchsync.client.roster
~~~~~~~~~~~~~~~~~~~~~~~

参与者名单与权限模型。

名单以 ``socket_id`` 为键；完整快照（CLIENTS）总是覆盖之前累计的增量，
用于任何疑似漂移后的重新同步。``promoted`` 只随协调服务器的广播变化。
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator

from watchsync.client.sender import MessageSender
from watchsync.core.logging import get_logger
from watchsync.schemas.messages import Client, MessageKind

logger = get_logger(__name__)


class ClientRoster:
    """本地的参与者名单副本。

    Attributes:
        sender: 出站消息发送器。
    """

    def __init__(self, sender: MessageSender) -> None:
        self.sender = sender
        self._clients: dict[str, Client] = {}

    # ── 查询 ──────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, socket_id: object) -> bool:
        return socket_id in self._clients

    def __iter__(self) -> Iterator[Client]:
        return iter(list(self._clients.values()))

    def get(self, socket_id: str) -> Client | None:
        return self._clients.get(socket_id)

    @property
    def clients(self) -> list[Client]:
        """当前名单（顺序无意义）。"""
        return list(self._clients.values())

    @property
    def promoted_clients(self) -> list[Client]:
        """拥有特权操作权限的参与者。"""
        return [c for c in self._clients.values() if c.promoted]

    # ── 入站：快照 / 增量 ─────────────────────────────────────────────

    def apply_roster_snapshot(self, clients: Iterable[Client]) -> None:
        """用完整快照替换整个名单。"""
        self._clients = {c.socket_id: c for c in clients}
        logger.debug("名单快照已应用 | 在线: %d", len(self._clients))

    def apply_connect(self, client: Client) -> bool:
        """加入一个参与者。已存在的 ``socket_id`` 不做任何处理。

        Returns:
            名单是否发生了变化。
        """
        if client.socket_id in self._clients:
            return False
        self._clients[client.socket_id] = client
        logger.debug("参与者加入 | socket_id=%s | 在线: %d", client.socket_id, len(self._clients))
        return True

    def apply_disconnect(self, socket_id: str) -> bool:
        """移除一个参与者。不存在的 ``socket_id`` 不做任何处理。"""
        if self._clients.pop(socket_id, None) is None:
            return False
        logger.debug("参与者离开 | socket_id=%s | 在线: %d", socket_id, len(self._clients))
        return True

    def apply_promotion(self, socket_id: str, promoted: bool) -> bool:
        """应用协调服务器广播的 PROMOTE / UNPROMOTE 通知。"""
        client = self._clients.get(socket_id)
        if client is None or client.promoted == promoted:
            return False
        self._clients[socket_id] = client.model_copy(update={"promoted": promoted})
        logger.info("权限变更 | socket_id=%s | promoted=%s", socket_id, promoted)
        return True

    # ── 出站：请求 ────────────────────────────────────────────────────

    def request_promote(self, client: Client) -> None:
        """请求提升指定参与者的权限。本地状态等广播到达后才会改变。"""
        self.sender.send(MessageKind.PROMOTE, client.socket_id)

    def request_unpromote(self, client: Client) -> None:
        """请求撤销指定参与者的权限。"""
        self.sender.send(MessageKind.UNPROMOTE, client.socket_id)

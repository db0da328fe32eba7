"""
watchsync.services.session_system
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

会话系统 —— 管理协调服务器上所有会话的生命周期。

在 FastAPI lifespan 中初始化并挂载于 ``app.state.session_system``。
"""
from __future__ import annotations

from watchsync.core.logging import get_logger
from watchsync.schemas.session_info import SessionInfoData
from watchsync.services.session_room import SessionRoom

logger = get_logger(__name__)


class SessionSystem:
    """会话系统。

    - ``get_room(session_id)``       → 获取/创建指定会话（懒初始化）
    - ``find_room(session_id)``      → 只查询，不创建
    - ``list_rooms()``               → 列出所有活跃会话
    - ``discard_if_empty(session_id)`` → 最后一个参与者离开后回收会话
    """

    def __init__(self) -> None:
        self._rooms: dict[str, SessionRoom] = {}

    def get_room(self, session_id: str) -> SessionRoom:
        """获取指定会话（不存在则自动创建）。"""
        if session_id not in self._rooms:
            self._rooms[session_id] = SessionRoom(session_id)
            logger.info("会话已创建 | session=%s", session_id)
        return self._rooms[session_id]

    def find_room(self, session_id: str) -> SessionRoom | None:
        return self._rooms.get(session_id)

    def list_rooms(self) -> list[SessionInfoData]:
        """列出所有活跃会话的摘要信息。"""
        return [room.info() for room in self._rooms.values()]

    def discard_if_empty(self, session_id: str) -> bool:
        room = self._rooms.get(session_id)
        if room is None or room.online_count > 0:
            return False
        del self._rooms[session_id]
        logger.info("会话已回收 | session=%s", session_id)
        return True

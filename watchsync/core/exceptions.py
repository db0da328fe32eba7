"""
watchsync.core.exceptions
~~~~~~~~~~~~~~~~~~~~~~~~~

项目内统一的异常类型。
"""
from __future__ import annotations


class WatchSyncError(Exception):
    """所有 watchsync 异常的基类。"""


class ProtocolError(WatchSyncError, ValueError):
    """无法解析的消息帧：非法 JSON、未知 action、payload 形状不符或版本不支持。

    接收端捕获后记录日志并丢弃该帧，不修改任何状态。
    """

    def __init__(self, message: str, frame: str | None = None) -> None:
        super().__init__(message)
        self.frame = frame


class SessionNotReadyError(WatchSyncError, RuntimeError):
    """播放器尚未初始化时就开始分发消息。

    连接只应在播放器创建之后建立，出现此异常说明调用顺序有误。
    """

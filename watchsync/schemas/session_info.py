"""
watchsync.schemas.session_info
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

协调服务器 HTTP 接口使用的会话摘要模型。
"""
from __future__ import annotations

from pydantic import BaseModel, Field

from watchsync.schemas.messages import Client, Video


class SessionInfoData(BaseModel):
    """会话摘要信息。"""

    session_id: str = Field(..., description="会话 token")
    online_count: int = Field(..., description="当前在线人数")
    queue_length: int = Field(..., description="队列长度")
    autoplay: bool = Field(..., description="会话级 autoplay 开关")


class SessionDetailData(SessionInfoData):
    """会话详情：在摘要基础上附带完整队列与参与者列表。"""

    selected: Video | None = Field(default=None, description="当前选中的视频")
    videos: list[Video] = Field(default_factory=list, description="队列")
    clients: list[Client] = Field(default_factory=list, description="参与者")

"""
watchsync.schemas.messages
~~~~~~~~~~~~~~~~~~~~~~~~~~

同步协议 —— 消息类型、payload 模型与编解码。

每条消息是一个 UTF-8 JSON 文本帧::

    {"v": 1, "action": "PLAY", "data": "12.5"}

``data`` 的形状完全由 ``action`` 决定（见 ``PAYLOAD_TYPES``）。
``v`` 缺省时按版本 1 处理，高于当前版本的帧会被拒绝。
"""
from __future__ import annotations

import json
import math
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)

from watchsync.core.exceptions import ProtocolError

PROTOCOL_VERSION: int = 1


class MessageKind(str, Enum):
    """协议中封闭的消息类型集合。"""

    PLAY = "PLAY"
    PAUSE = "PAUSE"
    SEEK = "SEEK"
    PLAY_VIDEO = "PLAY_VIDEO"
    ADD_TO_QUEUE = "ADD_TO_QUEUE"
    REMOVE_FROM_QUEUE = "REMOVE_FROM_QUEUE"
    QUEUE = "QUEUE"
    AUTOPLAY = "AUTOPLAY"
    CLIENTS = "CLIENTS"
    CLIENT_CONNECT = "CLIENT_CONNECT"
    CLIENT_DISCONNECT = "CLIENT_DISCONNECT"
    REACTION = "REACTION"
    PROMOTE = "PROMOTE"
    UNPROMOTE = "UNPROMOTE"


TIME_KINDS: frozenset[MessageKind] = frozenset(
    {MessageKind.PLAY, MessageKind.PAUSE, MessageKind.SEEK},
)


# ── Payload 模型 ──────────────────────────────────────────────────────

class Video(BaseModel):
    """队列中的一个视频。身份由 ``video_id`` 决定，队列内允许重复。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    video_id: str = Field(..., alias="videoId", min_length=1, description="视频 ID")
    title: str = Field(default="", description="标题")
    byline: str = Field(default="", description="频道 / 作者")


class Client(BaseModel):
    """会话中的一个参与者。``socket_id`` 由传输层按连接分配，重连后会变化。"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    socket_id: str = Field(..., alias="socketId", min_length=1, description="连接标识")
    promoted: bool = Field(default=False, description="是否拥有特权操作权限")
    display_name: str | None = Field(default=None, alias="displayName", description="显示名")


class QueueSnapshot(BaseModel):
    """完整队列快照 + 当前选中的视频。"""

    video: Video | None = Field(default=None, description="当前选中（正在播放）的视频")
    videos: list[Video] = Field(default_factory=list, description="按顺序排列的队列")


def _parse_seconds(value: Any) -> float:
    # bool 是 int 的子类，需要单独排除
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValueError(f"无法解析的时间值: {value!r}")
    seconds = float(value)
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"时间必须是非负有限数: {value!r}")
    return seconds


Seconds = Annotated[
    float,
    PlainValidator(_parse_seconds),
    PlainSerializer(lambda v: str(v), return_type=str),
]
VideoId = Annotated[str, StringConstraints(min_length=1)]
SocketId = Annotated[str, StringConstraints(min_length=1)]
ReactionId = Union[str, int]

PAYLOAD_TYPES: dict[MessageKind, TypeAdapter[Any]] = {
    MessageKind.PLAY: TypeAdapter(Seconds),
    MessageKind.PAUSE: TypeAdapter(Seconds),
    MessageKind.SEEK: TypeAdapter(Seconds),
    MessageKind.PLAY_VIDEO: TypeAdapter(VideoId),
    MessageKind.ADD_TO_QUEUE: TypeAdapter(Video),
    MessageKind.REMOVE_FROM_QUEUE: TypeAdapter(VideoId),
    MessageKind.QUEUE: TypeAdapter(QueueSnapshot),
    MessageKind.AUTOPLAY: TypeAdapter(bool),
    MessageKind.CLIENTS: TypeAdapter(list[Client]),
    MessageKind.CLIENT_CONNECT: TypeAdapter(Client),
    MessageKind.CLIENT_DISCONNECT: TypeAdapter(SocketId),
    MessageKind.REACTION: TypeAdapter(ReactionId),
    MessageKind.PROMOTE: TypeAdapter(SocketId),
    MessageKind.UNPROMOTE: TypeAdapter(SocketId),
}


class SyncMessage(BaseModel):
    """解码后的消息。``data`` 已按 ``action`` 校验为对应的 Python 类型。"""

    action: MessageKind
    data: Any = None

    def encode(self) -> str:
        """重新编码为文本帧（协调服务器转发时使用）。"""
        return encode_message(self.action, self.data)


# ── 编解码 ────────────────────────────────────────────────────────────

def encode_message(kind: MessageKind, payload: Any = None) -> str:
    """把消息编码为 JSON 文本帧。

    Args:
        kind: 消息类型。
        payload: 与 ``kind`` 对应的 payload（模型实例或原始 dict 均可）。

    Raises:
        ProtocolError: payload 与 ``kind`` 要求的形状不符。
    """
    adapter = PAYLOAD_TYPES[kind]
    try:
        value = adapter.validate_python(payload)
    except ValidationError as e:
        raise ProtocolError(f"{kind.value} 的 payload 不合法: {e}") from e
    data = adapter.dump_python(value, mode="json", by_alias=True)
    return json.dumps(
        {"v": PROTOCOL_VERSION, "action": kind.value, "data": data},
        ensure_ascii=False,
    )


def decode_message(frame: str | bytes) -> SyncMessage:
    """解码一个文本帧。

    Raises:
        ProtocolError: 非法 JSON、未知 action、payload 不合法或版本不支持。
    """
    try:
        raw = json.loads(frame)
    except (TypeError, ValueError) as e:
        raise ProtocolError(f"非法 JSON: {e}", frame=_preview(frame)) from e

    if not isinstance(raw, dict):
        raise ProtocolError("消息必须是 JSON 对象", frame=_preview(frame))

    version = raw.get("v", PROTOCOL_VERSION)
    if isinstance(version, bool) or not isinstance(version, int) or not 1 <= version <= PROTOCOL_VERSION:
        raise ProtocolError(f"不支持的协议版本: {version!r}", frame=_preview(frame))

    action = raw.get("action")
    try:
        kind = MessageKind(action)
    except ValueError as e:
        raise ProtocolError(f"未知 action: {action!r}", frame=_preview(frame)) from e

    try:
        data = PAYLOAD_TYPES[kind].validate_python(raw.get("data"))
    except ValidationError as e:
        raise ProtocolError(
            f"{kind.value} 的 payload 不合法: {e.error_count()} 处错误",
            frame=_preview(frame),
        ) from e

    return SyncMessage(action=kind, data=data)


def _preview(frame: Any, limit: int = 120) -> str:
    text = frame.decode("utf-8", "replace") if isinstance(frame, bytes) else str(frame)
    return text if len(text) <= limit else text[:limit] + "..."

"""
watchsync.api.session_ws
~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 会话接口 —— 开发用协调服务器。

提供 ``/ws/{session_id}`` 端点，客户端通过会话 token 加入指定会话。
服务端持有权威状态，裁决特权请求，并把结果广播给会话内的所有参与者。
"""
from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from watchsync.core.config import settings
from watchsync.core.exceptions import ProtocolError
from watchsync.core.logging import get_logger, session_id_ctx_var
from watchsync.core.rate_limit import WebSocketRateLimiter
from watchsync.schemas.messages import MessageKind, decode_message, encode_message
from watchsync.services.session_room import SessionRoom
from watchsync.services.session_system import SessionSystem

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws/{session_id}")
async def websocket_session_endpoint(
    websocket: WebSocket,
    session_id: str,
    name: str | None = None,
) -> None:
    """WebSocket 会话端点。

    加入流程:
      1. 分配 socket_id，第一个加入者获得权限
      2. 向加入者发送 CLIENTS、QUEUE、AUTOPLAY，以及当前视频和播放进度
      3. 向其他参与者广播 CLIENT_CONNECT

    Args:
        websocket: FastAPI WebSocket 连接对象。
        session_id: 会话 token。
        name: 可选的显示名（查询参数）。
    """
    token = session_id_ctx_var.set(session_id)
    system: SessionSystem = websocket.app.state.session_system
    room = system.get_room(session_id)
    client = room.join(display_name=name)
    socket_id = client.socket_id

    # 每个连接独立的 REACTION 限流器
    limiter = WebSocketRateLimiter(interval_seconds=settings.WS_RATE_LIMIT_INTERVAL)

    try:
        # 欢迎序列发送完之前，其它连接的请求不能修改状态或广播给加入者
        async with room.lock:
            await room.broadcaster.connect(websocket, socket_id)
            logger.info("参与者进入会话 | socket_id=%s | 在线: %d", socket_id, room.online_count)

            for message in room.welcome():
                await room.broadcaster.send_to(socket_id, message.encode())
            await room.broadcaster.broadcast(
                encode_message(MessageKind.CLIENT_CONNECT, client), exclude=socket_id,
            )

        while True:
            frame: str = await websocket.receive_text()
            await _handle_frame(room, socket_id, frame, limiter)

    except WebSocketDisconnect:
        pass  # 正常断开
    except Exception as e:
        logger.error("WebSocket 异常: %s | socket_id=%s", e, socket_id, exc_info=True)
    finally:
        limiter.remove_client(socket_id)
        async with room.lock:
            room.broadcaster.disconnect(socket_id)
            heir = room.leave(socket_id)
            await room.broadcaster.broadcast(encode_message(MessageKind.CLIENT_DISCONNECT, socket_id))
            if heir is not None:
                await room.broadcaster.broadcast(encode_message(MessageKind.PROMOTE, heir.socket_id))
        logger.info("参与者退出会话 | socket_id=%s | 在线: %d", socket_id, room.online_count)
        system.discard_if_empty(session_id)
        session_id_ctx_var.reset(token)


async def _handle_frame(
    room: SessionRoom,
    socket_id: str,
    frame: str,
    limiter: WebSocketRateLimiter,
) -> None:
    try:
        message = decode_message(frame)
    except ProtocolError as e:
        logger.warning("丢弃无法解析的消息: %s | socket_id=%s", e, socket_id)
        return

    if message.action is MessageKind.REACTION and not limiter.is_allowed(socket_id):
        logger.debug("REACTION 过快，已丢弃 | socket_id=%s", socket_id)
        return

    async with room.lock:
        for outgoing in room.apply(socket_id, message):
            await room.broadcaster.broadcast(outgoing.message.encode(), exclude=outgoing.exclude)

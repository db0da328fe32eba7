"""
watchsync.api.sessions
~~~~~~~~~~~~~~~~~~~~~~

会话 REST 接口 —— 只读查询协调服务器上的活跃会话。

端点:
  - ``GET /sessions``               → 获取活跃会话列表
  - ``GET /sessions/{session_id}``  → 获取会话详情（队列、参与者）
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from watchsync.api.deps import get_session_system
from watchsync.core.rate_limit import limiter
from watchsync.schemas.api_response import ApiResponse
from watchsync.schemas.session_info import SessionDetailData, SessionInfoData
from watchsync.services.session_system import SessionSystem

router: APIRouter = APIRouter()


@router.get("/sessions", summary="获取活跃会话列表")
@limiter.limit("10/second")
async def list_sessions(
    request: Request,
    system: SessionSystem = Depends(get_session_system),
) -> ApiResponse[list[SessionInfoData]]:
    """返回所有活跃会话的摘要。"""
    return ApiResponse.ok(data=system.list_rooms())


@router.get(
    "/sessions/{session_id}",
    summary="获取会话详情",
    response_model=ApiResponse[SessionDetailData],
)
@limiter.limit("10/second")
async def session_detail(
    request: Request,
    session_id: str,
    system: SessionSystem = Depends(get_session_system),
):
    """返回指定会话的队列、选中视频和参与者。

    与 WebSocket 端点不同，这里不会自动创建会话。

    Args:
        session_id: 会话 token。
    """
    room = system.find_room(session_id)
    if room is None:
        return JSONResponse(
            status_code=404,
            content=ApiResponse.fail(msg="会话不存在", code=404).model_dump(),
        )
    return ApiResponse.ok(data=room.detail())

"""
watchsync.client.tokens
~~~~~~~~~~~~~~~~~~~~~~~

会话 token 与页面 URL 的相关工具。

token 在客户端首次创建会话时生成，通过页面 URL 的查询参数传递给每个加入者，
连接协调服务器时作为路径最后一段追加。
"""
from __future__ import annotations

import uuid
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from watchsync.core.config import settings


def generate_session_id() -> str:
    """生成一个新的会话 token。"""
    return uuid.uuid4().hex


def _query_value(url: str, name: str) -> str | None:
    values = parse_qs(urlparse(url).query).get(name)
    return values[0] if values else None


def session_id_from_url(url: str) -> str | None:
    """读取页面 URL 中的会话 token。"""
    return _query_value(url, settings.SESSION_QUERY_PARAM)


def video_id_from_url(url: str) -> str | None:
    """读取页面 URL 中的当前视频 ID。"""
    return _query_value(url, settings.VIDEO_QUERY_PARAM)


def _replace_query(url: str, name: str, value: str | None) -> str:
    parts = urlparse(url)
    query = parse_qs(parts.query, keep_blank_values=True)
    if value is None:
        query.pop(name, None)
    else:
        query[name] = [value]
    return urlunparse(parts._replace(query=urlencode(query, doseq=True)))


def with_session_id(url: str, session_id: str) -> str:
    """返回携带会话 token 的页面 URL（"创建同步"按钮）。"""
    return _replace_query(url, settings.SESSION_QUERY_PARAM, session_id)


def without_session_id(url: str) -> str:
    """返回去掉会话 token 的页面 URL（"离开同步"按钮）。"""
    return _replace_query(url, settings.SESSION_QUERY_PARAM, None)


def session_endpoint(session_id: str, base_url: str | None = None) -> str:
    """会话对应的协调服务器 WebSocket 地址。"""
    base = (base_url or settings.COORDINATOR_URL).rstrip("/")
    return f"{base}/{session_id}"

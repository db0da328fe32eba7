"""
tests.test_rate_limit
~~~~~~~~~~~~~~~~~~~~~

WebSocketRateLimiter 单元测试（REACTION 防刷屏）。
"""
from __future__ import annotations

from unittest.mock import patch

from watchsync.core.rate_limit import WebSocketRateLimiter


class TestWebSocketRateLimiter:
    """按连接的最小发送间隔。"""

    def test_second_message_within_interval_is_rejected(self) -> None:
        limiter = WebSocketRateLimiter(interval_seconds=1.0)

        with patch("watchsync.core.rate_limit.time.monotonic", side_effect=[10.0, 10.5, 11.0]):
            assert limiter.is_allowed("s1") is True
            assert limiter.is_allowed("s1") is False
            assert limiter.is_allowed("s1") is True

    def test_clients_are_limited_independently(self) -> None:
        limiter = WebSocketRateLimiter(interval_seconds=5.0)

        assert limiter.is_allowed("s1") is True
        assert limiter.is_allowed("s2") is True
        assert limiter.is_allowed("s1") is False

    def test_remove_client_forgets_history(self) -> None:
        limiter = WebSocketRateLimiter(interval_seconds=60.0)
        limiter.is_allowed("s1")

        limiter.remove_client("s1")
        limiter.remove_client("unknown")

        assert limiter.is_allowed("s1") is True

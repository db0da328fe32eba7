"""
watchsync.core.config
~~~~~~~~~~~~~~~~~~~~~

集中式配置管理，基于 pydantic-settings 自动从 ``.env`` 文件加载。

客户端（同步状态机）和开发用协调服务器共用同一份配置。加载顺序为:
  1. 环境变量（最高优先级）
  2. ``.env.{ENVIRONMENT}`` 环境专属文件
  3. ``.env`` 基础文件
  4. 字段默认值（最低优先级）
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 读取当前环境标识（在 Settings 类定义之前，用于决定加载哪个 .env 文件）
_CURRENT_ENV: str = os.getenv("ENVIRONMENT", "dev")


class Settings(BaseSettings):
    """全局配置对象，字段值按如下优先级加载：环境变量 > .env.{env} > .env > 默认值。"""

    # ── 基础 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="watchsync", description="项目名称")
    VERSION: str = Field(default="0.1.0", description="版本号")
    ENVIRONMENT: Literal["dev", "test", "prod"] = Field(
        default="dev",
        description="运行环境：dev / test / prod",
    )

    # ── 会话 / 连接 ───────────────────────────────────────────────────
    COORDINATOR_URL: str = Field(
        default="ws://127.0.0.1:8080/ws",
        description="协调服务器 WebSocket 地址，会话 token 作为路径最后一段追加",
    )
    SESSION_QUERY_PARAM: str = Field(
        default="sessionId",
        description="页面 URL 中携带会话 token 的查询参数名",
    )
    VIDEO_QUERY_PARAM: str = Field(
        default="v",
        description="页面 URL 中携带当前视频 ID 的查询参数名",
    )

    # ── 播放同步 ──────────────────────────────────────────────────────
    SYNC_MARGIN: float = Field(
        default=1.0,
        ge=0.0,
        description="收到 PLAY/PAUSE 时，本地进度偏差超过该值（秒）才会 seek",
    )
    AUTOPLAY_DEFAULT: bool = Field(default=True, description="本地 autoplay 初始值")

    # ── 轮询 ──────────────────────────────────────────────────────────
    SEEK_POLL_INTERVAL: float = Field(default=0.5, gt=0.0, description="seek 检测轮询间隔（秒）")
    SEEK_THRESHOLD: float = Field(
        default=1.5,
        gt=0.0,
        description="实际进度与预期进度偏差超过该值（秒）视为一次 seek",
    )
    URL_POLL_INTERVAL: float = Field(default=0.5, gt=0.0, description="URL 变化检测轮询间隔（秒）")
    QUEUE_STORE_POLL_INTERVAL: float = Field(
        default=1.0,
        gt=0.0,
        description="待加入队列缓存的轮询间隔（秒）",
    )

    # ── 协调服务器 ────────────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="服务监听地址")
    PORT: int = Field(default=8080, description="服务监听端口")
    LOG_LEVEL: str = Field(default="INFO", description="日志级别（可被环境属性覆盖）")
    WS_RATE_LIMIT_INTERVAL: float = Field(
        default=1.0,
        description="同一连接两次 REACTION 之间的最小间隔（秒）",
    )

    # ── Pydantic Settings ─────────────────────────────────────────────
    # 先加载 .env.{env} 再加载 .env，前者优先级更高
    model_config = SettingsConfigDict(
        env_file=(f".env.{_CURRENT_ENV}", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 环境判断 ──────────────────────────────────────────────────────

    @property
    def is_prod(self) -> bool:
        """当前是否为生产环境。"""
        return self.ENVIRONMENT == "prod"

    @property
    def is_test(self) -> bool:
        """当前是否为测试环境。"""
        return self.ENVIRONMENT == "test"

    @property
    def is_dev(self) -> bool:
        """当前是否为开发环境。"""
        return self.ENVIRONMENT == "dev"

    # ── 环境差异化行为 ────────────────────────────────────────────────

    @property
    def debug(self) -> bool:
        """是否开启 debug 模式。仅 dev 环境开启。"""
        return self.is_dev

    @property
    def reload(self) -> bool:
        """是否开启热重载。仅 dev 环境开启。"""
        return self.is_dev

    @property
    def effective_log_level(self) -> str:
        """根据环境自动推断日志级别。

        - dev  → INFO
        - test → DEBUG（方便排查测试失败）
        - prod → WARNING（减少噪音）

        如果环境变量中显式设置了 LOG_LEVEL，会覆盖此默认推断。
        """
        env_log = os.getenv("LOG_LEVEL")
        if env_log:
            return env_log
        return {
            "dev": "INFO",
            "test": "DEBUG",
            "prod": "WARNING",
        }.get(self.ENVIRONMENT, "INFO")

    @property
    def allow_cors_all_origins(self) -> bool:
        """是否允许所有 CORS 来源。非 prod 环境允许，方便本地调试。"""
        return not self.is_prod


@lru_cache
def get_settings() -> Settings:
    """获取全局 Settings 单例（带缓存，避免重复解析 .env）。"""
    return Settings()


settings: Settings = get_settings()

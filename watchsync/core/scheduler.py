"""
watchsync.core.scheduler
~~~~~~~~~~~~~~~~~~~~~~~~

轮询式变化检测 —— 周期性读取外部观测值，与上一次比较，变化时触发回调。

宿主页面和播放器都没有可靠的原生变化事件（seek、URL 变化、本地缓存），
因此统一抽象为 ``PollingTask``：

- ``poll_once()``：同步执行一次比较（测试中直接调用）
- ``start()``    ：在当前事件循环中按 ``interval`` 周期轮询
- ``stop()``     ：停止调度后续轮询，正在执行的比较不会被打断
"""
from __future__ import annotations

import asyncio
import operator
import time
from collections.abc import Callable
from typing import Any, Generic, NamedTuple, TypeVar

from watchsync.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

_UNSET: Any = object()


class PollingTask(Generic[T]):
    """周期性比较外部观测值的轮询任务。

    第一次轮询只记录基线，不触发回调。

    Attributes:
        interval: 轮询间隔（秒）。
        name: 任务名，仅用于日志。
    """

    def __init__(
        self,
        interval: float,
        observe: Callable[[], T],
        on_change: Callable[[T, T], None],
        changed: Callable[[T, T], bool] = operator.ne,
        name: str = "poll",
    ) -> None:
        self.interval = interval
        self.name = name
        self._observe = observe
        self._on_change = on_change
        self._changed = changed
        self._previous: T = _UNSET
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """轮询是否仍在调度中。"""
        return self._task is not None and not self._task.done()

    def reset(self, baseline: T = _UNSET) -> None:
        """重置基线。不传参数时，下一次轮询重新记录基线。"""
        self._previous = baseline

    def poll_once(self) -> bool:
        """执行一次观测比较，返回是否触发了回调。"""
        current = self._observe()
        previous = self._previous
        self._previous = current
        if previous is _UNSET or not self._changed(previous, current):
            return False
        self._on_change(previous, current)
        return True

    def start(self) -> None:
        """开始周期轮询（需在事件循环内调用）。重复调用无副作用。"""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug("轮询已启动 | task=%s | interval=%.2fs", self.name, self.interval)

    def stop(self) -> None:
        """停止调度后续轮询。"""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug("轮询已停止 | task=%s", self.name)

    async def _run(self) -> None:
        while True:
            try:
                self.poll_once()
            except Exception as e:
                # 单次轮询失败不终止调度
                logger.error("轮询回调异常 | task=%s | %s", self.name, e, exc_info=True)
            await asyncio.sleep(self.interval)


class PlayheadSample(NamedTuple):
    """一次播放头采样。"""

    at: float
    position: float
    playing: bool


class SeekDetector:
    """基于轮询的 seek 检测器。

    播放中时，两次采样之间的预期进度 = 上次进度 + 经过的墙钟时间；
    暂停时预期进度不变。实际进度与预期偏差超过 ``threshold`` 即视为一次 seek。

    Args:
        read_position: 读取播放器当前进度（秒）。
        is_playing: 播放器当前是否处于播放状态。
        on_seek: 检测到 seek 时的回调，参数为新进度。
        interval: 轮询间隔（秒）。
        threshold: 判定为 seek 的最小偏差（秒）。
        clock: 单调时钟，测试中可替换。
    """

    def __init__(
        self,
        read_position: Callable[[], float],
        is_playing: Callable[[], bool],
        on_seek: Callable[[float], None],
        interval: float,
        threshold: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self._read_position = read_position
        self._is_playing = is_playing
        self._on_seek = on_seek
        self._clock = clock
        self.task: PollingTask[PlayheadSample] = PollingTask(
            interval,
            observe=self._sample,
            on_change=lambda _old, new: self._on_seek(new.position),
            changed=self._jumped,
            name="seek-detector",
        )

    def _sample(self) -> PlayheadSample:
        return PlayheadSample(self._clock(), self._read_position(), self._is_playing())

    def _jumped(self, old: PlayheadSample, new: PlayheadSample) -> bool:
        expected = old.position + (new.at - old.at if old.playing else 0.0)
        return abs(new.position - expected) > self.threshold

    def reset(self) -> None:
        """丢弃当前基线。由远端指令触发的 seek 之后调用，避免被当作本地 seek 回传。"""
        self.task.reset()

    def poll_once(self) -> bool:
        return self.task.poll_once()

    def start(self) -> None:
        self.task.start()

    def stop(self) -> None:
        self.task.stop()

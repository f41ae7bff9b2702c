"""可注入时钟

服务层的时间戳与轮询等待都经由 Clock 获取，
测试中使用 ManualClock 推进时间，不需要真实 sleep。
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """时钟接口"""

    def now(self) -> datetime:
        """当前 UTC 时间"""
        ...

    async def sleep(self, seconds: float) -> None:
        """等待指定秒数"""
        ...


class SystemClock:
    """真实时钟"""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class ManualClock:
    """手动推进的时钟

    sleep() 立即推进内部时间并让出一次事件循环，
    sleeps 记录每次等待时长，便于断言轮询节奏。
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 1, tzinfo=UTC)
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        """推进时间并返回推进后的时刻"""
        self._now = self._now + timedelta(seconds=seconds)
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)

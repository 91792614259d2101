"""
变更通知模块

提交后的每次写入都发布一个 {entity_kind, entity_id} 信封。
订阅方只把事件当作“重新查询”的信号：不保证顺序，也不保证只投递一次。
"""
import asyncio
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import AsyncIterator, Dict, Iterable, Optional, Set

from loguru import logger


class EntityKind(str, Enum):
    """变更实体类型"""
    APPLICATION = "application"
    ANALYSIS = "analysis"
    EVALUATION = "evaluation"
    REVIEW = "review"
    INTERVIEW = "interview"
    DECISION = "decision"
    NOTIFICATION = "notification"
    JOB = "job"


@dataclass(frozen=True)
class ChangeEvent:
    """变更事件信封"""
    entity_kind: EntityKind
    entity_id: str
    emitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["entity_kind"] = self.entity_kind.value
        data["emitted_at"] = self.emitted_at.isoformat()
        return data


class Subscription:
    """单个订阅者的事件队列"""

    def __init__(self, bus: "ChangeBus", kinds: Optional[Set[EntityKind]] = None):
        self._bus = bus
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self.kinds = kinds

    def accepts(self, event: ChangeEvent) -> bool:
        return not self.kinds or event.entity_kind in self.kinds

    def push(self, event: ChangeEvent) -> None:
        self._queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> ChangeEvent:
        """取下一个事件，超时抛 asyncio.TimeoutError"""
        if timeout is None:
            return await self._queue.get()
        return await asyncio.wait_for(self._queue.get(), timeout)

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._bus.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self

    async def __anext__(self) -> ChangeEvent:
        return await self._queue.get()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ChangeBus:
    """
    进程内发布/订阅总线

    发布方在事务提交之后调用 publish，订阅方通过 subscribe 获取事件队列。
    """

    def __init__(self):
        self._subscribers: Dict[int, Subscription] = {}
        self._lock = Lock()

    def subscribe(self, kinds: Optional[Iterable[EntityKind]] = None) -> Subscription:
        """注册订阅者，kinds 为空表示接收全部类型"""
        sub = Subscription(self, set(kinds) if kinds else None)
        with self._lock:
            self._subscribers[id(sub)] = sub
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        with self._lock:
            self._subscribers.pop(id(sub), None)

    def publish(self, event: ChangeEvent) -> None:
        """广播事件到所有匹配的订阅者"""
        with self._lock:
            targets = [s for s in self._subscribers.values() if s.accepts(event)]
        for sub in targets:
            sub.push(event)
        logger.debug(
            "Change published: {}:{} -> {} subscriber(s)",
            event.entity_kind.value, event.entity_id, len(targets),
        )

    def emit(self, entity_kind: EntityKind, entity_id: str) -> None:
        """便捷方法：构造并发布事件"""
        self.publish(ChangeEvent(entity_kind=entity_kind, entity_id=entity_id))

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


# 全局单例
change_bus = ChangeBus()


def get_change_bus() -> ChangeBus:
    """获取变更总线单例"""
    return change_bus

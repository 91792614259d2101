"""
变更事件流 API 路由（Server-Sent Events）

每条事件只携带 {entity_kind, entity_id}，客户端收到后重新查询对应资源
"""
import asyncio
import json
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from app.core.events import ChangeBus, EntityKind, get_change_bus
from app.core.exceptions import BadRequestException

router = APIRouter()

HEARTBEAT_SECONDS = 15.0


def parse_kinds(kinds: Optional[str]) -> Optional[List[EntityKind]]:
    """解析逗号分隔的实体类型，空表示全部"""
    if not kinds:
        return None
    try:
        return [EntityKind(k.strip()) for k in kinds.split(",") if k.strip()]
    except ValueError as exc:
        raise BadRequestException(f"未知的实体类型: {kinds}") from exc


def format_sse(data: dict) -> str:
    return f"event: change\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def stream_changes(
    request: Request,
    bus: ChangeBus,
    kinds: Optional[List[EntityKind]] = None,
    heartbeat: float = HEARTBEAT_SECONDS,
) -> AsyncIterator[str]:
    """
    把订阅队列转成 SSE 文本；空闲时发送注释行保持连接

    订阅在生成器开始迭代时才注册，响应未被消费时不会留下订阅者。
    注册后先发送一行注释，客户端收到它之后的变更都不会丢
    """
    with bus.subscribe(kinds) as subscription:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                event = await subscription.get(timeout=heartbeat)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield format_sse(event.to_dict())


@router.get("", summary="订阅变更事件流")
async def subscribe_changes(
    request: Request,
    kinds: Optional[str] = Query(None, description="实体类型，逗号分隔，例如 application,analysis"),
    bus: ChangeBus = Depends(get_change_bus),
):
    return StreamingResponse(
        stream_changes(request, bus, parse_kinds(kinds)),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

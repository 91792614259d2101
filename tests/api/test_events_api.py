"""
变更事件流测试

直接驱动 SSE 生成器，避免在测试中保持长连接
"""
import json

import pytest

from app.api.v1.events import format_sse, parse_kinds, stream_changes, subscribe_changes
from app.core.events import ChangeBus, EntityKind
from app.core.exceptions import BadRequestException


class FakeRequest:
    def __init__(self, polls_before_disconnect: int):
        self.remaining = polls_before_disconnect

    async def is_disconnected(self) -> bool:
        self.remaining -= 1
        return self.remaining < 0


def test_parse_kinds():
    assert parse_kinds(None) is None
    assert parse_kinds("application, analysis") == [EntityKind.APPLICATION, EntityKind.ANALYSIS]
    with pytest.raises(BadRequestException):
        parse_kinds("salary")


def test_format_sse():
    text = format_sse({"entity_kind": "job", "entity_id": "j-1"})
    assert text.startswith("event: change\ndata: ")
    assert text.endswith("\n\n")


@pytest.mark.asyncio
async def test_stream_yields_events_then_heartbeat():
    bus = ChangeBus()
    stream = stream_changes(FakeRequest(2), bus, [EntityKind.APPLICATION], heartbeat=0.01)

    assert await stream.__anext__() == ": connected\n\n"
    assert bus.subscriber_count == 1
    bus.emit(EntityKind.JOB, "job-1")
    bus.emit(EntityKind.APPLICATION, "app-1")

    chunks = [chunk async for chunk in stream]

    assert len(chunks) == 2
    payload = json.loads(chunks[0].split("data: ", 1)[1])
    assert payload["entity_kind"] == "application"
    assert payload["entity_id"] == "app-1"
    assert chunks[1] == ": keep-alive\n\n"
    assert bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_route_subscribes_only_when_streamed():
    bus = ChangeBus()
    response = await subscribe_changes(FakeRequest(0), kinds="application", bus=bus)

    # 响应还没被消费，不应有订阅者
    assert bus.subscriber_count == 0

    chunks = [chunk async for chunk in response.body_iterator]
    assert chunks == [": connected\n\n"]
    assert bus.subscriber_count == 0


@pytest.mark.asyncio
async def test_unknown_kind_returns_400(client):
    response = await client.get("/api/v1/events", params={"kinds": "salary"})
    assert response.status_code == 400

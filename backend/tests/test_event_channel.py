import json

import pytest

from flowsmith.models.generation import ResultEvent
from flowsmith.services.event_channel import EventChannel, RunContext, StreamMessage


async def _drain(channel: EventChannel) -> list[StreamMessage]:
    return [message async for message in channel.messages()]


def test_stream_message_encoding():
    message = StreamMessage(event="progress", id=3, data='{"step": "parse_nodes"}')

    assert message.encode() == 'event: progress\nid: 3\ndata: {"step": "parse_nodes"}\n\n'


@pytest.mark.asyncio
async def test_ids_increase_and_close_ends_stream():
    channel = EventChannel()

    await channel.send("progress", {"n": 1})
    await channel.send("progress", {"n": 2})
    await channel.close()

    messages = await _drain(channel)
    assert [m.id for m in messages] == [1, 2]
    assert [json.loads(m.data) for m in messages] == [{"n": 1}, {"n": 2}]


@pytest.mark.asyncio
async def test_sends_after_close_are_dropped():
    channel = EventChannel()
    await channel.close()

    assert await channel.send("progress", {"n": 1}) is False
    await channel.close()
    assert await _drain(channel) == []


@pytest.mark.asyncio
async def test_abort_suppresses_later_sends():
    channel = EventChannel()
    await channel.send("progress", {"n": 1})

    channel.abort()

    assert channel.closed
    assert await channel.send("progress", {"n": 2}) is False
    assert [m.id for m in await _drain(channel)] == [1]


@pytest.mark.asyncio
async def test_run_context_emits_single_terminal_event():
    ctx = RunContext()

    await ctx.emit_progress("extract_keywords", "started", "Extracting keywords...")
    await ctx.emit_error("Failed to extract keywords", "boom")
    await ctx.emit_error("second error", None)
    await ctx.emit_result(ResultEvent(workflow={}, keywords=[], search_results=[], nodes=[]))
    await ctx.emit_progress("search_nodes", "started")
    await ctx.close()

    messages = await _drain(ctx.channel)
    assert [m.event for m in messages] == ["progress", "error"]
    assert json.loads(messages[1].data) == {"error": "Failed to extract keywords", "details": "boom"}


@pytest.mark.asyncio
async def test_result_payload_uses_wire_names():
    ctx = RunContext()

    await ctx.emit_result(
        ResultEvent(workflow={"nodes": []}, keywords=["slack"], search_results=[], nodes=[])
    )

    messages = await _drain(ctx.channel)
    assert json.loads(messages[0].data) == {
        "workflow": {"nodes": []},
        "keywords": ["slack"],
        "searchResults": [],
        "nodes": [],
    }


@pytest.mark.asyncio
async def test_progress_payload_omits_missing_fields():
    ctx = RunContext()

    await ctx.emit_progress("parse_nodes", "completed")
    await ctx.close()

    messages = await _drain(ctx.channel)
    assert json.loads(messages[0].data) == {"step": "parse_nodes", "status": "completed"}

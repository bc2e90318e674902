"""
Server-Sent Events channel for one generation run.

The pipeline writes into an EventChannel; the HTTP response drains it. The
channel is decoupled from the response through an asyncio.Queue, so the run
keeps going at its own pace while the client reads.

Once a channel is closed, either because the run finished or because the client
went away, every further send is dropped silently.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Literal

from flowsmith.models.generation import (
    ErrorEvent,
    ProgressEvent,
    ResultEvent,
    StepName,
    StepStatus,
)

logger = logging.getLogger(__name__)

EventName = Literal["progress", "result", "error"]


@dataclass(frozen=True)
class StreamMessage:
    event: EventName
    id: int
    data: str

    def encode(self) -> str:
        return f"event: {self.event}\nid: {self.id}\ndata: {self.data}\n\n"


class EventChannel:
    def __init__(self):
        self._queue: asyncio.Queue[StreamMessage | None] = asyncio.Queue()
        self._closed = False
        self._last_id = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: EventName, payload: Any) -> bool:
        """Queue one message. Returns False if the channel is already closed."""
        if self._closed:
            return False
        self._last_id += 1
        message = StreamMessage(
            event=event,
            id=self._last_id,
            data=json.dumps(payload, default=str),
        )
        await self._queue.put(message)
        return True

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(None)

    def abort(self) -> None:
        """Called when the consumer disconnects."""
        if self._closed:
            return
        logger.info("Stream aborted by client.")
        self._closed = True
        self._queue.put_nowait(None)

    async def messages(self) -> AsyncIterator[StreamMessage]:
        while True:
            message = await self._queue.get()
            if message is None:
                return
            yield message


@dataclass
class RunContext:
    """
    Request-scoped state for one pipeline run.

    Guarantees at most one terminal event (result or error) and nothing after
    it. The channel is closed by whichever terminal path runs first.
    """

    channel: EventChannel = field(default_factory=EventChannel)
    terminated: bool = False

    @property
    def closed(self) -> bool:
        return self.channel.closed

    async def emit_progress(
        self,
        step: StepName,
        status: StepStatus,
        message: str | None = None,
        data: Any = None,
    ) -> bool:
        if self.terminated:
            return False
        event = ProgressEvent(step=step, status=status, message=message, data=data)
        return await self.channel.send(
            "progress", event.model_dump(mode="json", exclude_none=True)
        )

    async def emit_result(self, result: ResultEvent) -> None:
        if self.terminated:
            return
        self.terminated = True
        await self.channel.send("result", result.model_dump(mode="json", by_alias=True))
        await self.channel.close()

    async def emit_error(self, error: str, details: Any = None) -> None:
        if self.terminated:
            return
        self.terminated = True
        logger.error("Workflow generation error: %s (%s)", error, details)
        event = ErrorEvent(error=error, details=details)
        await self.channel.send("error", event.model_dump(mode="json", exclude_none=True))
        await self.channel.close()

    def abort(self) -> None:
        self.channel.abort()

    async def close(self) -> None:
        await self.channel.close()

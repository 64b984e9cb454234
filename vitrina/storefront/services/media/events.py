"""
Event channel between upload workers and the progress aggregator.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Optional

EVENT_PROGRESS = "progress"
EVENT_TERMINAL = "terminal"


@dataclass(frozen=True)
class UploadEvent:
    task_id: str
    kind: str
    progress_percent: int
    status: str

    @property
    def is_terminal(self) -> bool:
        return self.kind == EVENT_TERMINAL


class UploadEventChannel:
    """
    Unbounded FIFO of UploadEvents.

    `publish` never blocks, so workers can call it from progress callbacks.
    Must be used from the event loop thread.
    """

    _CLOSED = object()

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: UploadEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def get(self) -> Optional[UploadEvent]:
        """Next event, or None once the channel is closed and drained."""
        item = await self._queue.get()
        if item is self._CLOSED:
            # оставляем маркер для других читателей
            self._queue.put_nowait(self._CLOSED)
            return None
        return item

    def __aiter__(self) -> AsyncIterator[UploadEvent]:
        return self._iterate()

    async def _iterate(self):
        while True:
            event = await self.get()
            if event is None:
                return
            yield event

"""
Submission-level view over the task registry: counts, percentage and the
"everything is terminal" gate.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .events import UploadEvent, UploadEventChannel
from .registry import TaskRegistry
from .upload_task import UploadStatus, UploadTask

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadCounts:
    succeeded: int
    failed: int
    total: int

    @property
    def settled(self) -> int:
        return self.succeeded + self.failed


@dataclass(frozen=True)
class UploadSnapshot:
    """What a notification sink needs to render upload progress."""

    counts: UploadCounts
    percent: int
    complete: bool
    last_event: Optional[UploadEvent] = None


def is_complete(tasks: Iterable[UploadTask]) -> bool:
    """True iff no task is pending or uploading (vacuously true when empty)."""
    return all(task.is_terminal for task in tasks)


def counts(tasks: Iterable[UploadTask]) -> UploadCounts:
    tasks = list(tasks)
    succeeded = sum(1 for task in tasks if task.status == UploadStatus.SUCCESS)
    failed = sum(1 for task in tasks if task.status == UploadStatus.ERROR)
    return UploadCounts(succeeded=succeeded, failed=failed, total=len(tasks))


def overall_percent(tasks: Iterable[UploadTask]) -> int:
    """Mean progress, counting failed tasks as finished."""
    tasks = list(tasks)
    if not tasks:
        return 100
    total = sum(100 if task.status == UploadStatus.ERROR else task.progress_percent for task in tasks)
    return round(total / len(tasks))


class ProgressAggregator:
    """
    Recomputes readiness from the registry on demand; nothing is cached.

    `listen()` consumes the worker event channel, forwards snapshots to the
    optional notifier and wakes anyone blocked in `wait_until_complete()`.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        channel: Optional[UploadEventChannel] = None,
        notifier: Optional[Callable[[UploadSnapshot], None]] = None,
    ):
        self.registry = registry
        self.channel = channel
        self.notifier = notifier
        self._changed = asyncio.Event()

    def is_complete(self) -> bool:
        return is_complete(self.registry.all())

    def counts(self) -> UploadCounts:
        return counts(self.registry.all())

    def snapshot(self, last_event: Optional[UploadEvent] = None) -> UploadSnapshot:
        tasks = self.registry.all()
        return UploadSnapshot(
            counts=counts(tasks),
            percent=overall_percent(tasks),
            complete=is_complete(tasks),
            last_event=last_event,
        )

    def handle(self, event: UploadEvent) -> UploadSnapshot:
        snapshot = self.snapshot(event)
        if self.notifier is not None:
            try:
                self.notifier(snapshot)
            except Exception:
                # сбой отображения не должен ломать загрузку
                logger.exception("Upload progress notifier failed")
        self._changed.set()
        return snapshot

    async def listen(self) -> None:
        if self.channel is None:
            return
        async for event in self.channel:
            self.handle(event)

    async def wait_until_complete(self, poll_interval: float = 0.05) -> UploadCounts:
        """Await until every tracked task is terminal, without blocking the loop."""
        while not self.is_complete():
            self._changed.clear()
            try:
                await asyncio.wait_for(self._changed.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass
        return self.counts()

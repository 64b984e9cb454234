"""
Upload worker: drives one UploadTask from pending to a terminal state.
"""
from __future__ import annotations

import logging
from typing import Optional

from asgiref.sync import sync_to_async

from .blob_store import BlobStore, build_storage_key
from .constants import KIND_VIDEO
from .events import EVENT_PROGRESS, EVENT_TERMINAL, UploadEvent, UploadEventChannel
from .exceptions import TransferFailed
from .optimizer import AssetOptimizer
from .registry import TaskRegistry
from .upload_task import UploadStatus, UploadTask

logger = logging.getLogger(__name__)


class UploadWorker:
    """
    Runs `optimize -> key -> transfer` for a task.

    Many `run()` coroutines execute concurrently on one event loop; each one
    writes only to its own task. Any error after the task started ends up on
    the task as `error` (a TransferFailed message); it is never raised to the
    caller.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        optimizer: Optional[AssetOptimizer] = None,
        channel: Optional[UploadEventChannel] = None,
        registry: Optional[TaskRegistry] = None,
    ):
        self.blob_store = blob_store
        self.optimizer = optimizer or AssetOptimizer()
        self.channel = channel
        self.registry = registry

    def _publish(self, task: UploadTask, kind: str) -> None:
        if self.channel is not None:
            self.channel.publish(
                UploadEvent(
                    task_id=task.id,
                    kind=kind,
                    progress_percent=task.progress_percent,
                    status=str(task.status),
                )
            )

    async def run(self, task: UploadTask) -> UploadTask:
        # Задачу могли удалить из реестра до того, как воркер стартовал
        if self.registry is not None and task.id not in self.registry:
            logger.debug("Task %s was discarded before it started", task.id)
            return task
        if task.status != UploadStatus.PENDING:
            logger.debug("Task %s is already %s, nothing to do", task.id, task.status)
            return task

        task.start()
        self._publish(task, EVENT_PROGRESS)

        def on_progress(transferred: int, total: int) -> None:
            percent = round(transferred / total * 100) if total else 0
            if task.report_progress(percent):
                self._publish(task, EVENT_PROGRESS)

        # После start() задача обязана дойти до терминального состояния
        try:
            source = task.source_file
            if task.kind != KIND_VIDEO:
                source = await sync_to_async(self.optimizer.optimize, thread_sensitive=False)(source)

            # Ключ по имени загружаемого файла: после перекодирования это <stem>.jpg, под стать JPEG-байтам
            key = build_storage_key(source.name or task.filename, task.kind)
            url = await self.blob_store.put(key, source, on_progress)
        except Exception as exc:
            failure = exc if isinstance(exc, TransferFailed) else TransferFailed(str(exc) or exc.__class__.__name__)
            task.fail(str(failure))
            logger.warning("Upload of %s (%s) failed: %s", task.filename, task.id, task.error_message)
        else:
            task.succeed(url)
            logger.info("Uploaded %s (%s) -> %s", task.filename, task.id, url)

        self._publish(task, EVENT_TERMINAL)
        return task

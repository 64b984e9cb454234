"""
Form/session context for product media.

One `MediaUploadSession` lives as long as the product form. It owns the draft
(and through it the task registry), the worker event channel, the aggregator
and the asyncio tasks of running workers. Both intake paths go through
`TaskRegistry.admit`:

- `pick_files` (multi-file picker / drag and drop): admitted and dispatched
  right away, workers run concurrently;
- `stage_files` (legacy batch input): admitted as deferred tasks and uploaded
  one after another when the form is submitted.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional

from django.core.files import File

from .aggregator import ProgressAggregator, UploadSnapshot
from .blob_store import BlobStore, DjangoStorageBlobStore
from .constants import KIND_VIDEO
from .draft import ProductDraft
from .events import UploadEventChannel
from .exceptions import IllegalTransition
from .optimizer import AssetOptimizer
from .registry import TaskRegistry
from .upload_task import UploadStatus, UploadTask
from .worker import UploadWorker

logger = logging.getLogger(__name__)


class MediaUploadSession:
    def __init__(
        self,
        draft: Optional[ProductDraft] = None,
        blob_store: Optional[BlobStore] = None,
        optimizer: Optional[AssetOptimizer] = None,
        notifier: Optional[Callable[[UploadSnapshot], None]] = None,
    ):
        self.draft = draft or ProductDraft()
        self.blob_store = blob_store or DjangoStorageBlobStore()
        self.channel = UploadEventChannel()
        self.aggregator = ProgressAggregator(self.registry, self.channel, notifier)
        self.worker = UploadWorker(self.blob_store, optimizer, self.channel, self.registry)
        # видео не входит в лимит изображений, поэтому без реестра
        self.video_worker = UploadWorker(self.blob_store, optimizer, self.channel)
        self.video_task: Optional[UploadTask] = None
        self._running: Dict[str, asyncio.Task] = {}
        self._listener: Optional[asyncio.Task] = None

    @property
    def registry(self) -> TaskRegistry:
        return self.draft.registry

    @property
    def existing_count(self) -> int:
        return len(self.draft.existing_image_urls)

    # --- intake adapters ---

    def pick_files(self, files: Iterable[File]) -> List[UploadTask]:
        """Admit files and start uploading them immediately. Needs a running loop."""
        tasks = self.registry.admit(files, self.existing_count)
        for task in tasks:
            self._dispatch(task)
        logger.info("Picked %d file(s) for immediate upload", len(tasks))
        return tasks

    def stage_files(self, files: Iterable[File]) -> List[UploadTask]:
        """Admit files now, upload them when the form is submitted."""
        tasks = self.registry.admit(files, self.existing_count, deferred=True)
        logger.info("Staged %d file(s) for upload on submit", len(tasks))
        return tasks

    def remove(self, task_id: str) -> UploadTask:
        """
        Discard a preview. A pending task never starts uploading after this;
        an uploading one raises TaskInFlight.
        """
        return self.registry.remove(task_id)

    def retry(self, task_id: str) -> UploadTask:
        """Replace a failed task with a fresh one for the same file."""
        task = self.registry.get(task_id)
        if task is None:
            raise KeyError(task_id)
        if task.status != UploadStatus.ERROR:
            raise IllegalTransition(task_id, task.status, UploadStatus.PENDING)

        self.registry.remove(task_id)
        [fresh] = self.registry.admit([task.source_file], self.existing_count)
        logger.info("Retrying %s as %s", task_id, fresh.id)
        self._dispatch(fresh)
        return fresh

    # --- execution ---

    def _ensure_listener(self) -> None:
        if self._listener is None or self._listener.done():
            self._listener = asyncio.get_running_loop().create_task(self.aggregator.listen())

    def _dispatch(self, task: UploadTask) -> asyncio.Task:
        self._ensure_listener()
        running = asyncio.get_running_loop().create_task(self.worker.run(task))
        self._running[task.id] = running
        running.add_done_callback(lambda done: self._forget(task.id, done))
        return running

    def _forget(self, task_id: str, running: asyncio.Task) -> None:
        self._running.pop(task_id, None)
        if not running.cancelled() and running.exception() is not None:
            logger.error("Worker for %s crashed", task_id, exc_info=running.exception())

    async def run_deferred(self) -> List[UploadTask]:
        """Second wave: upload staged files sequentially."""
        self._ensure_listener()
        finished = []
        for task in self.registry.pending_deferred():
            finished.append(await self.worker.run(task))
        return finished

    def prepare_video(self) -> Optional[UploadTask]:
        """
        Create the video task for this submission, if a video file is set.

        A task that already succeeded for the same file is kept, so a resubmit
        after a failed save does not upload the video again.
        """
        video_file = self.draft.video_source.file
        if video_file is None:
            self.video_task = None
        elif (
            self.video_task is None
            or self.video_task.source_file is not video_file
            or self.video_task.status == UploadStatus.ERROR
        ):
            self.video_task = UploadTask(source_file=video_file, kind=KIND_VIDEO)
        return self.video_task

    async def upload_video(self) -> Optional[UploadTask]:
        task = self.prepare_video()
        if task is None:
            return None
        self._ensure_listener()
        return await self.video_worker.run(task)

    async def wait(self, poll_interval: float = 0.05):
        """Await every tracked image task reaching a terminal state."""
        return await self.aggregator.wait_until_complete(poll_interval)

    def snapshot(self) -> UploadSnapshot:
        return self.aggregator.snapshot()

    # --- teardown ---

    async def drain(self) -> None:
        """Let running workers finish; there is no mid-transfer cancellation."""
        if self._running:
            await asyncio.gather(*list(self._running.values()), return_exceptions=True)

    async def finish(self) -> None:
        """Submission completed: forget the tracked tasks."""
        await self.drain()
        self.registry.clear()
        self.video_task = None

    async def discard(self) -> None:
        """The form is closed: wait for in-flight workers, then drop everything."""
        await self.finish()
        self.channel.close()
        if self._listener is not None:
            await self._listener
            self._listener = None

    async def __aenter__(self) -> "MediaUploadSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.discard()

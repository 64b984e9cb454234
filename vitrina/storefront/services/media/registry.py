"""
Task registry for one product form session.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from django.core.files import File

from .constants import KIND_IMAGE, MAX_IMAGES_PER_PRODUCT
from .exceptions import QuotaExceeded, TaskInFlight
from .upload_task import UploadStatus, UploadTask, generate_task_id

logger = logging.getLogger(__name__)


class TaskRegistry:
    """
    Ordered id -> UploadTask mapping with the image quota check.

    Intake normally happens on the event loop thread, but every mutation goes
    through `_lock` so `admit` stays atomic if that ever changes.
    """

    def __init__(self, limit: int = MAX_IMAGES_PER_PRODUCT):
        self.limit = limit
        self._tasks: Dict[str, UploadTask] = {}
        self._lock = threading.Lock()

    def admit(
        self,
        files: Iterable[File],
        existing_count: int,
        *,
        deferred: bool = False,
        kind: str = KIND_IMAGE,
    ) -> List[UploadTask]:
        """
        Create one pending task per file, or none at all.

        Raises QuotaExceeded when existing_count + current tasks + len(files)
        would exceed the limit; the registry is left untouched in that case.
        """
        files = list(files)
        with self._lock:
            requested = existing_count + len(self._tasks) + len(files)
            if requested > self.limit:
                logger.info(
                    "Rejected intake of %d file(s): %d existing + %d tracked exceeds %d",
                    len(files), existing_count, len(self._tasks), self.limit,
                )
                raise QuotaExceeded(requested, self.limit)

            admitted = []
            for uploaded in files:
                task = UploadTask(source_file=uploaded, kind=kind, deferred=deferred)
                # Коллизия id в пределах сессии практически невозможна, но проверяем
                while task.id in self._tasks:
                    task.id = generate_task_id(kind)
                self._tasks[task.id] = task
                admitted.append(task)

        logger.debug("Admitted %d task(s): %s", len(admitted), [t.id for t in admitted])
        return admitted

    def remove(self, task_id: str) -> UploadTask:
        with self._lock:
            task = self._tasks[task_id]
            if task.status == UploadStatus.UPLOADING:
                raise TaskInFlight(f"Task {task_id} is uploading and cannot be removed")
            del self._tasks[task_id]
        logger.debug("Removed task %s (%s)", task_id, task.status)
        return task

    def get(self, task_id: str) -> Optional[UploadTask]:
        return self._tasks.get(task_id)

    def all(self) -> List[UploadTask]:
        """Snapshot in admission order."""
        with self._lock:
            return list(self._tasks.values())

    def pending_deferred(self) -> List[UploadTask]:
        return [
            task for task in self.all()
            if task.deferred and task.status == UploadStatus.PENDING
        ]

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()

    def __contains__(self, task_id) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

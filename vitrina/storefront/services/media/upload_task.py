"""
Per-file upload state.

A task moves pending -> uploading -> success | error and is frozen once it
reaches a terminal state.
"""
from __future__ import annotations

import logging
import string
import time
from dataclasses import dataclass, field
from typing import Optional

from django.core.files import File
from django.db import models
from django.utils.crypto import get_random_string

from .constants import KIND_IMAGE
from .exceptions import IllegalTransition

logger = logging.getLogger(__name__)

TASK_ID_ALPHABET = string.ascii_lowercase + string.digits


class UploadStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    UPLOADING = 'uploading', 'Uploading'
    SUCCESS = 'success', 'Success'
    ERROR = 'error', 'Error'


TERMINAL_STATUSES = frozenset({UploadStatus.SUCCESS, UploadStatus.ERROR})


def generate_task_id(kind: str = KIND_IMAGE) -> str:
    """`image-1700000000000-k3j9x0a`: millisecond timestamp plus a random suffix."""
    millis = int(time.time() * 1000)
    return f"{kind}-{millis}-{get_random_string(7, allowed_chars=TASK_ID_ALPHABET)}"


@dataclass
class UploadTask:
    source_file: File
    id: str = ""
    kind: str = KIND_IMAGE
    status: str = UploadStatus.PENDING
    progress_percent: int = 0
    result_url: Optional[str] = None
    error_message: Optional[str] = None
    # Admitted through the batch path: uploaded only when the form is submitted.
    deferred: bool = False
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.id:
            self.id = generate_task_id(self.kind)

    @property
    def filename(self) -> str:
        return getattr(self.source_file, "name", "") or self.id

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _move(self, target: str, allowed_from: str) -> None:
        if self.status != allowed_from:
            raise IllegalTransition(self.id, self.status, target)
        logger.debug("Upload task %s: %s -> %s", self.id, self.status, target)
        self.status = target

    def start(self) -> None:
        self._move(UploadStatus.UPLOADING, UploadStatus.PENDING)
        self.deferred = False

    def report_progress(self, percent: int) -> bool:
        """
        Record a progress tick. Returns True when the visible value changed.

        Ticks outside `uploading` and ticks that would move the bar backwards
        are dropped, so observers only ever see a non-decreasing value.
        """
        if self.status != UploadStatus.UPLOADING:
            return False
        # 100 is reserved for success
        percent = max(0, min(int(percent), 99))
        if percent <= self.progress_percent:
            return False
        self.progress_percent = percent
        return True

    def succeed(self, url: str) -> None:
        self._move(UploadStatus.SUCCESS, UploadStatus.UPLOADING)
        self.progress_percent = 100
        self.result_url = url

    def fail(self, message: str) -> None:
        self._move(UploadStatus.ERROR, UploadStatus.UPLOADING)
        self.error_message = message or "Upload failed"

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "filename": self.filename,
            "status": str(self.status),
            "progress": self.progress_percent,
            "url": self.result_url,
            "error": self.error_message,
        }

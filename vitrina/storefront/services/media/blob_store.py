"""
Blob store boundary: `put(key, file, on_progress) -> url`.

`DjangoStorageBlobStore` writes through any Django storage backend. The
backend call runs in a worker thread; progress is handed back to the event
loop so task state is only ever mutated on the loop thread.
"""
from __future__ import annotations

import asyncio
import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional

from asgiref.sync import sync_to_async
from django.conf import settings
from django.core.files import File
from django.core.files.storage import Storage, default_storage

from .constants import IMAGE_KEY_PREFIX, KIND_VIDEO, VIDEO_KEY_PREFIX
from .exceptions import TransferFailed

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9.]")


def sanitize_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9.] with '_'."""
    return _UNSAFE_FILENAME_CHARS.sub("_", filename or "")


def build_storage_key(filename: str, kind: str, now: Optional[float] = None) -> str:
    """`products/{unixMillis}_{name}` for images, `products/videos/...` for video."""
    millis = int((time.time() if now is None else now) * 1000)
    prefix = VIDEO_KEY_PREFIX if kind == KIND_VIDEO else IMAGE_KEY_PREFIX
    # в ключе берём только базовое имя, без каталогов клиента
    basename = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    return f"{prefix}/{millis}_{sanitize_filename(basename) or 'file'}"


class BlobStore(ABC):
    @abstractmethod
    async def put(self, key: str, file: File, on_progress: Optional[ProgressCallback] = None) -> str:
        """Store `file` under `key` and return its durable URL."""
        raise NotImplementedError


class ProgressFile(File):
    """
    File wrapper that reports cumulative bytes as the storage reads chunks.
    """

    def __init__(self, file: File, report: ProgressCallback, chunk_size: int):
        super().__init__(file, name=file.name)
        self._source = file
        self._report = report
        self._total = file.size or 0
        self.DEFAULT_CHUNK_SIZE = chunk_size

    @property
    def size(self):
        return self._total

    def chunks(self, chunk_size=None):
        transferred = 0
        for chunk in self._source.chunks(chunk_size or self.DEFAULT_CHUNK_SIZE):
            transferred += len(chunk)
            yield chunk
            self._report(transferred, self._total)


class DjangoStorageBlobStore(BlobStore):
    def __init__(self, storage: Optional[Storage] = None, chunk_size: Optional[int] = None):
        self.storage = storage or default_storage
        self.chunk_size = chunk_size or getattr(settings, "PRODUCT_UPLOAD_CHUNK_SIZE", 256 * 1024)

    async def put(self, key: str, file: File, on_progress: Optional[ProgressCallback] = None) -> str:
        loop = asyncio.get_running_loop()

        def report(transferred, total):
            if on_progress is not None:
                loop.call_soon_threadsafe(on_progress, transferred, total)

        try:
            content = ProgressFile(file, report, self.chunk_size)
            name = await sync_to_async(self.storage.save, thread_sensitive=False)(key, content)
            url = await sync_to_async(self.storage.url, thread_sensitive=False)(name)
        except Exception as exc:
            raise TransferFailed(f"{key}: {str(exc) or exc.__class__.__name__}") from exc
        logger.info("Stored %s (%s bytes) as %s", file.name, content.size, name)
        return url

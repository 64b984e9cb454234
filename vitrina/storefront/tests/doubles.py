"""
In-memory stand-ins for the blob store and the record store.
"""
from __future__ import annotations

import asyncio
import copy
import io
import random

from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from storefront.services.media import BlobStore, RecordStore

PNG_PIXEL = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\nIDATx\x9cc\x00\x01"
    b"\x00\x00\x05\x00\x01\r\n-\xb4\x00\x00\x00\x00IEND\xaeB`\x82"
)


def png_upload(name="photo.png"):
    return SimpleUploadedFile(name, PNG_PIXEL, content_type="image/png")


def noisy_image_bytes(size=(1600, 1200), mode="RGB", fmt="PNG", seed=12345):
    """Random-noise image: compresses badly, so it is reliably large."""
    width, height = size
    channels = len(mode)
    img = Image.frombytes(mode, size, random.Random(seed).randbytes(width * height * channels))
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class InMemoryBlobStore(BlobStore):
    """
    Keeps uploaded bytes in a dict. Keys containing any of `fail_on` raise a
    ConnectionError after the progress ticks; `gate` (an asyncio.Event) holds
    every transfer until it is set.
    """

    def __init__(self, fail_on=(), ticks=4, base_url="https://cdn.test/", gate=None):
        self.objects = {}
        self.keys = []
        self.fail_on = tuple(fail_on)
        self.ticks = ticks
        self.base_url = base_url
        self.gate = gate

    async def put(self, key, file, on_progress=None):
        self.keys.append(key)
        if self.gate is not None:
            await self.gate.wait()
        data = b"".join(file.chunks())
        total = len(data)
        for tick in range(1, self.ticks + 1):
            if on_progress is not None:
                on_progress(total * tick // self.ticks, total)
            await asyncio.sleep(0)
        if any(marker in key for marker in self.fail_on):
            raise ConnectionError(f"simulated outage for {key}")
        self.objects[key] = data
        return self.base_url + key


class InMemoryRecordStore(RecordStore):
    """
    Dict-backed record store. `fail_create` breaks create(); `fail_updates`
    holds 1-based ordinals of update() calls that should raise.
    """

    def __init__(self, records=None, fail_create=False, fail_updates=()):
        self.records = copy.deepcopy(records or {})
        self.writes = []
        self.fail_create = fail_create
        self.fail_updates = set(fail_updates)
        self._updates = 0
        self._next_id = max(self.records, default=0) + 1

    async def create(self, fields):
        if self.fail_create:
            raise ConnectionError("record store is down")
        record_id = self._next_id
        self._next_id += 1
        self.records[record_id] = dict(fields)
        self.writes.append(("create", record_id, dict(fields)))
        return record_id

    async def update(self, record_id, fields):
        self._updates += 1
        if self._updates in self.fail_updates:
            raise ConnectionError(f"update #{self._updates} rejected")
        if record_id not in self.records:
            raise KeyError(record_id)
        self.records[record_id].update(fields)
        self.writes.append(("update", record_id, dict(fields)))

    async def load(self, record_id):
        record = self.records.get(record_id)
        if record is None:
            return None
        return {"id": record_id, **copy.deepcopy(record)}

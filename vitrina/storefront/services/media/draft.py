"""
In-memory state of one product form: non-asset fields, persisted image URLs,
specifications, the video source and the task registry for new files.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.core.files import File
from django.core.validators import URLValidator

from .constants import MAX_VIDEO_BYTES
from .exceptions import QuotaExceeded, VideoTooLarge
from .registry import TaskRegistry

SPECIFICATION_KEY_TEMPLATE = "Характеристика {number}"

_url_validator = URLValidator(schemes=["http", "https"])


@dataclass
class VideoSource:
    """Either an external URL or a file to upload, never both."""

    url: Optional[str] = None
    file: Optional[File] = None

    @property
    def is_empty(self) -> bool:
        return not self.url and self.file is None


@dataclass
class ProductDraft:
    product_id: Optional[Any] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    existing_image_urls: List[str] = field(default_factory=list)
    specifications: Dict[str, str] = field(default_factory=dict)
    video_source: VideoSource = field(default_factory=VideoSource)
    registry: TaskRegistry = field(default_factory=TaskRegistry)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ProductDraft":
        """Pre-fill a draft for edit mode from a record store document."""
        document = dict(document or {})
        images = document.pop("images", None)
        specifications = document.pop("specifications", None)
        video_url = document.pop("video_url", None)
        product_id = document.pop("id", None)
        document.pop("uploading", None)
        return cls(
            product_id=product_id,
            fields=document,
            existing_image_urls=list(images) if isinstance(images, (list, tuple)) else [],
            specifications=dict(specifications) if isinstance(specifications, dict) else {},
            video_source=VideoSource(url=video_url or None),
        )

    @property
    def is_edit(self) -> bool:
        return self.product_id is not None

    @property
    def image_count(self) -> int:
        return len(self.existing_image_urls) + len(self.registry)

    # --- persisted image URLs ---

    def add_image_url(self, url: str) -> str:
        url = (url or "").strip()
        if not url:
            raise ValidationError("Image URL is empty", code="required")
        _url_validator(url)
        if self.image_count + 1 > self.registry.limit:
            raise QuotaExceeded(self.image_count + 1, self.registry.limit)
        self.existing_image_urls.append(url)
        return url

    def remove_image_url(self, index: int) -> str:
        return self.existing_image_urls.pop(index)

    # --- video ---

    def set_video_url(self, url: Optional[str]) -> None:
        url = (url or "").strip() or None
        if url:
            _url_validator(url)
        self.video_source = VideoSource(url=url)

    def set_video_file(self, file: File) -> None:
        size = file.size or 0
        if size > MAX_VIDEO_BYTES:
            raise VideoTooLarge(size, MAX_VIDEO_BYTES)
        self.video_source = VideoSource(file=file)

    def clear_video(self) -> None:
        self.video_source = VideoSource()

    # --- specifications ---

    def add_specification(self) -> str:
        number = len(self.specifications) + 1
        key = SPECIFICATION_KEY_TEMPLATE.format(number=number)
        while key in self.specifications:
            number += 1
            key = SPECIFICATION_KEY_TEMPLATE.format(number=number)
        self.specifications[key] = ""
        return key

    def rename_specification(self, old_key: str, new_key: str, value: str) -> None:
        new_key = (new_key or "").strip()
        if not new_key:
            return
        self.specifications.pop(old_key, None)
        self.specifications[new_key] = value

    def set_specification(self, key: str, value: str) -> None:
        self.specifications[key] = value

    def remove_specification(self, key: str) -> None:
        self.specifications.pop(key, None)

    # --- persistence payloads ---

    def record_fields(self) -> Dict[str, Any]:
        """Non-asset fields for the optimistic write."""
        return {**self.fields, "specifications": dict(self.specifications)}

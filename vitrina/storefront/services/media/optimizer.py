"""
Оптимизация изображений товара перед отправкой в хранилище.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path

from django.core.files import File
from django.core.files.base import ContentFile
from PIL import Image, ImageOps

from .constants import (
    OPTIMIZE_FORMAT,
    OPTIMIZE_MAX_DIMENSION,
    OPTIMIZE_MIN_QUALITY,
    OPTIMIZE_QUALITY,
    OPTIMIZE_QUALITY_STEP,
    OPTIMIZE_TARGET_BYTES,
    OPTIMIZE_THRESHOLD_BYTES,
)

logger = logging.getLogger(__name__)


class AssetOptimizer:
    """
    Best-effort image re-encoder.

    Files under `threshold` bytes are returned untouched. Larger ones are fitted
    into `max_dimension` on the longer side and saved as JPEG, stepping the
    quality down until the result fits `target_bytes` or the quality floor is
    reached. Any failure returns the original file.
    """

    def __init__(
        self,
        threshold=OPTIMIZE_THRESHOLD_BYTES,
        max_dimension=OPTIMIZE_MAX_DIMENSION,
        quality=OPTIMIZE_QUALITY,
        target_bytes=OPTIMIZE_TARGET_BYTES,
        min_quality=OPTIMIZE_MIN_QUALITY,
    ):
        self.threshold = threshold
        self.max_dimension = max_dimension
        self.quality = quality
        self.target_bytes = target_bytes
        self.min_quality = min_quality

    def optimize(self, file: File) -> File:
        try:
            size = file.size or 0
            if size < self.threshold:
                logger.debug("File %s is already small (%s bytes), skipping optimization", file.name, size)
                return file
            data = self._reencode(file)
        except Exception as exc:
            logger.warning("Image optimization failed for %s: %s", file.name, exc)
            return file
        finally:
            self._rewind(file)

        optimized = ContentFile(data, name=f"{Path(file.name or 'image').stem}.jpg")
        logger.info("Optimized image %s: %s bytes -> %s bytes", file.name, size, optimized.size)
        return optimized

    def _reencode(self, file: File) -> bytes:
        file.seek(0)
        with Image.open(file) as img:
            img = ImageOps.exif_transpose(img)
            img = self._to_rgb(img)
            img.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)

            quality = round(self.quality * 100)
            floor = round(self.min_quality * 100)
            step = round(OPTIMIZE_QUALITY_STEP * 100)
            while True:
                buffer = io.BytesIO()
                img.save(buffer, format=OPTIMIZE_FORMAT, quality=quality, optimize=True)
                data = buffer.getvalue()
                # Целевой размер не гарантируется: останавливаемся на минимальном качестве
                if len(data) <= self.target_bytes or quality - step < floor:
                    return data
                quality -= step

    @staticmethod
    def _rewind(file: File) -> None:
        # не все потоки умеют seek; такие файлы отдаются как есть
        try:
            if not file.closed:
                file.seek(0)
        except (AttributeError, OSError, ValueError):
            logger.debug("Cannot rewind %s", file.name)

    @staticmethod
    def _to_rgb(img):
        # JPEG не поддерживает прозрачность: подкладываем белый фон
        if img.mode in ('RGBA', 'LA', 'P'):
            if img.mode == 'P':
                img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1] if img.mode in ('RGBA', 'LA') else None)
            return background
        if img.mode != 'RGB':
            return img.convert('RGB')
        return img

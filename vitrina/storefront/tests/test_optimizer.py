"""
Tests for the image optimizer (Pillow re-encoding before upload).
"""
import io

from django.core.files import File
from django.core.files.base import ContentFile
from django.test import SimpleTestCase
from PIL import Image

from storefront.services.media import AssetOptimizer
from storefront.services.media.constants import OPTIMIZE_THRESHOLD_BYTES

from .doubles import noisy_image_bytes, png_upload


class AssetOptimizerTests(SimpleTestCase):
    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        cls.large_png = noisy_image_bytes((1600, 1200))
        cls.large_rgba = noisy_image_bytes((1400, 700), mode="RGBA")

    def setUp(self):
        self.optimizer = AssetOptimizer()

    def test_small_file_is_returned_untouched(self):
        upload = png_upload()
        self.assertLess(upload.size, OPTIMIZE_THRESHOLD_BYTES)
        self.assertIs(self.optimizer.optimize(upload), upload)

    def test_large_image_is_bounded_and_reencoded(self):
        source = ContentFile(self.large_png, name="holiday photo.png")
        self.assertGreaterEqual(source.size, OPTIMIZE_THRESHOLD_BYTES)

        result = self.optimizer.optimize(source)

        self.assertIsNot(result, source)
        self.assertEqual(result.name, "holiday photo.jpg")
        self.assertLess(result.size, source.size)
        with Image.open(io.BytesIO(result.read())) as img:
            self.assertEqual(img.format, "JPEG")
            self.assertEqual(img.size, (1200, 900))

    def test_transparent_image_is_flattened(self):
        result = self.optimizer.optimize(ContentFile(self.large_rgba, name="logo.png"))
        with Image.open(io.BytesIO(result.read())) as img:
            self.assertEqual(img.mode, "RGB")
            self.assertEqual(max(img.size), 1200)

    def test_broken_image_falls_back_to_original(self):
        junk = ContentFile(b"not an image" * 50000, name="broken.png")
        junk.read(10)
        with self.assertLogs("storefront.services.media.optimizer", level="WARNING"):
            result = self.optimizer.optimize(junk)
        self.assertIs(result, junk)
        self.assertEqual(junk.tell(), 0)

    def test_quality_steps_down_towards_target(self):
        tight = AssetOptimizer(target_bytes=1)
        loose = AssetOptimizer(target_bytes=10 * 1024 * 1024)
        small = tight.optimize(ContentFile(self.large_png, name="a.png"))
        big = loose.optimize(ContentFile(self.large_png, name="a.png"))
        # недостижимая цель: останавливаемся на минимальном качестве
        self.assertLess(small.size, big.size)

    def test_threshold_is_configurable(self):
        optimizer = AssetOptimizer(threshold=10)
        result = optimizer.optimize(png_upload("dot.png"))
        self.assertEqual(result.name, "dot.jpg")

    def test_file_without_size_is_returned_as_is(self):
        class Pipe:
            def read(self, size=-1):
                return b"abc"

        source = File(Pipe(), name="a.png")
        self.assertIs(self.optimizer.optimize(source), source)

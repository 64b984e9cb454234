"""
Tests for releasing products stuck with the uploading flag.
"""
import importlib.util
from datetime import timedelta
from decimal import Decimal

from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from storefront.models import Product
from storefront.services.media import release_stale_uploads
from storefront.tasks import release_stale_uploads_task


def make_product(name, uploading=True, started_minutes_ago=None, manifest=None):
    started = None
    if started_minutes_ago is not None:
        started = timezone.now() - timedelta(minutes=started_minutes_ago)
    return Product.objects.create(
        name=name,
        price=Decimal("100.00"),
        images=["https://cdn.test/a.jpg"],
        uploading=uploading,
        upload_started_at=started,
        upload_manifest=manifest or [],
    )


class ReleaseStaleUploadsTests(TestCase):
    def test_stale_product_is_released(self):
        stale = make_product("stale", started_minutes_ago=120, manifest=["image-1-aaaaaaa", "video-2-bbbbbbb"])

        with self.assertLogs("storefront.services.media.recovery", level="WARNING") as logs:
            released = release_stale_uploads()

        self.assertEqual(released, 1)
        stale.refresh_from_db()
        self.assertFalse(stale.uploading)
        self.assertEqual(stale.upload_manifest, [])
        self.assertIsNone(stale.upload_started_at)
        self.assertEqual(stale.images, ["https://cdn.test/a.jpg"])
        self.assertIn("image-1-aaaaaaa", logs.output[0])

    def test_recent_and_idle_products_are_untouched(self):
        fresh = make_product("fresh", started_minutes_ago=5)
        idle = make_product("idle", uploading=False)

        self.assertEqual(release_stale_uploads(), 0)

        fresh.refresh_from_db()
        idle.refresh_from_db()
        self.assertTrue(fresh.uploading)
        self.assertFalse(idle.uploading)

    def test_missing_start_time_counts_as_stale(self):
        make_product("legacy")
        self.assertEqual(release_stale_uploads(), 1)
        self.assertFalse(Product.objects.filter(uploading=True).exists())

    def test_explicit_age(self):
        make_product("fresh", started_minutes_ago=5)
        self.assertEqual(release_stale_uploads(timedelta(minutes=1)), 1)

    @override_settings(PRODUCT_UPLOAD_STALE_SECONDS=60)
    def test_age_from_settings(self):
        make_product("fresh", started_minutes_ago=5)
        self.assertEqual(release_stale_uploads(), 1)


class ReleaseStaleUploadsTaskTests(TestCase):
    def test_task_runs_release(self):
        make_product("stale", started_minutes_ago=5)
        result = release_stale_uploads_task.apply(args=(60,))
        self.assertEqual(result.get(), 1)

    def test_task_uses_default_age(self):
        make_product("fresh", started_minutes_ago=5)
        result = release_stale_uploads_task.apply()
        self.assertEqual(result.get(), 0)


class BrokerClientTests(SimpleTestCase):
    def test_redis_client_is_installed_for_default_broker(self):
        # по умолчанию settings.py указывает redis:// брокер
        self.assertIsNotNone(importlib.util.find_spec("redis"))

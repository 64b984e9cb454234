"""
Tests for task admission and the image quota.
"""
from django.test import SimpleTestCase

from storefront.services.media import QuotaExceeded, TaskInFlight, TaskRegistry, UploadStatus

from .doubles import png_upload


def files(count):
    return [png_upload(f"img{i}.png") for i in range(count)]


class AdmitTests(SimpleTestCase):
    def setUp(self):
        self.registry = TaskRegistry()

    def test_admit_creates_pending_tasks_in_order(self):
        batch = files(3)
        tasks = self.registry.admit(batch, existing_count=0)
        self.assertEqual(len(tasks), 3)
        self.assertEqual([t.source_file for t in tasks], batch)
        self.assertTrue(all(t.status == UploadStatus.PENDING for t in tasks))
        self.assertEqual([t.id for t in self.registry.all()], [t.id for t in tasks])

    def test_batch_filling_quota_exactly_is_admitted(self):
        self.registry.admit(files(2), existing_count=4)
        self.assertEqual(len(self.registry), 2)

    def test_over_quota_batch_is_rejected_whole(self):
        self.registry.admit(files(1), existing_count=2)
        before = [t.id for t in self.registry.all()]

        with self.assertRaises(QuotaExceeded) as ctx:
            self.registry.admit(files(4), existing_count=2)

        self.assertEqual(ctx.exception.requested, 7)
        self.assertEqual(ctx.exception.limit, 6)
        self.assertEqual([t.id for t in self.registry.all()], before)

    def test_existing_images_alone_can_exhaust_quota(self):
        with self.assertRaises(QuotaExceeded):
            self.registry.admit(files(1), existing_count=6)
        self.assertEqual(len(self.registry), 0)

    def test_terminal_tasks_still_count(self):
        [task] = self.registry.admit(files(1), existing_count=0)
        task.start()
        task.fail("boom")
        with self.assertRaises(QuotaExceeded):
            self.registry.admit(files(6), existing_count=0)

    def test_custom_limit(self):
        registry = TaskRegistry(limit=2)
        with self.assertRaises(QuotaExceeded):
            registry.admit(files(3), existing_count=0)

    def test_deferred_tasks(self):
        self.registry.admit(files(1), existing_count=0)
        staged = self.registry.admit(files(2), existing_count=0, deferred=True)
        self.assertEqual(self.registry.pending_deferred(), staged)
        staged[0].start()
        self.assertEqual(self.registry.pending_deferred(), staged[1:])


class RemoveTests(SimpleTestCase):
    def setUp(self):
        self.registry = TaskRegistry()
        self.tasks = self.registry.admit(files(3), existing_count=0)

    def test_remove_pending_task(self):
        removed = self.registry.remove(self.tasks[1].id)
        self.assertIs(removed, self.tasks[1])
        self.assertNotIn(self.tasks[1].id, self.registry)
        self.assertEqual(len(self.registry), 2)

    def test_remove_terminal_task(self):
        task = self.tasks[0]
        task.start()
        task.succeed("https://cdn.test/x.png")
        self.registry.remove(task.id)
        self.assertNotIn(task.id, self.registry)

    def test_remove_uploading_task_is_refused(self):
        task = self.tasks[0]
        task.start()
        with self.assertRaises(TaskInFlight):
            self.registry.remove(task.id)
        self.assertIn(task.id, self.registry)

    def test_remove_unknown_task(self):
        with self.assertRaises(KeyError):
            self.registry.remove("image-0-missing")

    def test_removal_frees_quota(self):
        self.registry.remove(self.tasks[0].id)
        self.registry.admit(files(4), existing_count=0)
        self.assertEqual(len(self.registry), 6)

    def test_clear(self):
        self.registry.clear()
        self.assertEqual(self.registry.all(), [])

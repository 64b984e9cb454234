from datetime import timedelta

from django.core.management.base import BaseCommand

from storefront.services.media import release_stale_uploads


class Command(BaseCommand):
    """
    Снимает флаг `uploading` с товаров, чьё сохранение так и не завершилось.
    """

    help = "Release products stuck with the uploading flag"

    def add_arguments(self, parser):
        parser.add_argument(
            '--older-than',
            type=int,
            default=None,
            help='Возраст в секундах (по умолчанию PRODUCT_UPLOAD_STALE_SECONDS)',
        )
        parser.add_argument(
            '--enqueue',
            action='store_true',
            help='Отправить задачу в Celery вместо локального выполнения',
        )

    def handle(self, *args, **options):
        older_than = options['older_than']
        if options['enqueue']:
            from storefront.tasks import release_stale_uploads_task

            release_stale_uploads_task.delay(older_than)
            self.stdout.write(self.style.SUCCESS('Enqueued release_stale_uploads_task.'))
            return

        released = release_stale_uploads(
            timedelta(seconds=older_than) if older_than is not None else None
        )
        self.stdout.write(self.style.SUCCESS(f'Released {released} product(s).'))

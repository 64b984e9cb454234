import os
from contextlib import ExitStack

from asgiref.sync import async_to_sync
from django.core.exceptions import ValidationError
from django.core.files import File
from django.core.management.base import BaseCommand, CommandError

from storefront.forms import ProductForm
from storefront.models import Category
from storefront.services.media import (
    MediaUploadError,
    MediaUploadSession,
    PersistenceCoordinator,
    ProductDraft,
    ProductRecordStore,
    ReconcileFailed,
)


class Command(BaseCommand):
    """
    Создание/редактирование товара с загрузкой изображений и видео с диска.
    Прогресс печатается по мере загрузки, в конце выводятся итоги.
    """

    help = "Create or edit a product and upload its media from local files"

    def add_arguments(self, parser):
        parser.add_argument('--product', type=int, default=None, help='ID товара для редактирования')
        parser.add_argument('--name', type=str, default=None, help='Назва товару (создание)')
        parser.add_argument('--description', type=str, default=None, help='Опис товару (создание)')
        parser.add_argument('--price', type=str, default=None, help='Ціна (создание)')
        parser.add_argument('--original-price', type=str, default=None, help='Стара ціна')
        parser.add_argument('--category', type=str, default=None, help='Slug категории (создание)')
        parser.add_argument('--stock', type=int, default=None)
        parser.add_argument('--featured', action='store_true')
        parser.add_argument(
            '--image',
            action='append',
            default=[],
            help='Путь к изображению; можно указать несколько раз',
        )
        parser.add_argument('--image-url', action='append', default=[], help='Уже размещённое изображение (URL)')
        video = parser.add_mutually_exclusive_group()
        video.add_argument('--video', type=str, default=None, help='Путь к видеофайлу')
        video.add_argument('--video-url', type=str, default=None, help='Внешняя ссылка на видео')
        parser.add_argument(
            '--batch',
            action='store_true',
            help='Загружать изображения последовательно при сохранении (legacy-режим)',
        )

    def handle(self, *args, **options):
        self.verbosity = options.get('verbosity', 1)
        for path in options['image'] + ([options['video']] if options['video'] else []):
            if not os.path.isfile(path):
                raise CommandError(f'File not found: {path}')

        fields = None
        if options['product'] is None:
            fields = self._validated_fields(options)

        with ExitStack() as stack:
            images = [
                File(stack.enter_context(open(path, 'rb')), name=os.path.basename(path))
                for path in options['image']
            ]
            video = None
            if options['video']:
                video = File(stack.enter_context(open(options['video'], 'rb')), name=os.path.basename(options['video']))

            try:
                result = async_to_sync(self._submit)(options, fields, images, video)
            except ReconcileFailed as exc:
                self.stderr.write(self.style.ERROR(f'Product {exc.result.product_id}: final save failed: {exc}'))
                if not exc.flag_cleared:
                    self.stderr.write(self.style.WARNING('Uploading flag is still set; run release_stale_uploads'))
                raise CommandError(str(exc)) from exc
            except (MediaUploadError, ValidationError) as exc:
                raise CommandError(str(exc)) from exc

        self.stdout.write(self.style.SUCCESS(
            f'Product {result.product_id}: uploaded {result.succeeded}, failed {result.failed}, '
            f'images total {len(result.images)}'
        ))
        for task_id in result.failed_task_ids:
            self.stdout.write(self.style.WARNING(f'  failed: {task_id}'))
        if result.video_failed:
            self.stdout.write(self.style.WARNING('  video upload failed, saved without video'))

    def _validated_fields(self, options):
        category = None
        if options['category']:
            category = Category.objects.filter(slug=options['category']).first()
            if category is None:
                raise CommandError(f"Category '{options['category']}' does not exist")
        form = ProductForm(data={
            'name': options['name'] or '',
            'description': options['description'] or '',
            'price': options['price'] or '',
            'original_price': options['original_price'] or '',
            'category': category.pk if category else '',
            'stock': '' if options['stock'] is None else options['stock'],
            'featured': options['featured'],
        })
        if not form.is_valid():
            errors = '; '.join(f'{field}: {" ".join(msgs)}' for field, msgs in form.errors.items())
            raise CommandError(f'Invalid product data: {errors}')
        return form.draft_fields()

    async def _submit(self, options, fields, images, video):
        record_store = ProductRecordStore()
        if options['product'] is not None:
            document = await record_store.load(options['product'])
            if document is None:
                raise CommandError(f"Product {options['product']} does not exist")
            draft = ProductDraft.from_document(document)
        else:
            draft = ProductDraft(fields=fields)

        for url in options['image_url']:
            draft.add_image_url(url)
        if video is not None:
            draft.set_video_file(video)
        elif options['video_url']:
            draft.set_video_url(options['video_url'])

        async with MediaUploadSession(draft, notifier=self._print_snapshot) as session:
            if options['batch']:
                session.stage_files(images)
            else:
                session.pick_files(images)
                await session.wait()
            return await PersistenceCoordinator(record_store).submit(session)

    def _print_snapshot(self, snapshot):
        event = snapshot.last_event
        if event is None or (not event.is_terminal and self.verbosity < 2):
            return
        counts = snapshot.counts
        self.stdout.write(
            f'[{snapshot.percent:3d}%] {event.task_id}: {event.status} '
            f'({counts.succeeded} ok, {counts.failed} failed of {counts.total})'
        )

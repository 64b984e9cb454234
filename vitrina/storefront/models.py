from django.db import models
from django.utils.text import slugify


class Category(models.Model):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(unique=True)
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'name']

    def __str__(self):
        return self.name


class Product(models.Model):
    name = models.CharField(max_length=200, verbose_name='Назва')
    slug = models.SlugField(max_length=220, unique=True, blank=True, allow_unicode=True)
    description = models.TextField(blank=True, verbose_name='Опис')
    category = models.ForeignKey(
        Category,
        on_delete=models.PROTECT,
        related_name='products',
        null=True,
        blank=True,
    )
    price = models.DecimalField(max_digits=10, decimal_places=2, verbose_name='Ціна')
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        blank=True,
        null=True,
        verbose_name='Стара ціна',
    )
    discount_percent = models.PositiveIntegerField(blank=True, null=True)
    featured = models.BooleanField(default=False)
    stock = models.PositiveIntegerField(blank=True, null=True, verbose_name='Залишок')

    # Медиа: упорядоченный список URL изображений и необязательное видео
    images = models.JSONField(blank=True, default=list, verbose_name='Зображення')
    video_url = models.URLField(max_length=500, blank=True, null=True, verbose_name='Відео')
    specifications = models.JSONField(blank=True, default=dict, verbose_name='Характеристики')

    # Состояние загрузки медиа (оптимистичная запись -> сверка)
    uploading = models.BooleanField(default=False, verbose_name='Медіа завантажуються')
    upload_manifest = models.JSONField(blank=True, default=list)
    upload_started_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['uploading', 'upload_started_at'], name='idx_product_uploading'),
            models.Index(fields=['featured'], name='idx_product_featured'),
        ]

    def save(self, *args, **kwargs):
        if not self.slug and self.name:
            self.slug = self._unique_slug()
        super().save(*args, **kwargs)

    def _unique_slug(self):
        base = slugify(self.name, allow_unicode=True)[:200] or 'product'
        candidate = base
        index = 2
        while Product.objects.filter(slug=candidate).exclude(pk=self.pk).exists():
            candidate = f'{base}-{index}'
            index += 1
        return candidate

    def __str__(self):
        return self.name

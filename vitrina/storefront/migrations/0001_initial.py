from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('slug', models.SlugField(unique=True)),
                ('order', models.PositiveIntegerField(default=0)),
            ],
            options={
                'ordering': ['order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, verbose_name='Назва')),
                ('slug', models.SlugField(allow_unicode=True, blank=True, max_length=220, unique=True)),
                ('description', models.TextField(blank=True, verbose_name='Опис')),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Ціна')),
                ('original_price', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Стара ціна')),
                ('discount_percent', models.PositiveIntegerField(blank=True, null=True)),
                ('featured', models.BooleanField(default=False)),
                ('stock', models.PositiveIntegerField(blank=True, null=True, verbose_name='Залишок')),
                ('images', models.JSONField(blank=True, default=list, verbose_name='Зображення')),
                ('video_url', models.URLField(blank=True, max_length=500, null=True, verbose_name='Відео')),
                ('specifications', models.JSONField(blank=True, default=dict, verbose_name='Характеристики')),
                ('uploading', models.BooleanField(default=False, verbose_name='Медіа завантажуються')),
                ('upload_manifest', models.JSONField(blank=True, default=list)),
                ('upload_started_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='products', to='storefront.category')),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['uploading', 'upload_started_at'], name='idx_product_uploading'),
                    models.Index(fields=['featured'], name='idx_product_featured'),
                ],
            },
        ),
    ]

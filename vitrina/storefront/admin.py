from django.contrib import admin
from .models import Category, Product
@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display=('name','slug','order'); prepopulated_fields={'slug':('name',)}
@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display=('name','category','price','discount_percent','featured','uploading','updated_at')
    list_filter=('category','featured','uploading')
    search_fields=('name','slug')
    prepopulated_fields={'slug':('name',)}
    readonly_fields=('uploading','upload_manifest','upload_started_at','created_at','updated_at')

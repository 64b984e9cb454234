from decimal import Decimal, ROUND_HALF_UP

from django import forms

from .models import Category, Product


class ProductForm(forms.ModelForm):
    # Медиа (изображения, видео) и характеристики живут в ProductDraft, не в форме
    class Meta:
        model = Product
        fields = [
            "name",
            "description",
            "category",
            "price",
            "original_price",
            "stock",
            "featured",
        ]
        widgets = {
            "name": forms.TextInput(attrs={"class": "form-control"}),
            "description": forms.Textarea(attrs={"rows": 6, "class": "form-control"}),
            "category": forms.Select(attrs={"class": "form-control"}),
            "price": forms.NumberInput(attrs={"class": "form-control", "min": "0", "step": "0.01"}),
            "original_price": forms.NumberInput(attrs={"class": "form-control", "min": "0", "step": "0.01"}),
            "stock": forms.NumberInput(attrs={"class": "form-control", "min": "0"}),
            "featured": forms.CheckboxInput(attrs={"class": "form-check-input"}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["category"].required = True
        self.fields["category"].queryset = Category.objects.all()
        self.fields["description"].required = True

    def clean_name(self):
        name = (self.cleaned_data.get("name") or "").strip()
        if not name:
            raise forms.ValidationError("Вкажіть назву товару")
        return name

    def clean_description(self):
        description = (self.cleaned_data.get("description") or "").strip()
        if not description:
            raise forms.ValidationError("Вкажіть опис товару")
        return description

    def clean(self):
        data = super().clean()

        # Валидация цены
        price = data.get("price")
        if price is not None:
            if price <= 0:
                self.add_error("price", "Ціна має бути більшою за нуль")
            elif price > Decimal("99999999.99"):
                self.add_error("price", "Ціна занадто велика")

        original_price = data.get("original_price")
        if original_price is not None and original_price < 0:
            self.add_error("original_price", "Стара ціна не може бути від'ємною")

        stock = data.get("stock")
        if stock is not None and stock < 0:
            self.add_error("stock", "Залишок не може бути від'ємним")

        data["discount_percent"] = compute_discount_percent(price, original_price)
        return data

    def save(self, commit=True):
        instance = super().save(commit=False)
        instance.discount_percent = self.cleaned_data.get("discount_percent")
        if commit:
            instance.save()
        return instance

    def draft_fields(self):
        """Cleaned non-asset fields in the shape ProductDraft.fields expects."""
        data = self.cleaned_data
        category = data.get("category")
        return {
            "name": data.get("name"),
            "description": data.get("description"),
            "category_id": category.pk if category else None,
            "price": data.get("price"),
            "original_price": data.get("original_price"),
            "discount_percent": data.get("discount_percent"),
            "stock": data.get("stock"),
            "featured": bool(data.get("featured")),
        }


def compute_discount_percent(price, original_price):
    """Percentage off the old price, or None when there is no real discount."""
    if price is None or original_price is None:
        return None
    if not (original_price > price > 0):
        return None
    percent = (Decimal(original_price) - Decimal(price)) / Decimal(original_price) * 100
    return int(percent.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

"""
Record store boundary for product documents.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from django.utils import timezone

from storefront.models import Product

logger = logging.getLogger(__name__)


class RecordStore(ABC):
    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> Any:
        """Insert a record and return its id."""
        raise NotImplementedError

    @abstractmethod
    async def update(self, record_id: Any, fields: Dict[str, Any]) -> None:
        """Partially update a record. Raises if the record does not exist."""
        raise NotImplementedError

    @abstractmethod
    async def load(self, record_id: Any) -> Optional[Dict[str, Any]]:
        """Return the record as a document, or None when it is missing."""
        raise NotImplementedError


class ProductRecordStore(RecordStore):
    """Product documents on top of Django's async ORM."""

    async def create(self, fields):
        product = await Product.objects.acreate(**fields)
        logger.debug("Created product %s", product.pk)
        return product.pk

    async def update(self, record_id, fields):
        # QuerySet.update не трогает auto_now, выставляем updated_at сами
        fields = {**fields, "updated_at": timezone.now()}
        updated = await Product.objects.filter(pk=record_id).aupdate(**fields)
        if not updated:
            raise Product.DoesNotExist(f"Product {record_id} does not exist")

    async def load(self, record_id):
        product = await Product.objects.filter(pk=record_id).afirst()
        if product is None:
            return None
        return product_to_document(product)


def product_to_document(product: Product) -> Dict[str, Any]:
    """
    Flatten a product into the document shape used by drafts.

    Absent image lists become [] and absent specification maps become {}.
    """
    images = product.images if isinstance(product.images, list) else []
    specifications = product.specifications if isinstance(product.specifications, dict) else {}
    return {
        "id": product.pk,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "original_price": product.original_price,
        "discount_percent": product.discount_percent,
        "category_id": product.category_id,
        "featured": product.featured,
        "stock": product.stock,
        "images": [url for url in images if isinstance(url, str) and url],
        "video_url": product.video_url or None,
        "specifications": {str(k): "" if v is None else str(v) for k, v in specifications.items()},
        "uploading": product.uploading,
    }

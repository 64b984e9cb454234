"""
Recovery for submissions that never reached the reconciling write.

A product left with `uploading=True` after the editing session died keeps
its optimistic asset list. The manifest tells which uploads were in flight;
they are logged as orphans and the flag is cleared.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from storefront.models import Product

logger = logging.getLogger(__name__)


def stale_after() -> timedelta:
    return timedelta(seconds=getattr(settings, "PRODUCT_UPLOAD_STALE_SECONDS", 3600))


def release_stale_uploads(older_than: Optional[timedelta] = None) -> int:
    """
    Clear `uploading` on products whose submission started more than
    `older_than` ago. Returns the number of released products.
    """
    cutoff = timezone.now() - (older_than if older_than is not None else stale_after())
    stale = Product.objects.filter(uploading=True).exclude(upload_started_at__gt=cutoff)

    released = 0
    for product in stale.only("id", "name", "upload_manifest", "upload_started_at"):
        manifest = product.upload_manifest or []
        if manifest:
            logger.warning(
                "Product %s (%s): %d upload(s) never reconciled: %s",
                product.pk, product.name, len(manifest), ", ".join(map(str, manifest)),
            )
        released += Product.objects.filter(pk=product.pk, uploading=True).update(
            uploading=False,
            upload_manifest=[],
            upload_started_at=None,
            updated_at=timezone.now(),
        )

    if released:
        logger.info("Released %d stale product upload(s)", released)
    return released

import logging
from datetime import timedelta

from celery import shared_task

from .services.media import release_stale_uploads

logger = logging.getLogger(__name__)


@shared_task
def release_stale_uploads_task(older_than_seconds=None):
    """
    Celery task: clear `uploading` on products whose submission never reconciled.
    """
    older_than = timedelta(seconds=older_than_seconds) if older_than_seconds is not None else None
    released = release_stale_uploads(older_than)
    logger.info("release_stale_uploads_task finished: %d product(s) released", released)
    return released

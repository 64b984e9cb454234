"""
Two-phase persistence of a product form.

1. optimistic write: non-asset fields, already persisted assets and
   `uploading=True` together with the manifest of task ids;
2. second wave: staged files and the video are uploaded, then every task is
   awaited until it is terminal;
3. reconciling write: persisted + successfully uploaded URLs, `uploading=False`.

Failed uploads do not fail the submission; they are reported in the result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from django.utils import timezone

from .aggregator import is_complete
from .exceptions import NoImages, PersistFailed, ReconcileFailed, UploadsInProgress
from .record_store import ProductRecordStore, RecordStore
from .session import MediaUploadSession
from .upload_task import UploadStatus

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    product_id: Any
    images: List[str] = field(default_factory=list)
    video_url: Optional[str] = None
    succeeded: int = 0
    failed: int = 0
    failed_task_ids: List[str] = field(default_factory=list)
    video_failed: bool = False

    @property
    def has_failures(self) -> bool:
        return bool(self.failed or self.video_failed)


class PersistenceCoordinator:
    def __init__(self, record_store: Optional[RecordStore] = None, poll_interval: float = 0.05):
        self.record_store = record_store or ProductRecordStore()
        self.poll_interval = poll_interval

    async def submit(self, session: MediaUploadSession) -> SubmissionResult:
        draft = session.draft
        registry = session.registry

        # Ранее запущенные (не отложенные) загрузки должны завершиться до сабмита
        dispatched = [task for task in registry.all() if not task.deferred]
        if not is_complete(dispatched):
            pending = sum(1 for task in dispatched if not task.is_terminal)
            logger.info("Submission blocked: %d upload(s) still running", pending)
            raise UploadsInProgress(pending)

        if not draft.existing_image_urls and len(registry) == 0:
            raise NoImages()

        existing = list(draft.existing_image_urls)
        video_task = session.prepare_video()
        manifest = [task.id for task in registry.all()]
        if video_task is not None:
            manifest.append(video_task.id)

        optimistic = {
            **draft.record_fields(),
            "images": existing,
            "video_url": draft.video_source.url,
            "uploading": True,
            "upload_manifest": manifest,
            "upload_started_at": timezone.now(),
        }
        try:
            if draft.product_id is None:
                draft.product_id = await self.record_store.create(optimistic)
            else:
                await self.record_store.update(draft.product_id, optimistic)
        except Exception as exc:
            logger.exception("Optimistic write for product %s failed", draft.product_id)
            raise PersistFailed(str(exc) or exc.__class__.__name__) from exc

        product_id = draft.product_id
        logger.info(
            "Product %s saved with %d existing image(s), %d upload(s) tracked",
            product_id, len(existing), len(manifest),
        )

        await session.run_deferred()

        video_url = draft.video_source.url
        video_failed = False
        if video_task is not None:
            await session.upload_video()
            if video_task.status == UploadStatus.SUCCESS:
                video_url = video_task.result_url
            else:
                video_url = None
                video_failed = True
                logger.warning("Video upload for product %s failed: %s", product_id, video_task.error_message)

        await session.wait(self.poll_interval)

        tasks = registry.all()
        uploaded = [task.result_url for task in tasks if task.status == UploadStatus.SUCCESS]
        failed_ids = [task.id for task in tasks if task.status == UploadStatus.ERROR]
        result = SubmissionResult(
            product_id=product_id,
            images=existing + uploaded,
            video_url=video_url,
            succeeded=len(uploaded),
            failed=len(failed_ids),
            failed_task_ids=failed_ids,
            video_failed=video_failed,
        )

        final = {
            "images": result.images,
            "video_url": result.video_url,
            "uploading": False,
            "upload_manifest": [],
            "upload_started_at": None,
        }
        try:
            await self.record_store.update(product_id, final)
        except Exception as exc:
            logger.error("Reconciling write for product %s failed", product_id, exc_info=True)
            flag_cleared = await self._release_flag(product_id)
            raise ReconcileFailed(str(exc) or exc.__class__.__name__, result, flag_cleared) from exc

        draft.existing_image_urls = list(result.images)
        draft.video_source.url = result.video_url
        draft.video_source.file = None
        await session.finish()

        logger.info(
            "Product %s reconciled: %d uploaded, %d failed%s",
            product_id, result.succeeded, result.failed,
            ", video failed" if video_failed else "",
        )
        return result

    async def _release_flag(self, product_id) -> bool:
        try:
            await self.record_store.update(
                product_id,
                {"uploading": False, "upload_manifest": [], "upload_started_at": None},
            )
        except Exception:
            logger.exception("Could not clear uploading flag on product %s", product_id)
            return False
        return True

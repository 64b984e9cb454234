"""
Product media upload pipeline (authoritative implementation).
"""

from .aggregator import ProgressAggregator, UploadCounts, UploadSnapshot
from .blob_store import BlobStore, DjangoStorageBlobStore, build_storage_key, sanitize_filename
from .coordinator import PersistenceCoordinator, SubmissionResult
from .draft import ProductDraft, VideoSource
from .exceptions import (
    IllegalTransition,
    MediaUploadError,
    NoImages,
    PersistFailed,
    QuotaExceeded,
    ReconcileFailed,
    SubmissionError,
    TaskInFlight,
    TransferFailed,
    UploadsInProgress,
    VideoTooLarge,
)
from .optimizer import AssetOptimizer
from .record_store import ProductRecordStore, RecordStore, product_to_document
from .recovery import release_stale_uploads
from .registry import TaskRegistry
from .session import MediaUploadSession
from .upload_task import UploadStatus, UploadTask

__all__ = [
    "ProgressAggregator",
    "UploadCounts",
    "UploadSnapshot",
    "BlobStore",
    "DjangoStorageBlobStore",
    "build_storage_key",
    "sanitize_filename",
    "PersistenceCoordinator",
    "SubmissionResult",
    "ProductDraft",
    "VideoSource",
    "IllegalTransition",
    "MediaUploadError",
    "NoImages",
    "PersistFailed",
    "QuotaExceeded",
    "ReconcileFailed",
    "SubmissionError",
    "TaskInFlight",
    "TransferFailed",
    "UploadsInProgress",
    "VideoTooLarge",
    "AssetOptimizer",
    "ProductRecordStore",
    "RecordStore",
    "product_to_document",
    "release_stale_uploads",
    "TaskRegistry",
    "MediaUploadSession",
    "UploadStatus",
    "UploadTask",
]

"""
Error taxonomy for product media uploads.

Per-file problems are recorded on the task and never raised past the worker.
Structural problems are raised to the caller and halt intake or submission.
"""


class MediaUploadError(Exception):
    """Base class for every product media upload error."""


class QuotaExceeded(MediaUploadError):
    """An intake batch would push the product over its image limit."""

    def __init__(self, requested, limit):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Можна додати не більше {limit} зображень (запитано {requested})"
        )


class VideoTooLarge(MediaUploadError):
    def __init__(self, size, limit):
        self.size = size
        self.limit = limit
        super().__init__(f"Video is {size} bytes, the limit is {limit} bytes")


class TaskInFlight(MediaUploadError):
    """Raised when the caller tries to discard a task that is mid-transfer."""


class IllegalTransition(MediaUploadError):
    def __init__(self, task_id, current, target):
        self.task_id = task_id
        self.current = current
        self.target = target
        super().__init__(f"Task {task_id}: {current} -> {target} is not allowed")


class TransferFailed(MediaUploadError):
    """A single transfer to the blob store failed. Stays local to its task."""


class SubmissionError(MediaUploadError):
    """Base class for errors that stop a product form submission."""


class UploadsInProgress(SubmissionError):
    def __init__(self, pending):
        self.pending = pending
        super().__init__(f"{pending} upload(s) still in progress")


class NoImages(SubmissionError):
    def __init__(self):
        super().__init__("At least one product image is required")


class PersistFailed(SubmissionError):
    """The optimistic write failed; nothing was finalised."""


class ReconcileFailed(SubmissionError):
    """
    The reconciling write failed after uploads settled.

    `result` describes what the submission would have written; the record keeps
    the optimistic asset list and the uploading flag is cleared best-effort
    (`flag_cleared` tells whether that worked).
    """

    def __init__(self, message, result, flag_cleared):
        self.result = result
        self.flag_cleared = flag_cleared
        super().__init__(message)

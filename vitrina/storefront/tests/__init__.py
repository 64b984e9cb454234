"""
Tests for the storefront app and the product media upload pipeline.

Test structure:
- test_upload_task.py: Per-file state machine and task ids
- test_registry.py: Admission, image quota, removal
- test_optimizer.py: Image re-encoding before upload
- test_blob_store.py: Storage keys and the Django storage backed blob store
- test_worker.py: Upload worker (progress, failures, skipped tasks)
- test_aggregator.py: Readiness, counts and progress snapshots
- test_draft.py: Form draft (image URLs, video, specifications)
- test_session.py: Intake adapters, remove/retry, teardown
- test_coordinator.py: Optimistic and reconciling writes
- test_record_store.py: Product record store on the database
- test_recovery.py: Releasing stale uploads (function and Celery task)
- test_forms.py: Product form validation and discount
- test_commands.py: Management commands

Shared in-memory doubles live in doubles.py.
"""

# Celery app подключается при старте Django, чтобы @shared_task находил его
from .celery import app as celery_app

__all__ = ('celery_app',)

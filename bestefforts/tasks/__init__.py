"""
Best Efforts Worker Tasks Package
"""

from ..celery_app import app

# Import all tasks to ensure they're registered with Celery
from .record_tasks import (
    extract_best_efforts,
    extract_best_efforts_from_file,
    process_activity_batch,
    rank_personal_bests,
    record_progression,
)

__all__ = [
    "app",
    "extract_best_efforts",
    "extract_best_efforts_from_file",
    "process_activity_batch",
    "rank_personal_bests",
    "record_progression",
]

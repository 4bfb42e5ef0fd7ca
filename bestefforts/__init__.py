"""
Best Efforts Worker

This module provides Celery tasks for:
- Extracting best-effort segments from activity sample streams
- Ranking personal bests per distance and time window
- Building personal-record progressions
"""

# Delay Celery import to allow using the analysis package without a broker
def get_celery_app():
    from .celery_app import app
    return app

# Only export get_celery_app function, not the app directly
__all__ = ['get_celery_app']

"""
Celery application factory.

Workers: celery -A docflow.tasks worker -Q documents
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from docflow.core.config import settings
from docflow.core.logging import setup_logging

celery_app = Celery("docflow")
celery_app.config_from_object("celeryconfig")

# Auto-discover tasks in these modules
celery_app.autodiscover_tasks([
    "docflow.tasks.document_tasks",
])


@celery_setup_logging.connect
def configure_worker_logging(**kwargs) -> None:
    """Route worker logs through structlog instead of Celery's own handlers."""
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")

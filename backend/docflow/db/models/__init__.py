"""
Models package — re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `docflow/db/models/<table_name>.py`
    2. Import it here
"""

from docflow.db.models.base import Base
from docflow.db.models.course import Course
from docflow.db.models.catalog_entry import CatalogEntry
from docflow.db.models.enrollment import Enrollment
from docflow.db.models.artifact import Artifact
from docflow.db.models.envelope_record import EnvelopeRecord
from docflow.db.models.document_run import DocumentRun

__all__ = [
    "Base",
    "Course",
    "CatalogEntry",
    "Enrollment",
    "Artifact",
    "EnvelopeRecord",
    "DocumentRun",
]

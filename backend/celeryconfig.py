"""
Celery configuration for the document pipeline.

Loaded by `celery_app.config_from_object("celeryconfig")` in docflow/tasks/__init__.py.
Broker/result-backend URLs come from the application settings
(environment / .env), defaulting to localhost for local dev.
"""

from docflow.core.config import settings

# ═══════════════════════════════════════════════════════════
#  Broker & Result Backend
# ═══════════════════════════════════════════════════════════

broker_url = settings.CELERY_BROKER_URL
result_backend = settings.CELERY_RESULT_BACKEND

# ═══════════════════════════════════════════════════════════
#  Serialization
# ═══════════════════════════════════════════════════════════

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]

timezone = "UTC"
enable_utc = True

# ═══════════════════════════════════════════════════════════
#  Delivery
# ═══════════════════════════════════════════════════════════

# Ack after the handler returns; a worker crash re-delivers the enrollment.
# Duplicates are absorbed by the artifact store and envelope records.
task_acks_late = True
task_reject_on_worker_lost = True

worker_prefetch_multiplier = 1

# Three render attempts at RENDER_TIMEOUT_SECONDS each, for two documents
task_soft_time_limit = 900
task_time_limit = 960

# Only used when a caller passes redeliver_on_failure=True
task_default_retry_delay = 120
task_max_retries = 3

result_expires = 86400

# ═══════════════════════════════════════════════════════════
#  Worker Settings
# ═══════════════════════════════════════════════════════════

# wkhtmltopdf children and large PDFs: recycle workers regularly
worker_max_tasks_per_child = 100

worker_send_task_events = False
task_send_sent_event = False

# ═══════════════════════════════════════════════════════════
#  Task Routes
# ═══════════════════════════════════════════════════════════
# Run a dedicated worker for rendering/dispatch:
#   celery -A docflow.tasks worker -Q documents

task_routes = {
    "docflow.tasks.document_tasks.*": {"queue": "documents"},
}

task_default_queue = "default"

beat_schedule = {}

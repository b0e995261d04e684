"""initial schema: courses, catalog, enrollments, artifacts, envelopes, runs

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("course_type", sa.String(20), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("duration_unit", sa.String(30), nullable=True),
        sa.Column("modules", JSONType, nullable=True),
        sa.Column("aircraft", JSONType, nullable=True),
        sa.Column("config", JSONType, nullable=True),
        sa.Column("enrollment_fee", sa.String(32), nullable=True),
        sa.Column("total_value", sa.String(32), nullable=True),
        sa.Column("installments", sa.Integer(), nullable=False),
        sa.Column("installment_value", sa.String(32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_courses_course_type", "courses", ["course_type"])

    op.create_table(
        "catalog_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entry_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("menu_order", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("config", JSONType, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_catalog_entries_entry_type", "catalog_entries", ["entry_type"])
    op.create_index("ix_catalog_entries_slug", "catalog_entries", ["slug"])
    op.create_index("ix_catalog_entries_parent_id", "catalog_entries", ["parent_id"])

    op.create_table(
        "enrollments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("course_id", sa.Integer(), sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("token", sa.String(64), nullable=True, unique=True),
        sa.Column("client_name", sa.String(255), nullable=False),
        sa.Column("client_email", sa.String(320), nullable=True),
        sa.Column("client_tax_id", sa.String(32), nullable=True),
        sa.Column("subtotal", sa.String(32), nullable=True),
        sa.Column("discount", sa.String(32), nullable=True),
        sa.Column("total", sa.String(32), nullable=True),
        sa.Column("validity_days", sa.Integer(), nullable=False),
        sa.Column("config", JSONType, nullable=True),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])

    op.create_table(
        "artifacts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("enrollment_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("fingerprint", sa.String(64), nullable=False),
        sa.Column("template_id", sa.String(100), nullable=True),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("content", sa.LargeBinary(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("enrollment_id", "kind", "fingerprint", name="uq_artifacts_document_key"),
    )
    op.create_index("ix_artifacts_enrollment_id", "artifacts", ["enrollment_id"])
    op.create_index("ix_artifacts_created_at", "artifacts", ["created_at"])

    op.create_table(
        "envelope_records",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("enrollment_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("provider_ref", sa.String(255), nullable=True),
        sa.Column("artifact_id", sa.Uuid(), nullable=True),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("provider_response", JSONType, nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("enrollment_id", "kind", name="uq_envelope_records_document_key"),
    )
    op.create_index("ix_envelope_records_enrollment_id", "envelope_records", ["enrollment_id"])
    op.create_index("ix_envelope_records_status", "envelope_records", ["status"])

    op.create_table(
        "document_runs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("execution_id", sa.String(36), nullable=False, unique=True),
        sa.Column("task_id", sa.String(255), nullable=True),
        sa.Column("enrollment_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("state", sa.String(20), nullable=False),
        sa.Column("errored_stage", sa.String(20), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("fingerprint", sa.String(64), nullable=True),
        sa.Column("artifact_id", sa.Uuid(), nullable=True),
        sa.Column("store_outcome", sa.String(20), nullable=True),
        sa.Column("dispatch_status", sa.String(20), nullable=True),
        sa.Column("envelope_ref", sa.String(255), nullable=True),
        sa.Column("options", JSONType, nullable=True),
        sa.Column("step_log", JSONType, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
    )
    op.create_index("ix_document_runs_enrollment_id", "document_runs", ["enrollment_id"])
    op.create_index("ix_document_runs_kind", "document_runs", ["kind"])
    op.create_index("ix_document_runs_state", "document_runs", ["state"])
    op.create_index("ix_document_runs_started_at", "document_runs", ["started_at"])


def downgrade() -> None:
    op.drop_table("document_runs")
    op.drop_table("envelope_records")
    op.drop_table("artifacts")
    op.drop_table("enrollments")
    op.drop_table("catalog_entries")
    op.drop_table("courses")

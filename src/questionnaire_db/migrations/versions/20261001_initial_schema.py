"""Initial questionnaire schema.

Creates the catalog tables (templates, pages, questions), submissions and
the analytics event log.

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import INET, JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- Catalog ---
    op.create_table(
        "questionnaire_templates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("total_pages", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("estimated_completion_minutes", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("language", sa.String(10), nullable=False, server_default=sa.text("'en'")),
        sa.Column("introduction_text", sa.Text(), nullable=True),
        sa.Column("completion_message", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_templates_active_created",
        "questionnaire_templates",
        ["created_at"],
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "questionnaire_pages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "template_id",
            UUID(as_uuid=True),
            sa.ForeignKey("questionnaire_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("page_number", sa.Integer(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instruction_text", sa.Text(), nullable=True),
        sa.Column("page_type", sa.String(20), nullable=False, server_default="standard"),
        sa.Column("show_progress", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("allow_back_navigation", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("auto_advance", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.UniqueConstraint("template_id", "page_number", name="uq_template_page_number"),
    )

    op.create_table(
        "questionnaire_questions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "template_id",
            UUID(as_uuid=True),
            sa.ForeignKey("questionnaire_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "page_id",
            UUID(as_uuid=True),
            sa.ForeignKey("questionnaire_pages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("section", sa.Text(), nullable=True),
        sa.Column("question_text", sa.Text(), nullable=False, server_default=""),
        sa.Column("question_type", sa.String(30), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("options", JSONB(), nullable=True),
        sa.Column("validation_rules", JSONB(), nullable=True),
        sa.Column("conditional_logic", JSONB(), nullable=True),
        sa.Column("help_text", sa.Text(), nullable=True),
        sa.Column("placeholder_text", sa.Text(), nullable=True),
        sa.Column("question_group", sa.Text(), nullable=True),
        sa.Column("validation_message", sa.Text(), nullable=True),
        sa.Column("tooltip_text", sa.Text(), nullable=True),
    )
    op.create_index("ix_questions_page_order", "questionnaire_questions", ["page_id", "order_index"])
    op.create_index("ix_questions_template", "questionnaire_questions", ["template_id"])

    # --- Submissions ---
    op.create_table(
        "questionnaire_submissions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "template_id",
            UUID(as_uuid=True),
            sa.ForeignKey("questionnaire_templates.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("submission_token", sa.Text(), nullable=False),
        sa.Column("submission_data", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("is_complete", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("completion_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("time_spent_seconds", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ip_address", INET(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "completion_percentage BETWEEN 0 AND 100",
            name="ck_completion_percentage_range",
        ),
        sa.CheckConstraint(
            "NOT is_complete OR completed_at IS NOT NULL",
            name="ck_completed_has_timestamp",
        ),
    )
    op.create_index(
        "ix_questionnaire_submissions_submission_token",
        "questionnaire_submissions",
        ["submission_token"],
    )
    op.create_index(
        "ix_submissions_template_created",
        "questionnaire_submissions",
        ["template_id", "created_at"],
    )
    op.create_index(
        "ix_submissions_incomplete_updated",
        "questionnaire_submissions",
        ["updated_at"],
        postgresql_where=sa.text("NOT is_complete"),
    )

    # --- Analytics ---
    op.create_table(
        "analytics_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column("event_data", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_analytics_type_created", "analytics_events", ["event_type", "created_at"])


def downgrade() -> None:
    op.drop_table("analytics_events")
    op.drop_table("questionnaire_submissions")
    op.drop_table("questionnaire_questions")
    op.drop_table("questionnaire_pages")
    op.drop_table("questionnaire_templates")

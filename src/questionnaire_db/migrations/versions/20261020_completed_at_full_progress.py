"""Require completed submissions to report 100% progress.

Adds ``ck_completed_is_full`` to ``questionnaire_submissions`` so no write
can leave a completed row with a partial ``completion_percentage``.  Rows
that violate it (a stale autosave landing after completion) are repaired
first.

Revision ID: 20261020_completed_full
Revises: 20261001_initial
Create Date: 2026-10-20
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261020_completed_full"
down_revision = "20261001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        "UPDATE questionnaire_submissions SET completion_percentage = 100 "
        "WHERE is_complete AND completion_percentage <> 100"
    )
    op.create_check_constraint(
        "ck_completed_is_full",
        "questionnaire_submissions",
        "NOT is_complete OR completion_percentage = 100",
    )


def downgrade() -> None:
    op.drop_constraint("ck_completed_is_full", "questionnaire_submissions", type_="check")

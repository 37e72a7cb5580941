"""Write-once triggers for approvals, activity logs, social posts, paid payments and finished snapshots

Revision ID: 0002
Revises: 0001
Create Date: 2026-06-02

This migration:
1. Rejects UPDATE and DELETE on approvals, activity_logs and creator_social_posts
2. Rejects UPDATE and DELETE on payments once they are paid
3. Rejects UPDATE and DELETE on analytics_snapshots once they are done or failed
"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, Sequence[str], None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

APPEND_ONLY_TABLES = ("approvals", "activity_logs", "creator_social_posts")

# table -> condition on OLD under which the row is frozen
CONDITIONAL_TABLES = {
    "payments": "OLD.status = 'paid'",
    "analytics_snapshots": "OLD.status IN ('done', 'failed')",
}


def upgrade() -> None:
    """Install immutability triggers."""

    op.execute("""
        CREATE OR REPLACE FUNCTION prevent_record_change()
        RETURNS TRIGGER AS $trigger$
        BEGIN
            RAISE EXCEPTION '% rows are immutable and cannot be %. Record ID: %',
                TG_TABLE_NAME, lower(TG_OP) || 'd', OLD.id;
        END;
        $trigger$ LANGUAGE plpgsql;
    """)

    for table in APPEND_ONLY_TABLES:
        op.execute(f"""
            CREATE TRIGGER {table}_prevent_change
            BEFORE UPDATE OR DELETE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION prevent_record_change();
        """)

    for table, condition in CONDITIONAL_TABLES.items():
        op.execute(f"""
            CREATE TRIGGER {table}_prevent_change
            BEFORE UPDATE OR DELETE ON {table}
            FOR EACH ROW
            WHEN ({condition})
            EXECUTE FUNCTION prevent_record_change();
        """)


def downgrade() -> None:
    """Remove immutability triggers."""

    for table in (*APPEND_ONLY_TABLES, *CONDITIONAL_TABLES):
        op.execute(f"DROP TRIGGER IF EXISTS {table}_prevent_change ON {table};")

    op.execute("DROP FUNCTION IF EXISTS prevent_record_change();")

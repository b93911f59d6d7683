"""Initial WakeGate schema."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the schedule state table."""
    op.create_table(
        "schedule_state",
        sa.Column("name", sa.String(length=255), primary_key=True),
        sa.Column("last_alarm", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Drop the schedule state table."""
    op.drop_table("schedule_state")

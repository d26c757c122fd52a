"""Create thought chain and step tables.

Databases written by the pre-migration server already carry both tables (with
the same index names) but no alembic_version row; those tables are adopted
as they are.

Revision ID: 0001_thought_chains
Revises:
Create Date: 2025-06-02
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_thought_chains"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    existing_tables = set(sa.inspect(bind).get_table_names())

    if "thought_chains" not in existing_tables:
        op.create_table(
            "thought_chains",
            sa.Column("id", sa.String(length=100), primary_key=True),
            sa.Column("created", sa.Text(), nullable=False),
            sa.Column("updated", sa.Text()),
            sa.Column("concluded", sa.Text()),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        )
        op.create_index("idx_thought_chains_created", "thought_chains", ["created"])
        op.create_index("idx_thought_chains_status", "thought_chains", ["status"])

    if "thought_steps" not in existing_tables:
        op.create_table(
            "thought_steps",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "chain_id",
                sa.String(length=100),
                sa.ForeignKey("thought_chains.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("step_number", sa.Integer(), nullable=False),
            sa.Column("thought", sa.Text(), nullable=False),
            sa.Column("reflection", sa.Text()),
            sa.Column("timestamp", sa.Text(), nullable=False),
            sa.Column("is_conclusion", sa.Boolean(), nullable=False, server_default="0"),
            sa.UniqueConstraint("chain_id", "step_number", name="uq_thought_steps_chain_step"),
        )
        op.create_index("idx_thought_steps_chain_id", "thought_steps", ["chain_id"])
        op.create_index("idx_thought_steps_timestamp", "thought_steps", ["timestamp"])


def downgrade() -> None:
    op.drop_index("idx_thought_steps_timestamp", table_name="thought_steps")
    op.drop_index("idx_thought_steps_chain_id", table_name="thought_steps")
    op.drop_table("thought_steps")
    op.drop_index("idx_thought_chains_status", table_name="thought_chains")
    op.drop_index("idx_thought_chains_created", table_name="thought_chains")
    op.drop_table("thought_chains")

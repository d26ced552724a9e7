from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20251019_0004"
down_revision = "20251019_0003"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "prizes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("contest_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("contests.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=False),
        sa.Column("prize_details", sa.Text(), nullable=False),
        sa.Column("awarded", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("awarded_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("claimed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("claimed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("rank >= 1", name="ck_prizes_rank_positive"),
    )
    op.create_index("ix_prizes_contest_id", "prizes", ["contest_id"])
    op.create_index("ix_prizes_user_id", "prizes", ["user_id"])
    op.create_unique_constraint("uq_prize_contest_rank", "prizes", ["contest_id", "rank"])

def downgrade() -> None:
    op.drop_constraint("uq_prize_contest_rank", "prizes", type_="unique")
    op.drop_index("ix_prizes_user_id", table_name="prizes")
    op.drop_index("ix_prizes_contest_id", table_name="prizes")
    op.drop_table("prizes")

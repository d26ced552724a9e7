from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "20251019_0003"
down_revision = "20251019_0002"
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "participations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("contest_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("contests.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="in-progress"),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("started_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("status IN ('in-progress','submitted')", name="ck_participations_status"),
    )
    op.create_index("ix_participations_user_id", "participations", ["user_id"])
    op.create_index("ix_participations_contest_id", "participations", ["contest_id"])
    op.create_unique_constraint("uq_participation_user_contest", "participations", ["user_id", "contest_id"])
    op.create_index(
        "ix_participations_ranking", "participations", ["contest_id", "status", "score", "submitted_at"]
    )

    op.create_table(
        "answers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("participation_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("participations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("questions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_answers_participation_id", "answers", ["participation_id"])
    op.create_index("ix_answers_question_id", "answers", ["question_id"])
    op.create_unique_constraint("uq_answer_once_per_question", "answers", ["participation_id", "question_id"])

    op.create_table(
        "answer_options",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("answer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("answers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("option_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("options.id", ondelete="CASCADE"), nullable=False),
    )
    op.create_index("ix_answer_options_answer_id", "answer_options", ["answer_id"])
    op.create_index("ix_answer_options_option_id", "answer_options", ["option_id"])
    op.create_unique_constraint("uq_answer_option_once", "answer_options", ["answer_id", "option_id"])

def downgrade() -> None:
    op.drop_constraint("uq_answer_option_once", "answer_options", type_="unique")
    op.drop_index("ix_answer_options_option_id", table_name="answer_options")
    op.drop_index("ix_answer_options_answer_id", table_name="answer_options")
    op.drop_table("answer_options")
    op.drop_constraint("uq_answer_once_per_question", "answers", type_="unique")
    op.drop_index("ix_answers_question_id", table_name="answers")
    op.drop_index("ix_answers_participation_id", table_name="answers")
    op.drop_table("answers")
    op.drop_index("ix_participations_ranking", table_name="participations")
    op.drop_constraint("uq_participation_user_contest", "participations", type_="unique")
    op.drop_index("ix_participations_contest_id", table_name="participations")
    op.drop_index("ix_participations_user_id", table_name="participations")
    op.drop_table("participations")

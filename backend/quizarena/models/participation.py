from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Uuid, ForeignKey, UniqueConstraint, CheckConstraint, Index, func
from quizarena.db import Base, UTCDateTime, utcnow

class Participation(Base):
    """
    A user's single attempt at a contest.
    Lifecycle: in-progress -> submitted (terminal). score is meaningful only once submitted.
    """
    __tablename__ = "participations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    contest_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("contests.id", ondelete="CASCADE"), index=True, nullable=False)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="in-progress")  # in-progress|submitted
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    started_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "contest_id", name="uq_participation_user_contest"),
        CheckConstraint("status IN ('in-progress','submitted')", name="ck_participations_status"),
        # leaderboard scan: submitted rows of one contest in ranking order
        Index("ix_participations_ranking", "contest_id", "status", "score", "submitted_at"),
    )

class Answer(Base):
    __tablename__ = "answers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    participation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("participations.id", ondelete="CASCADE"), index=True, nullable=False
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("questions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("participation_id", "question_id", name="uq_answer_once_per_question"),
    )

class AnswerOption(Base):
    """Selected options of an answer (join table)."""
    __tablename__ = "answer_options"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    answer_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("answers.id", ondelete="CASCADE"), index=True, nullable=False)
    option_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("options.id", ondelete="CASCADE"), index=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("answer_id", "option_id", name="uq_answer_option_once"),
    )

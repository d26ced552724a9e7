from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, Boolean, Text, Uuid, ForeignKey, UniqueConstraint, CheckConstraint, func
from quizarena.db import Base, UTCDateTime, utcnow

class Prize(Base):
    """
    Ranked prize of a contest.
    Transitions (both one-way, independent):
      - awarded:  user_id set, awarded=True, awarded_at=now
      - claimed:  claimed=True, claimed_at=now (winner picked it up)
    """
    __tablename__ = "prizes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    contest_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("contests.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)

    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    prize_details: Mapped[str] = mapped_column(Text(), nullable=False)

    awarded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    awarded_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("contest_id", "rank", name="uq_prize_contest_rank"),
        CheckConstraint("rank >= 1", name="ck_prizes_rank_positive"),
    )

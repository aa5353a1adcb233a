# skillbridge/models/token.py
from sqlalchemy import Column, Integer, String, ForeignKey, TIMESTAMP, CheckConstraint, func
from sqlalchemy.orm import relationship

from skillbridge.database import Base


class TokenReward(Base):
    """Append-only ledger entry; at most one per session."""

    __tablename__ = "token_rewards"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), unique=True, nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    __table_args__ = (
        CheckConstraint("amount >= 0", name="check_reward_amount_non_negative"),
    )

    teacher = relationship("User")

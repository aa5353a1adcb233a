# skillbridge/crud/token.py
"""
Reward Ledger CRUD Operations

Database operations for the append-only token reward ledger.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from skillbridge.models.token import TokenReward


def get_reward_by_session(db: Session, session_id: str) -> Optional[TokenReward]:
    """
    Retrieve the reward issued for a session.

    Args:
        db: Database session
        session_id: Opaque session identifier

    Returns:
        TokenReward object or None if no reward was issued
    """
    return db.query(TokenReward).filter(TokenReward.session_id == session_id).first()


def create_reward(
    db: Session,
    session_id: str,
    teacher_id: int,
    amount: int,
) -> TokenReward:
    """
    Append a reward row. The session_id UNIQUE constraint rejects duplicates.

    Args:
        db: Database session
        session_id: Opaque session identifier
        teacher_id: Recipient user ID
        amount: Token amount

    Returns:
        Created TokenReward object
    """
    reward = TokenReward(
        session_id=session_id,
        teacher_id=teacher_id,
        amount=amount,
    )
    db.add(reward)
    db.flush()
    return reward


def get_rewards_by_teacher(
    db: Session,
    teacher_id: int,
    limit: int = 50,
    offset: int = 0,
) -> List[TokenReward]:
    return (
        db.query(TokenReward)
        .filter(TokenReward.teacher_id == teacher_id)
        .order_by(TokenReward.created_at.desc(), TokenReward.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


def get_total_rewarded(db: Session, teacher_id: int) -> int:
    result = db.query(func.sum(TokenReward.amount)).filter(
        TokenReward.teacher_id == teacher_id
    ).scalar()
    return int(result or 0)

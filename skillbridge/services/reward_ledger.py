# skillbridge/services/reward_ledger.py
"""
Reward Ledger - Business Logic Service

Append-only accounting of token rewards for completed sessions. Issuance is
idempotent per session: retries and duplicate consensus signals converge on
a single TokenReward row whose amount never changes.
"""

import logging
from typing import Any, Dict, Optional

from skillbridge import models
from skillbridge.config import settings
from skillbridge.errors import InvalidRequest, NotFound, StorageFailure
from skillbridge.models.connection import ConnectionStatus
from skillbridge.repository import Repository

logger = logging.getLogger(__name__)


# =====================================
# CONFIGURATION
# =====================================

class RewardPolicy:
    """Reward economy policy, read from settings at call time."""

    @staticmethod
    def rate_per_minute() -> int:
        return settings.REWARD_RATE_PER_MINUTE

    @staticmethod
    def rating_threshold() -> float:
        return settings.REWARD_RATING_THRESHOLD


# =====================================
# SERIALIZATION
# =====================================

def serialize_reward(reward: models.TokenReward) -> Dict[str, Any]:
    return {
        "reward_id": reward.id,
        "session_id": reward.session_id,
        "teacher_id": reward.teacher_id,
        "amount": reward.amount,
        "created_at": reward.created_at.isoformat() if reward.created_at else None,
    }


# =====================================
# ISSUANCE
# =====================================

def compute_reward_amount(duration_minutes: int, rate: Optional[int] = None) -> int:
    """
    Tokens earned for a session of the given length.

    Args:
        duration_minutes: Session duration in minutes
        rate: Tokens per minute (defaults to REWARD_RATE_PER_MINUTE)

    Returns:
        duration_minutes * rate

    Raises:
        InvalidRequest: If either value is negative
    """
    if rate is None:
        rate = RewardPolicy.rate_per_minute()

    if duration_minutes < 0:
        raise InvalidRequest(
            "Session duration cannot be negative", duration_minutes=duration_minutes
        )
    if rate < 0:
        raise InvalidRequest("Reward rate cannot be negative", rate=rate)

    return int(duration_minutes) * int(rate)


def issue_reward(
    repo: Repository,
    session_id: str,
    teacher_id: int,
    duration_minutes: int,
    rate: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Record the token reward for a session, exactly once.

    If a reward already exists for the session it is returned unchanged;
    this also holds when two callers race to insert (the UNIQUE constraint
    on session_id lets one win and the other re-reads the winner's row).

    Args:
        repo: Repository
        session_id: Opaque session identifier
        teacher_id: Reward recipient
        duration_minutes: Session duration in minutes
        rate: Tokens per minute (defaults to REWARD_RATE_PER_MINUTE)

    Returns:
        Dictionary with reward details and whether this call created it

    Raises:
        InvalidRequest: If session_id is empty or the amount is invalid
        StorageFailure: If the store fails
    """
    if not session_id:
        raise InvalidRequest("Session identifier is required")

    existing = repo.find_token_reward_by_session(session_id)
    if existing:
        logger.info("Reward for session %s already issued (reward %s)", session_id, existing.id)
        return {**serialize_reward(existing), "created": False}

    amount = compute_reward_amount(duration_minutes, rate)
    reward = repo.create_token_reward(session_id, teacher_id, amount)

    if reward is None:
        # Lost the insert race; the winner's row is authoritative.
        reward = repo.find_token_reward_by_session(session_id)
        if reward is None:
            raise StorageFailure("issue_reward")
        logger.info("Concurrent reward issuance for session %s converged on reward %s",
                    session_id, reward.id)
        return {**serialize_reward(reward), "created": False}

    logger.info("Issued %s tokens to user %s for session %s", amount, teacher_id, session_id)
    return {**serialize_reward(reward), "created": True}


# =====================================
# QUERIES
# =====================================

def get_reward(repo: Repository, session_id: str) -> Optional[Dict[str, Any]]:
    reward = repo.find_token_reward_by_session(session_id)
    return serialize_reward(reward) if reward else None


def get_token_balance(repo: Repository, user_id: int) -> int:
    """Total tokens a user has been granted across all sessions."""
    return repo.total_rewarded(user_id)


def get_reward_history(repo: Repository, user_id: int, limit: int = 50) -> list:
    return [serialize_reward(r) for r in repo.find_rewards_by_teacher(user_id, limit)]


def get_user_stats(repo: Repository, user_id: int) -> Dict[str, Any]:
    """
    Dashboard statistics for a user.

    Args:
        repo: Repository
        user_id: User ID

    Returns:
        Dictionary with skill counts, active connections and token total

    Raises:
        NotFound: If the user does not exist
    """
    user = repo.find_user_by_id(user_id)
    if not user:
        raise NotFound("User", user_id)

    accepted = repo.find_connections_for_user(user_id, ConnectionStatus.ACCEPTED)

    return {
        "user_id": user_id,
        "total_tokens": get_token_balance(repo, user_id),
        "skills_learned": len(user.learning_skills),
        "skills_taught": len(user.teaching_skills),
        "active_connections": len(accepted),
    }

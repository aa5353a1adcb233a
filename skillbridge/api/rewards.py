# skillbridge/api/rewards.py
"""
Token Rewards API Router

Endpoints:
- GET /rewards/balance - My total earned tokens
- GET /rewards/history - My rewards, newest first
- GET /rewards/session/{session_id} - Reward issued for a session
"""

from fastapi import APIRouter, Depends, Query
from typing import List

from skillbridge.api.deps import get_current_user_id, get_repository
from skillbridge.errors import NotFound
from skillbridge.repository import Repository
from skillbridge.schemas.token import RewardResponse, TokenBalanceResponse
from skillbridge.services import reward_ledger

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("/balance", response_model=TokenBalanceResponse)
def get_my_balance(
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return {
        "user_id": current_user_id,
        "total_tokens": reward_ledger.get_token_balance(repo, current_user_id),
    }


@router.get("/history", response_model=List[RewardResponse])
def get_my_rewards(
    limit: int = Query(50, ge=1, le=200),
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return reward_ledger.get_reward_history(repo, current_user_id, limit)


@router.get("/session/{session_id}", response_model=RewardResponse)
def get_session_reward(
    session_id: str,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    reward = reward_ledger.get_reward(repo, session_id)
    if reward is None:
        raise NotFound("TokenReward", session_id)
    return reward

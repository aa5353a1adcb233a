# skillbridge/schemas/token.py
"""
Token Reward Pydantic Schemas
"""

from pydantic import BaseModel, Field
from typing import Optional


class RewardResponse(BaseModel):
    """Token reward for one session"""
    reward_id: int = Field(..., description="Reward identifier")
    session_id: str = Field(..., description="Session identifier")
    teacher_id: int = Field(..., description="Rewarded user ID")
    amount: int = Field(..., description="Tokens granted")
    created_at: Optional[str] = None
    created: Optional[bool] = Field(None, description="Whether this call issued the reward")


class TokenBalanceResponse(BaseModel):
    user_id: int
    total_tokens: int


class UserStatsResponse(BaseModel):
    """Dashboard statistics"""
    user_id: int
    total_tokens: int = Field(..., description="Tokens earned from all sessions")
    skills_learned: int
    skills_taught: int
    active_connections: int = Field(..., description="Accepted connections")

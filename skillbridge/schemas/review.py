# skillbridge/schemas/review.py
"""
Review & Consensus Pydantic Schemas
Request/response models for session reviews and their resolution
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from skillbridge.schemas.token import RewardResponse


# ======================
# SESSION SCHEMAS
# ======================

class SessionInfo(BaseModel):
    """Facts about a completed session, supplied by the session host"""
    session_id: str = Field(..., min_length=1, max_length=64, description="Opaque session identifier")
    teacher_id: int = Field(..., description="Teaching user ID")
    learner_id: int = Field(..., description="Learning user ID")
    duration_minutes: int = Field(..., ge=0, description="Session length in minutes")
    skill_ids: List[int] = Field(default_factory=list, description="Skills covered")


# ======================
# REVIEW SCHEMAS
# ======================

class SkillEvaluationIn(BaseModel):
    skill_id: int
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5 stars")
    feedback: Optional[str] = Field(None, max_length=1000)


class ReviewSubmit(SessionInfo):
    """Schema for submitting a review"""
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5 stars")
    feedback: Optional[str] = Field(None, max_length=1000, description="Review feedback (max 1000 chars)")
    skill_evaluations: List[SkillEvaluationIn] = Field(default_factory=list)

    @field_validator("feedback")
    @classmethod
    def validate_feedback(cls, v):
        """Blank feedback is treated as no feedback"""
        if v is None:
            return None
        return v.strip() or None


class ReviewResponse(BaseModel):
    review_id: int
    session_id: str
    reviewer_id: int
    rating: int
    feedback: Optional[str] = None
    skill_evaluations: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: Optional[str] = None


class ConsensusResponse(BaseModel):
    """Outcome of a consensus check"""
    session_id: str
    status: str = Field(..., description="pending_review or resolved")
    review_count: int
    average_rating: Optional[float] = None
    reward_eligible: Optional[bool] = None
    reward: Optional[RewardResponse] = None


class ReviewSubmitResponse(ConsensusResponse):
    """Response after submitting a review"""
    review: ReviewResponse


class SessionStatusResponse(BaseModel):
    session_id: str
    both_reviewed: bool
    status: str
    average_rating: float
    reviews: List[ReviewResponse]
    resolution: Optional[Dict[str, Any]] = None
    reward: Optional[RewardResponse] = None

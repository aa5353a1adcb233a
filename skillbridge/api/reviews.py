# skillbridge/api/reviews.py
"""
Review & Consensus API Router

Endpoints:
- POST /reviews/ - Submit (or overwrite) my review of a session
- POST /reviews/consensus - Re-run the consensus check for a session
- GET /reviews/session/{session_id} - Session review status
- GET /reviews/history - My reviews and rewards
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List

from skillbridge.api.deps import get_current_user_id, get_repository
from skillbridge.errors import Forbidden
from skillbridge.repository import Repository
from skillbridge.schemas.review import (
    ConsensusResponse,
    ReviewSubmit,
    ReviewSubmitResponse,
    SessionInfo,
    SessionStatusResponse,
)
from skillbridge.services import review_service
from skillbridge.services.review_service import SessionContext

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _session_context(payload: SessionInfo) -> SessionContext:
    return SessionContext(
        session_id=payload.session_id,
        teacher_id=payload.teacher_id,
        learner_id=payload.learner_id,
        duration_minutes=payload.duration_minutes,
        skill_ids=tuple(payload.skill_ids),
    )


# ======================
# SUBMIT REVIEW
# ======================
@router.post("/", response_model=ReviewSubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_review(
    payload: ReviewSubmit,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    """
    Submit a review for a completed session.

    Requirements:
    - Reviewer must be the session's teacher or learner
    - Rating must be 1-5 (also for each skill evaluation)
    - Resubmitting overwrites the previous review

    Returns:
        The stored review plus the session's consensus outcome
    """
    return review_service.submit_review(
        repo,
        _session_context(payload),
        reviewer_id=current_user_id,
        rating=payload.rating,
        feedback=payload.feedback,
        skill_evaluations=payload.skill_evaluations,
    )


@router.post("/consensus", response_model=ConsensusResponse)
def check_consensus(
    payload: SessionInfo,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    if current_user_id not in (payload.teacher_id, payload.learner_id):
        raise Forbidden("check consensus for this session", current_user_id,
                        session_id=payload.session_id)
    return review_service.check_consensus(repo, _session_context(payload))


# ======================
# QUERIES
# ======================
@router.get("/session/{session_id}", response_model=SessionStatusResponse)
def get_session_status(
    session_id: str,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return review_service.get_session_status(repo, session_id, requesting_user_id=current_user_id)


@router.get("/history", response_model=List[dict])
def get_my_history(
    limit: int = Query(50, ge=1, le=200),
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return review_service.get_session_history(repo, current_user_id, limit)

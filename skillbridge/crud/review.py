# skillbridge/crud/review.py
"""
Review CRUD Operations

Core database operations for session reviews, per-skill evaluations and
the once-only session resolution record.
"""

from typing import List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload

from skillbridge.models.review import Review, SkillEvaluation, SessionRecord, SessionResolution
from skillbridge.models.skill import Skill


# ======================
# REVIEW CRUD
# ======================

def _build_evaluations(evaluations: Sequence[dict]) -> List[SkillEvaluation]:
    return [
        SkillEvaluation(
            skill_id=item["skill_id"],
            rating=item["rating"],
            feedback=item.get("feedback"),
            position=position,
        )
        for position, item in enumerate(evaluations)
    ]


def create_review(
    db: Session,
    session_id: str,
    reviewer_id: int,
    rating: int,
    feedback: Optional[str] = None,
    evaluations: Sequence[dict] = (),
) -> Review:
    """
    Create a review with its ordered skill evaluations.

    Args:
        db: Database session
        session_id: Opaque session identifier
        reviewer_id: Reviewing user ID
        rating: Overall rating (1-5)
        feedback: Optional free text
        evaluations: Dicts with skill_id, rating and optional feedback

    Returns:
        Created Review object
    """
    review = Review(
        session_id=session_id,
        reviewer_id=reviewer_id,
        rating=rating,
        feedback=feedback,
    )
    review.skill_evaluations = _build_evaluations(evaluations)

    db.add(review)
    db.flush()
    return review


def replace_review(
    db: Session,
    review: Review,
    rating: int,
    feedback: Optional[str] = None,
    evaluations: Sequence[dict] = (),
) -> Review:
    """Overwrite rating, feedback and evaluations of an existing review."""
    review.rating = rating
    review.feedback = feedback
    review.skill_evaluations = _build_evaluations(evaluations)
    db.flush()
    return review


def get_review_by_session_and_reviewer(
    db: Session,
    session_id: str,
    reviewer_id: int,
) -> Optional[Review]:
    return db.query(Review).filter(
        Review.session_id == session_id,
        Review.reviewer_id == reviewer_id,
    ).first()


def get_reviews_by_session(db: Session, session_id: str) -> List[Review]:
    return (
        db.query(Review)
        .options(selectinload(Review.skill_evaluations))
        .filter(Review.session_id == session_id)
        .order_by(Review.id.asc())
        .populate_existing()
        .all()
    )


def get_reviews_by_reviewer(
    db: Session,
    reviewer_id: int,
    limit: int = 50,
    offset: int = 0,
) -> List[Review]:
    return (
        db.query(Review)
        .options(selectinload(Review.skill_evaluations))
        .filter(Review.reviewer_id == reviewer_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )


# ======================
# SESSION RESOLUTION
# ======================

def get_resolution(db: Session, session_id: str) -> Optional[SessionResolution]:
    return db.query(SessionResolution).filter(
        SessionResolution.session_id == session_id
    ).first()


def create_resolution(
    db: Session,
    session_id: str,
    teacher_id: int,
    learner_id: int,
    duration_minutes: int,
    average_rating: float,
    reward_eligible: bool,
) -> SessionResolution:
    resolution = SessionResolution(
        session_id=session_id,
        teacher_id=teacher_id,
        learner_id=learner_id,
        duration_minutes=duration_minutes,
        average_rating=average_rating,
        reward_eligible=reward_eligible,
    )
    db.add(resolution)
    db.flush()
    return resolution


# ======================
# SESSION RECORD
# ======================

def get_session_record(db: Session, session_id: str) -> Optional[SessionRecord]:
    return (
        db.query(SessionRecord)
        .options(selectinload(SessionRecord.skills))
        .filter(SessionRecord.session_id == session_id)
        .first()
    )


def create_session_record(
    db: Session,
    session_id: str,
    teacher_id: int,
    learner_id: int,
    duration_minutes: int,
    skill_ids: Sequence[int] = (),
) -> SessionRecord:
    """
    Record a session's participants, duration and covered skills.

    Args:
        db: Database session
        session_id: Opaque session identifier (UNIQUE)
        teacher_id: Teaching user ID
        learner_id: Learning user ID
        duration_minutes: Session length
        skill_ids: Skills covered; the caller has checked they exist

    Returns:
        Created SessionRecord object
    """
    record = SessionRecord(
        session_id=session_id,
        teacher_id=teacher_id,
        learner_id=learner_id,
        duration_minutes=duration_minutes,
    )
    ids = set(skill_ids)
    if ids:
        record.skills = set(db.query(Skill).filter(Skill.id.in_(ids)).all())

    db.add(record)
    db.flush()
    return record

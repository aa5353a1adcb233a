# skillbridge/services/review_service.py
"""
Review Consensus Service

Both participants of a session review it. The session stays pending-review
until two distinct reviewers have submitted; at that point it is resolved
exactly once and the resolution (average rating, reward eligibility) is
frozen. An eligible resolution triggers the reward ledger, which is
idempotent, so re-running the consensus check is always safe.

The first review records the session's participants, duration and skills.
Later reviews and consensus checks must agree with that record.

Every submission also refreshes the rolling rating aggregates of the skills
it evaluates, recomputed from the full evaluation history.
"""

import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Any, Dict, Iterable, List, Mapping, Optional, Sequence

from skillbridge import models
from skillbridge.config import settings
from skillbridge.errors import Forbidden, InvalidRating, InvalidRequest, NotFound, StorageFailure
from skillbridge.repository import Repository
from skillbridge.services import reward_ledger

logger = logging.getLogger(__name__)

STATUS_PENDING_REVIEW = "pending_review"
STATUS_RESOLVED = "resolved"

# Matches the session_id column width
MAX_SESSION_ID_LENGTH = 64


@dataclass(frozen=True)
class SessionContext:
    """Caller-supplied facts about a completed session."""

    session_id: str
    teacher_id: int
    learner_id: int
    duration_minutes: int
    skill_ids: Sequence[int] = field(default_factory=tuple)

    @property
    def participants(self) -> tuple:
        return (self.teacher_id, self.learner_id)


# ======================
# VALIDATION
# ======================

def _is_valid_rating(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 5


def validate_rating(rating, field_name: str = "rating", **ids) -> int:
    if not _is_valid_rating(rating):
        raise InvalidRating(rating, field=field_name, **ids)
    return rating


def _validate_session(session: SessionContext) -> None:
    if not session.session_id or not str(session.session_id).strip():
        raise InvalidRequest("Session identifier is required")
    if len(session.session_id) > MAX_SESSION_ID_LENGTH:
        raise InvalidRequest(
            f"Session identifier must be {MAX_SESSION_ID_LENGTH} characters or less",
            session_id=session.session_id[:MAX_SESSION_ID_LENGTH],
        )
    if session.teacher_id == session.learner_id:
        raise InvalidRequest(
            "Teacher and learner must be different users",
            session_id=session.session_id,
            user_id=session.teacher_id,
        )
    if session.duration_minutes is None or session.duration_minutes < 0:
        raise InvalidRequest(
            "Session duration cannot be negative",
            session_id=session.session_id,
            duration_minutes=session.duration_minutes,
        )


def _normalize_evaluations(
    repo: Repository,
    session_id: str,
    evaluations: Optional[Iterable[Any]],
    session_skill_ids: AbstractSet[int] = frozenset(),
) -> List[Dict[str, Any]]:
    """
    Accept dicts or pydantic models; validate ratings, skills and duplicates.

    When the session lists its skills, only those can be evaluated.
    """
    normalized = []
    seen = set()

    for index, item in enumerate(evaluations or ()):
        data = item if isinstance(item, Mapping) else item.model_dump()
        skill_id = data.get("skill_id")
        rating = data.get("rating")

        validate_rating(
            rating,
            field_name=f"skill_evaluations[{index}].rating",
            session_id=session_id,
            skill_id=skill_id,
        )
        if skill_id in seen:
            raise InvalidRequest(
                "Each skill can be evaluated only once per review",
                session_id=session_id,
                skill_id=skill_id,
            )
        if repo.find_skill_by_id(skill_id) is None:
            raise NotFound("Skill", skill_id)
        if session_skill_ids and skill_id not in session_skill_ids:
            raise InvalidRequest(
                "Skill was not covered in this session",
                session_id=session_id,
                skill_id=skill_id,
            )

        seen.add(skill_id)
        normalized.append({
            "skill_id": skill_id,
            "rating": rating,
            "feedback": data.get("feedback"),
        })

    return normalized


# ======================
# SESSION FACTS
# ======================

def _match_record(record: models.SessionRecord, session: SessionContext) -> None:
    """Reject caller facts that disagree with the recorded session."""
    mismatched = [
        name for name in ("teacher_id", "learner_id", "duration_minutes")
        if getattr(record, name) != getattr(session, name)
    ]
    # An empty skill list means the caller does not restate the skills
    if session.skill_ids and set(session.skill_ids) != record.skill_ids:
        mismatched.append("skill_ids")

    if mismatched:
        raise InvalidRequest(
            "Session facts do not match the recorded session",
            session_id=session.session_id,
            fields=mismatched,
        )


def _check_session_skills(repo: Repository, session: SessionContext) -> AbstractSet[int]:
    skill_ids = frozenset(session.skill_ids)
    for skill_id in sorted(skill_ids):
        if repo.find_skill_by_id(skill_id) is None:
            raise NotFound("Skill", skill_id)
    return skill_ids


def _record_session(repo: Repository, session: SessionContext) -> models.SessionRecord:
    """Persist the session facts on first sight; a lost race must still agree."""
    record = repo.create_session_record(
        session.session_id,
        session.teacher_id,
        session.learner_id,
        session.duration_minutes,
        sorted(set(session.skill_ids)),
    )
    if record is None:
        record = repo.find_session_record(session.session_id)
        if record is None:
            raise StorageFailure("create_session_record")
        _match_record(record, session)
    else:
        logger.info("Session %s recorded: teacher %s, learner %s, %s minutes",
                    session.session_id, session.teacher_id, session.learner_id,
                    session.duration_minutes)
    return record


# ======================
# SERIALIZATION
# ======================

def serialize_review(review: models.Review) -> Dict[str, Any]:
    return {
        "review_id": review.id,
        "session_id": review.session_id,
        "reviewer_id": review.reviewer_id,
        "rating": review.rating,
        "feedback": review.feedback,
        "skill_evaluations": [
            {"skill_id": e.skill_id, "rating": e.rating, "feedback": e.feedback}
            for e in review.skill_evaluations
        ],
        "created_at": review.created_at.isoformat() if review.created_at else None,
    }


def serialize_resolution(resolution: Optional[models.SessionResolution]) -> Optional[Dict[str, Any]]:
    if resolution is None:
        return None
    return {
        "session_id": resolution.session_id,
        "teacher_id": resolution.teacher_id,
        "learner_id": resolution.learner_id,
        "duration_minutes": resolution.duration_minutes,
        "average_rating": resolution.average_rating,
        "reward_eligible": resolution.reward_eligible,
        "resolved_at": resolution.resolved_at.isoformat() if resolution.resolved_at else None,
    }


# ======================
# SKILL AGGREGATES
# ======================

def refresh_skill_aggregates(repo: Repository, skill_ids: Iterable[int]) -> Dict[int, tuple]:
    """
    Recompute average and count for each skill from every evaluation on record.

    Last writer wins under concurrency; the values are statistics, not balances.
    """
    updated = {}
    for skill_id in sorted(set(skill_ids)):
        average, count = repo.calculate_skill_rating(skill_id)
        repo.update_skill_aggregate(skill_id, average, count)
        updated[skill_id] = (average, count)
    return updated


def recalculate_skill_aggregates(repo: Repository) -> Dict[str, Any]:
    """Recompute every evaluated skill's aggregate (maintenance)."""
    skill_ids = repo.find_evaluated_skill_ids()
    updated = refresh_skill_aggregates(repo, skill_ids)
    return {
        "total_skills": len(skill_ids),
        "updated_count": len(updated),
        "message": "Skill rating recalculation complete",
    }


# ======================
# CONSENSUS
# ======================

def _evaluate(
    repo: Repository,
    record: models.SessionRecord,
    rate: Optional[int],
    threshold: Optional[float],
) -> Dict[str, Any]:
    if threshold is None:
        threshold = reward_ledger.RewardPolicy.rating_threshold()

    participants = record.participants
    reviews = [
        r for r in repo.find_reviews_by_session(record.session_id)
        if r.reviewer_id in participants
    ]
    reviewers = {r.reviewer_id for r in reviews}
    resolution = repo.find_resolution(record.session_id)

    if resolution is None:
        if len(reviewers) < 2:
            return {
                "session_id": record.session_id,
                "status": STATUS_PENDING_REVIEW,
                "review_count": len(reviews),
                "average_rating": None,
                "reward_eligible": None,
                "reward": None,
            }

        average = sum(r.rating for r in reviews) / len(reviews)
        resolution = repo.create_resolution(
            record.session_id,
            record.teacher_id,
            record.learner_id,
            record.duration_minutes,
            average,
            average >= threshold,
        )
        if resolution is None:
            resolution = repo.find_resolution(record.session_id)
            if resolution is None:
                raise StorageFailure("create_resolution")
        else:
            logger.info(
                "Session %s resolved: average %.2f, reward %s",
                record.session_id,
                average,
                "granted" if resolution.reward_eligible else "withheld",
            )

    reward = None
    if resolution.reward_eligible:
        reward = reward_ledger.issue_reward(
            repo,
            resolution.session_id,
            resolution.teacher_id,
            resolution.duration_minutes,
            rate=rate,
        )

    return {
        "session_id": record.session_id,
        "status": STATUS_RESOLVED,
        "review_count": len(reviews),
        "average_rating": resolution.average_rating,
        "reward_eligible": resolution.reward_eligible,
        "reward": reward,
    }


def check_consensus(
    repo: Repository,
    session: SessionContext,
    rate: Optional[int] = None,
    threshold: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Decide the session's outcome from the participants' reviews.

    Safe to call any number of times: the first call that sees two distinct
    reviewers records the resolution; every later call reuses it and the
    reward ledger deduplicates issuance. Participants, duration and skills
    come from the recorded session, so the caller's facts must match it.

    Args:
        repo: Repository
        session: Session facts (participants, duration)
        rate: Tokens per minute (defaults to REWARD_RATE_PER_MINUTE)
        threshold: Minimum average for a reward (defaults to REWARD_RATING_THRESHOLD)

    Returns:
        Dictionary with status, average rating, eligibility and reward

    Raises:
        InvalidRequest: If the session facts are malformed or disagree with the record
    """
    _validate_session(session)

    record = repo.find_session_record(session.session_id)
    if record is None:
        return {
            "session_id": session.session_id,
            "status": STATUS_PENDING_REVIEW,
            "review_count": 0,
            "average_rating": None,
            "reward_eligible": None,
            "reward": None,
        }

    _match_record(record, session)
    return _evaluate(repo, record, rate, threshold)


# ======================
# REVIEW SUBMISSION
# ======================

def submit_review(
    repo: Repository,
    session: SessionContext,
    reviewer_id: int,
    rating: int,
    feedback: Optional[str] = None,
    skill_evaluations: Optional[Iterable[Any]] = None,
    rate: Optional[int] = None,
    threshold: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Store a participant's review and re-evaluate the session.

    A second submission by the same reviewer overwrites their earlier review
    (rating, feedback and evaluations). It can still complete consensus but
    never changes a resolution that already exists.

    Args:
        repo: Repository
        session: Session facts supplied by the caller
        reviewer_id: Reviewing user (teacher or learner of the session)
        rating: Overall rating (1-5)
        feedback: Optional free text
        skill_evaluations: Per-skill ratings: skill_id, rating (1-5), feedback
        rate: Tokens per minute override
        threshold: Reward threshold override

    Returns:
        Dictionary with the stored review and the consensus outcome

    Raises:
        InvalidRating: If any rating is outside 1-5
        InvalidRequest: If the session facts or feedback are malformed, or the
            facts disagree with those recorded by the first review
        Forbidden: If the reviewer is not a participant
        NotFound: If the reviewer or an evaluated skill does not exist
    """
    validate_rating(rating, session_id=session.session_id, reviewer_id=reviewer_id)
    _validate_session(session)

    if reviewer_id not in session.participants:
        raise Forbidden("review this session", reviewer_id, session_id=session.session_id)

    if feedback is not None:
        feedback = feedback.strip() or None
    if feedback and len(feedback) > settings.MAX_FEEDBACK_LENGTH:
        raise InvalidRequest(
            f"Feedback must be {settings.MAX_FEEDBACK_LENGTH} characters or less",
            session_id=session.session_id,
        )

    if repo.find_user_by_id(reviewer_id) is None:
        raise NotFound("User", reviewer_id)

    record = repo.find_session_record(session.session_id)
    if record is not None:
        _match_record(record, session)
        session_skill_ids = record.skill_ids
    else:
        session_skill_ids = _check_session_skills(repo, session)

    evaluations = _normalize_evaluations(
        repo, session.session_id, skill_evaluations, session_skill_ids
    )
    if record is None:
        record = _record_session(repo, session)
        if record.skill_ids != session_skill_ids:
            # Lost the race to a submission that listed the skills
            evaluations = _normalize_evaluations(
                repo, session.session_id, evaluations, record.skill_ids
            )

    previous = repo.find_review(session.session_id, reviewer_id)
    touched_skills = {e["skill_id"] for e in evaluations}

    if previous is None:
        review = repo.create_review(session.session_id, reviewer_id, rating, feedback, evaluations)
        if review is None:
            # Same reviewer submitted concurrently; overwrite their row.
            previous = repo.find_review(session.session_id, reviewer_id)
            if previous is None:
                raise StorageFailure("create_review")

    if previous is not None:
        touched_skills |= {e.skill_id for e in previous.skill_evaluations}
        review = repo.replace_review(previous, rating, feedback, evaluations)
        logger.info("Review %s for session %s overwritten by user %s",
                    review.id, session.session_id, reviewer_id)
    else:
        logger.info("Review %s stored for session %s by user %s",
                    review.id, session.session_id, reviewer_id)

    refresh_skill_aggregates(repo, touched_skills)
    outcome = _evaluate(repo, record, rate, threshold)

    return {
        "review": serialize_review(review),
        **outcome,
    }


# ======================
# RETRIEVAL
# ======================

def get_session_status(
    repo: Repository,
    session_id: str,
    requesting_user_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Reviews, resolution and reward of a session.

    When requesting_user_id is given, only the recorded participants may
    read a session that has reviews.
    """
    if requesting_user_id is not None:
        record = repo.find_session_record(session_id)
        if record is not None and requesting_user_id not in record.participants:
            raise Forbidden("view this session", requesting_user_id, session_id=session_id)

    reviews = repo.find_reviews_by_session(session_id)
    resolution = repo.find_resolution(session_id)
    current_average = (
        sum(r.rating for r in reviews) / len(reviews) if reviews else 0.0
    )

    return {
        "session_id": session_id,
        "both_reviewed": len({r.reviewer_id for r in reviews}) >= 2,
        "status": STATUS_RESOLVED if resolution else STATUS_PENDING_REVIEW,
        "average_rating": resolution.average_rating if resolution else current_average,
        "reviews": [serialize_review(r) for r in reviews],
        "resolution": serialize_resolution(resolution),
        "reward": reward_ledger.get_reward(repo, session_id),
    }


def get_session_history(repo: Repository, user_id: int, limit: int = 50) -> List[Dict[str, Any]]:
    """
    Reviews the user wrote and rewards the user earned, newest first.

    Args:
        repo: Repository
        user_id: User ID
        limit: Maximum entries of each kind

    Returns:
        List of {"type", "data", "timestamp"} dictionaries
    """
    history = [
        {"type": "review", "data": serialize_review(r), "timestamp": r.created_at}
        for r in repo.find_reviews_by_reviewer(user_id, limit)
    ]
    history += [
        {"type": "reward", "data": reward_ledger.serialize_reward(t), "timestamp": t.created_at}
        for t in repo.find_rewards_by_teacher(user_id, limit)
    ]

    history.sort(key=lambda item: (item["timestamp"] is not None, item["timestamp"]), reverse=True)
    for item in history:
        item["timestamp"] = item["timestamp"].isoformat() if item["timestamp"] else None
    return history

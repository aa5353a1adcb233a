# skillbridge/models/review.py
from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, TIMESTAMP, Float, Boolean,
    CheckConstraint, UniqueConstraint, Table, func,
)
from sqlalchemy.orm import relationship

from skillbridge.database import Base


session_skills = Table(
    "session_skills",
    Base.metadata,
    Column("session_record_id", Integer, ForeignKey("session_records.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
)


class SessionRecord(Base):
    """Session facts fixed by the first review; every later call must agree."""

    __tablename__ = "session_records"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), unique=True, nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    __table_args__ = (
        CheckConstraint("teacher_id <> learner_id", name="check_session_distinct_participants"),
        CheckConstraint("duration_minutes >= 0", name="check_session_duration_non_negative"),
    )

    skills = relationship("Skill", secondary=session_skills, collection_class=set)

    @property
    def participants(self) -> tuple:
        return (self.teacher_id, self.learner_id)

    @property
    def skill_ids(self) -> frozenset:
        return frozenset(skill.id for skill in self.skills)


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    # Opaque session identifier supplied by the caller
    session_id = Column(String(64), nullable=False, index=True)
    reviewer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    feedback = Column(Text)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_review_rating_range"),
        UniqueConstraint("session_id", "reviewer_id", name="uq_review_session_reviewer"),
    )

    reviewer = relationship("User")
    skill_evaluations = relationship(
        "SkillEvaluation",
        back_populates="review",
        cascade="all, delete-orphan",
        order_by="SkillEvaluation.position",
    )


class SkillEvaluation(Base):
    __tablename__ = "skill_evaluations"

    id = Column(Integer, primary_key=True, index=True)
    review_id = Column(Integer, ForeignKey("reviews.id", ondelete="CASCADE"), nullable=False, index=True)
    skill_id = Column(Integer, ForeignKey("skills.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    feedback = Column(Text)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="check_evaluation_rating_range"),
    )

    review = relationship("Review", back_populates="skill_evaluations")
    skill = relationship("Skill", back_populates="evaluations")


class SessionResolution(Base):
    """Once-only consensus decision for a session; never updated after insert."""

    __tablename__ = "session_resolutions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(64), unique=True, nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    learner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    average_rating = Column(Float, nullable=False)
    reward_eligible = Column(Boolean, nullable=False)
    resolved_at = Column(TIMESTAMP, server_default=func.now())

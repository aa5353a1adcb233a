# skillbridge/models/skill.py
from sqlalchemy import Column, Integer, String, Float, TIMESTAMP, func
from sqlalchemy.orm import relationship

from skillbridge.database import Base
from skillbridge.models.user import user_learning_skills, user_teaching_skills


class Skill(Base):
    __tablename__ = "skills"

    id = Column(Integer, primary_key=True, index=True)
    # Exact, case-sensitive match
    name = Column(String(100), unique=True, nullable=False, index=True)
    average_rating = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    teachers = relationship(
        "User", secondary=user_teaching_skills, back_populates="teaching_skills"
    )
    learners = relationship(
        "User", secondary=user_learning_skills, back_populates="learning_skills"
    )
    evaluations = relationship("SkillEvaluation", back_populates="skill")

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, TIMESTAMP, Table, func
from sqlalchemy.orm import relationship

from skillbridge.database import Base


# Composite primary keys give the teach/learn relations set semantics
user_teaching_skills = Table(
    "user_teaching_skills",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
)

user_learning_skills = Table(
    "user_learning_skills",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("skill_id", Integer, ForeignKey("skills.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100))
    email = Column(String(255), unique=True, index=True, nullable=False)
    location = Column(String(150))
    image = Column(String(255))
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, onupdate=func.now())

    teaching_skills = relationship(
        "Skill",
        secondary=user_teaching_skills,
        back_populates="teachers",
        collection_class=set,
    )
    learning_skills = relationship(
        "Skill",
        secondary=user_learning_skills,
        back_populates="learners",
        collection_class=set,
    )
    events = relationship("Event", back_populates="user", cascade="all, delete-orphan")
    sent_connections = relationship(
        "Connection", foreign_keys="Connection.from_user_id", back_populates="from_user"
    )
    received_connections = relationship(
        "Connection", foreign_keys="Connection.to_user_id", back_populates="to_user"
    )

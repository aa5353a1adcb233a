# skillbridge/models/__init__.py
# Import models in dependency order
from .user import User, user_teaching_skills, user_learning_skills
from .skill import Skill
from .event import Event
from .connection import Connection, ConnectionStatus, ChatRoom, Message
from .review import Review, SkillEvaluation, SessionRecord, SessionResolution, session_skills
from .token import TokenReward

__all__ = [
    "User",
    "user_teaching_skills",
    "user_learning_skills",
    "Skill",
    "Event",
    "Connection",
    "ConnectionStatus",
    "ChatRoom",
    "Message",
    "Review",
    "SkillEvaluation",
    "SessionRecord",
    "SessionResolution",
    "session_skills",
    "TokenReward",
]

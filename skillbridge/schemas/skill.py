from pydantic import BaseModel, Field
from typing import List, Optional

# ======================
# SKILL SCHEMAS
# ======================

# skillbridge/schemas/skill.py
class SkillResponse(BaseModel):
    skill_id: int
    name: str
    average_rating: float = 0.0
    rating_count: int = 0


# ======================
# USER_SKILL SCHEMAS
# ======================

class UserSkillsUpdate(BaseModel):
    teaching_skills: List[str] = Field(default_factory=list, description="Skill names the user teaches")
    learning_skills: List[str] = Field(default_factory=list, description="Skill names the user learns")


class OnboardingRequest(UserSkillsUpdate):
    name: str = Field(..., min_length=1, max_length=100)
    location: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = Field(None, max_length=500, description="Image URL")


class UserSkillsResponse(BaseModel):
    user_id: int
    teaching_skills: List[str]
    learning_skills: List[str]
    name: Optional[str] = None
    location: Optional[str] = None
    onboarding_completed: Optional[bool] = None


# ======================
# EVENT SCHEMAS
# ======================

class EventCreate(BaseModel):
    skill: str = Field(..., min_length=1, max_length=100)
    type: str = Field(..., description="'teach' or 'learn'")
    level: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)


class EventResponse(BaseModel):
    event_id: int
    user_id: int
    skill: Optional[str] = None
    type: str
    level: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None

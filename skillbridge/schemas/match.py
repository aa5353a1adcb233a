# skillbridge/schemas/match.py
"""
Match Suggestion Schemas
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class MatchingSkills(BaseModel):
    teaching: int = Field(..., description="Skills you can teach this user")
    learning: int = Field(..., description="Skills this user can teach you")


class MatchResponse(BaseModel):
    """One ranked match suggestion"""
    user_id: int
    name: Optional[str] = None
    location: Optional[str] = None
    image: Optional[str] = None
    teaching_skills: List[str] = Field(default_factory=list)
    learning_skills: List[str] = Field(default_factory=list)
    match_score: int = Field(..., description="teaching + learning overlap")
    matching_skills: MatchingSkills

# skillbridge/api/skills.py
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from skillbridge.api.deps import get_current_user_id, get_repository
from skillbridge.repository import Repository
from skillbridge.schemas.skill import EventCreate, EventResponse, SkillResponse
from skillbridge.services import skill_catalog

router = APIRouter(prefix="/skills", tags=["skills"])


# ======================
# SKILLS
# ======================

@router.get("/", response_model=List[SkillResponse])
def list_skills(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    repo: Repository = Depends(get_repository),
):
    return skill_catalog.list_skills(repo, skip, limit)


# ======================
# EVENTS
# ======================

@router.get("/events", response_model=List[EventResponse])
def list_events(
    type: Optional[str] = Query(None, description="'teach' or 'learn'"),
    level: Optional[str] = None,
    search: Optional[str] = Query(None, description="Substring of the skill name"),
    limit: int = Query(50, ge=1, le=200),
    repo: Repository = Depends(get_repository),
):
    return skill_catalog.list_events(repo, type, level, search, limit)


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    payload: EventCreate,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return skill_catalog.create_event(
        repo,
        current_user_id,
        payload.skill,
        payload.type,
        payload.level,
        payload.description,
    )


@router.get("/{skill_id}", response_model=SkillResponse)
def get_skill(skill_id: int, repo: Repository = Depends(get_repository)):
    return skill_catalog.get_skill_stats(repo, skill_id)

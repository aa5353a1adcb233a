# skillbridge/api/users.py
from fastapi import APIRouter, Depends

from skillbridge.api.deps import get_current_user_id, get_repository
from skillbridge.repository import Repository
from skillbridge.schemas.skill import OnboardingRequest, UserSkillsResponse, UserSkillsUpdate
from skillbridge.schemas.token import UserStatsResponse
from skillbridge.services import reward_ledger, skill_catalog

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/stats", response_model=UserStatsResponse)
def get_my_stats(
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return reward_ledger.get_user_stats(repo, current_user_id)


@router.put("/me/skills", response_model=UserSkillsResponse)
def update_my_skills(
    payload: UserSkillsUpdate,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    """Replace my teaching and learning skills (unknown names are created)."""
    return skill_catalog.set_user_skills(
        repo, current_user_id, payload.teaching_skills, payload.learning_skills
    )


@router.post("/me/onboarding", response_model=UserSkillsResponse)
def complete_onboarding(
    payload: OnboardingRequest,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return skill_catalog.complete_onboarding(
        repo,
        current_user_id,
        name=payload.name,
        location=payload.location,
        teaches=payload.teaching_skills,
        learns=payload.learning_skills,
        image=payload.image,
    )

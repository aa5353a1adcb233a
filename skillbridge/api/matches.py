# skillbridge/api/matches.py
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from skillbridge.api.deps import get_current_user_id, get_repository
from skillbridge.repository import Repository
from skillbridge.schemas.match import MatchResponse
from skillbridge.services import matching

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get("/", response_model=List[MatchResponse])
def get_my_matches(
    min_score: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    """Ranked users whose skills complement mine, excluding existing connections."""
    return matching.find_matches(repo, current_user_id, min_score=min_score, limit=limit)

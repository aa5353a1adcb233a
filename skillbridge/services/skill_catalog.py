# skillbridge/services/skill_catalog.py
"""
Skill Catalog

Deduplicated registry of skill names. Skills are created on first
reference (upsert-by-name, exact case) and users' teach/learn sets are
replaced wholesale whenever they are edited.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from skillbridge import models
from skillbridge.errors import InvalidRequest, NotFound
from skillbridge.repository import Repository

logger = logging.getLogger(__name__)

MAX_SKILL_NAME_LENGTH = 100
EVENT_TYPES = ("teach", "learn")


def serialize_skill(skill: models.Skill) -> Dict[str, Any]:
    return {
        "skill_id": skill.id,
        "name": skill.name,
        "average_rating": round(skill.average_rating or 0.0, 2),
        "rating_count": skill.rating_count or 0,
    }


def normalize_skill_names(names: Iterable[str]) -> List[str]:
    """Strip whitespace, drop blanks and duplicates, keep first-seen order."""
    cleaned = []
    for raw in names or ():
        if raw is None:
            continue
        name = str(raw).strip()
        if not name:
            continue
        if len(name) > MAX_SKILL_NAME_LENGTH:
            raise InvalidRequest(
                f"Skill name must be {MAX_SKILL_NAME_LENGTH} characters or less", name=name
            )
        cleaned.append(name)
    return list(dict.fromkeys(cleaned))


def ensure_skills(repo: Repository, names: Iterable[str]) -> List[models.Skill]:
    names = normalize_skill_names(names)
    if not names:
        return []
    return repo.find_skills_by_name(names)


def set_user_skills(
    repo: Repository,
    user_id: int,
    teaches: Iterable[str],
    learns: Iterable[str],
) -> Dict[str, Any]:
    """
    Replace a user's teaching and learning skill sets.

    Args:
        repo: Repository
        user_id: User ID
        teaches: Skill names the user can teach
        learns: Skill names the user wants to learn

    Returns:
        Dictionary with the user's resulting skill names

    Raises:
        NotFound: If the user does not exist
    """
    user = repo.find_user_by_id(user_id)
    if not user:
        raise NotFound("User", user_id)

    teach_names = normalize_skill_names(teaches)
    learn_names = normalize_skill_names(learns)
    skills = {s.name: s for s in ensure_skills(repo, teach_names + learn_names)}

    repo.set_user_skills(
        user,
        [skills[name] for name in teach_names],
        [skills[name] for name in learn_names],
    )
    logger.info("User %s now teaches %s skills and learns %s", user_id,
                len(teach_names), len(learn_names))

    return {
        "user_id": user_id,
        "teaching_skills": sorted(s.name for s in user.teaching_skills),
        "learning_skills": sorted(s.name for s in user.learning_skills),
    }


def complete_onboarding(
    repo: Repository,
    user_id: int,
    name: str,
    location: Optional[str],
    teaches: Iterable[str],
    learns: Iterable[str],
    image: Optional[str] = None,
) -> Dict[str, Any]:
    user = repo.find_user_by_id(user_id)
    if not user:
        raise NotFound("User", user_id)
    if not name or not name.strip():
        raise InvalidRequest("Name is required", user_id=user_id)

    repo.update_user_profile(
        user,
        name=name.strip(),
        location=location,
        image=image,
        onboarding_completed=True,
    )
    result = set_user_skills(repo, user_id, teaches, learns)
    return {**result, "name": user.name, "location": user.location, "onboarding_completed": True}


def list_skills(repo: Repository, skip: int = 0, limit: int = 100) -> List[Dict[str, Any]]:
    return [serialize_skill(s) for s in repo.list_skills(skip, limit)]


def get_skill_stats(repo: Repository, skill_id: int) -> Dict[str, Any]:
    skill = repo.find_skill_by_id(skill_id)
    if not skill:
        raise NotFound("Skill", skill_id)
    return serialize_skill(skill)


# ======================
# EVENTS
# ======================

def serialize_event(event: models.Event) -> Dict[str, Any]:
    return {
        "event_id": event.id,
        "user_id": event.user_id,
        "skill": event.skill.name if event.skill else None,
        "type": event.type,
        "level": event.level,
        "description": event.description,
        "created_at": event.created_at.isoformat() if event.created_at else None,
    }


def create_event(
    repo: Repository,
    user_id: int,
    skill_name: str,
    event_type: str,
    level: Optional[str] = None,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    if event_type not in EVENT_TYPES:
        raise InvalidRequest("Event type must be 'teach' or 'learn'", type=event_type)
    if not repo.find_user_by_id(user_id):
        raise NotFound("User", user_id)

    skills = ensure_skills(repo, [skill_name])
    if not skills:
        raise InvalidRequest("Skill name is required", user_id=user_id)

    event = repo.create_event(user_id, skills[0].id, event_type, level, description)
    return serialize_event(event)


def list_events(
    repo: Repository,
    event_type: Optional[str] = None,
    level: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    return [serialize_event(e) for e in repo.list_events(event_type, level, search, limit)]

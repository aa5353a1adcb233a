# skillbridge/crud/skill.py
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from skillbridge import models


# ============================
# SKILL TABLE
# ============================

def get_skill(db: Session, skill_id: int) -> Optional[models.Skill]:
    return db.query(models.Skill).filter(models.Skill.id == skill_id).first()


def get_skills_by_names(db: Session, names: Iterable[str]) -> List[models.Skill]:
    # Exact, case-sensitive match
    names = list(set(names))
    if not names:
        return []
    return db.query(models.Skill).filter(models.Skill.name.in_(names)).all()


def upsert_skills_by_name(db: Session, names: Iterable[str]) -> List[models.Skill]:
    """
    Create any missing skills and return all requested ones.

    Args:
        db: Database session
        names: Skill names, already normalised by the caller

    Returns:
        List of Skill objects, one per distinct name
    """
    wanted = list(dict.fromkeys(names))
    existing = {skill.name: skill for skill in get_skills_by_names(db, wanted)}

    for name in wanted:
        if name not in existing:
            skill = models.Skill(name=name, average_rating=0.0, rating_count=0)
            db.add(skill)
            existing[name] = skill

    db.flush()
    return [existing[name] for name in wanted]


def list_skills(db: Session, skip: int = 0, limit: int = 100) -> List[models.Skill]:
    return db.query(models.Skill).order_by(models.Skill.name).offset(skip).limit(limit).all()


# ============================
# RATING AGGREGATES
# ============================

def calculate_skill_rating(db: Session, skill_id: int) -> Tuple[float, int]:
    """
    Calculate mean and count of every evaluation ever recorded for a skill.

    Args:
        db: Database session
        skill_id: Skill identifier

    Returns:
        Tuple of (average_rating, rating_count)
    """
    result = db.query(
        func.avg(models.SkillEvaluation.rating).label("avg_rating"),
        func.count(models.SkillEvaluation.id).label("total"),
    ).filter(
        models.SkillEvaluation.skill_id == skill_id
    ).first()

    avg_rating = float(result.avg_rating) if result.avg_rating is not None else 0.0
    total = int(result.total) if result.total else 0

    return (avg_rating, total)


def update_skill_aggregate(
    db: Session,
    skill_id: int,
    average_rating: float,
    rating_count: int,
) -> Optional[models.Skill]:
    skill = get_skill(db, skill_id)
    if not skill:
        return None

    skill.average_rating = average_rating
    skill.rating_count = rating_count
    db.flush()
    return skill


def get_evaluated_skill_ids(db: Session) -> List[int]:
    rows = db.query(models.SkillEvaluation.skill_id).distinct().all()
    return [row[0] for row in rows]

from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from skillbridge import models


def get_event(db: Session, event_id: int) -> Optional[models.Event]:
    return db.query(models.Event).filter(models.Event.id == event_id).first()


def create_event(
    db: Session,
    user_id: int,
    skill_id: int,
    event_type: str,
    level: Optional[str] = None,
    description: Optional[str] = None,
) -> models.Event:
    event = models.Event(
        user_id=user_id,
        skill_id=skill_id,
        type=event_type,
        level=level or "beginner",
        description=description,
    )
    db.add(event)
    db.flush()
    return event


def list_events(
    db: Session,
    event_type: Optional[str] = None,
    level: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = 50,
) -> List[models.Event]:
    """
    List events newest first, optionally filtered.

    Args:
        db: Database session
        event_type: 'teach' / 'learn' filter
        level: Level filter
        search: Case-insensitive match on description or skill name

    Returns:
        List of Event objects with skill loaded
    """
    query = db.query(models.Event).options(joinedload(models.Event.skill))

    if event_type:
        query = query.filter(models.Event.type == event_type)
    if level:
        query = query.filter(models.Event.level == level)
    if search:
        pattern = f"%{search}%"
        query = query.join(models.Skill, models.Event.skill_id == models.Skill.id).filter(
            or_(
                models.Event.description.ilike(pattern),
                models.Skill.name.ilike(pattern),
            )
        )

    return query.order_by(models.Event.created_at.desc(), models.Event.id.desc()).limit(limit).all()

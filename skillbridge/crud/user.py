from typing import Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from skillbridge import models


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def create_user(
    db: Session,
    email: str,
    name: Optional[str] = None,
    location: Optional[str] = None,
) -> models.User:
    user = models.User(email=email, name=name, location=location)
    db.add(user)
    db.flush()
    return user


def get_users_with_skills(db: Session, exclude_user_id: Optional[int] = None) -> List[models.User]:
    """
    Load every user together with both skill sets in two extra queries.

    Args:
        db: Database session
        exclude_user_id: Optional user to leave out (the current user)

    Returns:
        List of User objects with teaching/learning skills loaded
    """
    query = db.query(models.User).options(
        selectinload(models.User.teaching_skills),
        selectinload(models.User.learning_skills),
    )
    if exclude_user_id is not None:
        query = query.filter(models.User.id != exclude_user_id)
    return query.order_by(models.User.id).all()


def update_user_profile(
    db: Session,
    user: models.User,
    name: Optional[str] = None,
    location: Optional[str] = None,
    image: Optional[str] = None,
    onboarding_completed: Optional[bool] = None,
) -> models.User:
    if name is not None:
        user.name = name
    if location is not None:
        user.location = location
    if image is not None:
        user.image = image
    if onboarding_completed is not None:
        user.onboarding_completed = onboarding_completed
    db.flush()
    return user


def set_user_skills(
    db: Session,
    user: models.User,
    teaching: Iterable[models.Skill],
    learning: Iterable[models.Skill],
) -> models.User:
    """Replace both skill sets of a user."""
    user.teaching_skills = set(teaching)
    user.learning_skills = set(learning)
    db.flush()
    return user

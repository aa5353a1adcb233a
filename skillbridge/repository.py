"""
Store boundary for the SkillBridge engine.

``Repository`` declares what the engine needs from a transactional store;
services receive an instance explicitly and never touch a database session.
``SqlRepository`` implements it over a SQLAlchemy ``Session``.

Write operations are atomic units: each one commits on success and rolls
back on failure. Find-or-create writes (connections, chat rooms, reviews,
resolutions, rewards) rely on UNIQUE constraints and return ``None`` when a
concurrent writer got there first, so the caller can re-read the winner.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Sequence, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from skillbridge import models
from skillbridge.crud import connection as connection_crud
from skillbridge.crud import event as event_crud
from skillbridge.crud import review as review_crud
from skillbridge.crud import skill as skill_crud
from skillbridge.crud import token as token_crud
from skillbridge.crud import user as user_crud
from skillbridge.errors import StorageFailure
from skillbridge.models.connection import ConnectionStatus

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Repository(ABC):
    """Contract between the engine and the persistence layer."""

    # ---- users & skills ----

    @abstractmethod
    def find_user_by_id(self, user_id: int) -> Optional[models.User]: ...

    @abstractmethod
    def find_candidate_users(self, exclude_user_id: int) -> List[models.User]: ...

    @abstractmethod
    def update_user_profile(self, user: models.User, **fields) -> models.User: ...

    @abstractmethod
    def set_user_skills(
        self,
        user: models.User,
        teaching: Sequence[models.Skill],
        learning: Sequence[models.Skill],
    ) -> models.User: ...

    @abstractmethod
    def find_skills_by_name(self, names: Sequence[str]) -> List[models.Skill]:
        """Batch upsert-by-name; returns one Skill per distinct name."""

    @abstractmethod
    def find_skill_by_id(self, skill_id: int) -> Optional[models.Skill]: ...

    @abstractmethod
    def list_skills(self, skip: int = 0, limit: int = 100) -> List[models.Skill]: ...

    @abstractmethod
    def calculate_skill_rating(self, skill_id: int) -> tuple[float, int]: ...

    @abstractmethod
    def update_skill_aggregate(
        self, skill_id: int, average_rating: float, rating_count: int
    ) -> Optional[models.Skill]: ...

    @abstractmethod
    def find_evaluated_skill_ids(self) -> List[int]: ...

    # ---- events ----

    @abstractmethod
    def find_event_by_id(self, event_id: int) -> Optional[models.Event]: ...

    @abstractmethod
    def create_event(self, user_id: int, skill_id: int, event_type: str,
                     level: Optional[str], description: Optional[str]) -> models.Event: ...

    @abstractmethod
    def list_events(self, event_type: Optional[str], level: Optional[str],
                    search: Optional[str], limit: int = 50) -> List[models.Event]: ...

    # ---- connections & chat ----

    @abstractmethod
    def find_connection_by_id(self, connection_id: int) -> Optional[models.Connection]: ...

    @abstractmethod
    def find_connection_by_user_pair(self, user_a: int, user_b: int) -> Optional[models.Connection]: ...

    @abstractmethod
    def find_connections_for_user(
        self, user_id: int, status: Optional[ConnectionStatus] = None
    ) -> List[models.Connection]: ...

    @abstractmethod
    def create_connection(self, from_user_id: int, to_user_id: int, message: str,
                          event_id: Optional[int] = None) -> Optional[models.Connection]: ...

    @abstractmethod
    def update_connection_status(self, connection_id: int, expected: ConnectionStatus,
                                 new_status: ConnectionStatus) -> bool: ...

    @abstractmethod
    def find_chat_room_by_id(self, chat_room_id: int) -> Optional[models.ChatRoom]: ...

    @abstractmethod
    def find_chat_room_by_connection(self, connection_id: int) -> Optional[models.ChatRoom]: ...

    @abstractmethod
    def create_chat_room(self, connection_id: int,
                         last_message_at: datetime) -> Optional[models.ChatRoom]: ...

    @abstractmethod
    def create_message(self, chat_room: models.ChatRoom, sender_id: int, content: str,
                       sent_at: datetime) -> models.Message: ...

    @abstractmethod
    def find_messages(self, chat_room_id: int, limit: int = 200) -> List[models.Message]: ...

    # ---- reviews & resolutions ----

    @abstractmethod
    def find_session_record(self, session_id: str) -> Optional[models.SessionRecord]: ...

    @abstractmethod
    def create_session_record(self, session_id: str, teacher_id: int, learner_id: int,
                              duration_minutes: int,
                              skill_ids: Sequence[int]) -> Optional[models.SessionRecord]: ...

    @abstractmethod
    def find_reviews_by_session(self, session_id: str) -> List[models.Review]: ...

    @abstractmethod
    def find_review(self, session_id: str, reviewer_id: int) -> Optional[models.Review]: ...

    @abstractmethod
    def find_reviews_by_reviewer(self, reviewer_id: int, limit: int = 50) -> List[models.Review]: ...

    @abstractmethod
    def create_review(self, session_id: str, reviewer_id: int, rating: int,
                      feedback: Optional[str], evaluations: Sequence[dict]) -> Optional[models.Review]: ...

    @abstractmethod
    def replace_review(self, review: models.Review, rating: int, feedback: Optional[str],
                       evaluations: Sequence[dict]) -> models.Review: ...

    @abstractmethod
    def find_resolution(self, session_id: str) -> Optional[models.SessionResolution]: ...

    @abstractmethod
    def create_resolution(self, session_id: str, teacher_id: int, learner_id: int,
                          duration_minutes: int, average_rating: float,
                          reward_eligible: bool) -> Optional[models.SessionResolution]: ...

    # ---- reward ledger ----

    @abstractmethod
    def find_token_reward_by_session(self, session_id: str) -> Optional[models.TokenReward]: ...

    @abstractmethod
    def create_token_reward(self, session_id: str, teacher_id: int,
                            amount: int) -> Optional[models.TokenReward]: ...

    @abstractmethod
    def find_rewards_by_teacher(self, teacher_id: int, limit: int = 50) -> List[models.TokenReward]: ...

    @abstractmethod
    def total_rewarded(self, teacher_id: int) -> int: ...


class SqlRepository(Repository):
    """Repository backed by a SQLAlchemy session (one per request)."""

    def __init__(self, db: Session):
        self.db = db

    # ---- transaction helpers ----

    def _read(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Read failed during %s: %s", operation, exc)
            raise StorageFailure(operation, exc) from exc

    def _write(self, operation: str, fn: Callable[[], T]) -> T:
        try:
            result = fn()
            self.db.commit()
            return result
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Write failed during %s: %s", operation, exc)
            raise StorageFailure(operation, exc) from exc

    def _create_unique(self, operation: str, fn: Callable[[], T]) -> Optional[T]:
        """Insert guarded by a UNIQUE constraint; None means another writer won."""
        try:
            result = fn()
            self.db.commit()
            return result
        except IntegrityError:
            self.db.rollback()
            logger.info("Uniqueness conflict during %s; deferring to existing row", operation)
            return None
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Write failed during %s: %s", operation, exc)
            raise StorageFailure(operation, exc) from exc

    # ---- users & skills ----

    def find_user_by_id(self, user_id):
        return self._read("find_user_by_id", lambda: user_crud.get_user(self.db, user_id))

    def find_candidate_users(self, exclude_user_id):
        return self._read(
            "find_candidate_users",
            lambda: user_crud.get_users_with_skills(self.db, exclude_user_id=exclude_user_id),
        )

    def update_user_profile(self, user, **fields):
        return self._write(
            "update_user_profile",
            lambda: user_crud.update_user_profile(self.db, user, **fields),
        )

    def set_user_skills(self, user, teaching, learning):
        return self._write(
            "set_user_skills",
            lambda: user_crud.set_user_skills(self.db, user, teaching, learning),
        )

    def find_skills_by_name(self, names):
        names = list(names)
        skills = self._create_unique(
            "find_skills_by_name",
            lambda: skill_crud.upsert_skills_by_name(self.db, names),
        )
        if skills is None:
            # A concurrent upsert created some of the names; the retry only reads.
            skills = self._write(
                "find_skills_by_name",
                lambda: skill_crud.upsert_skills_by_name(self.db, names),
            )
        return skills

    def find_skill_by_id(self, skill_id):
        return self._read("find_skill_by_id", lambda: skill_crud.get_skill(self.db, skill_id))

    def list_skills(self, skip=0, limit=100):
        return self._read("list_skills", lambda: skill_crud.list_skills(self.db, skip, limit))

    def calculate_skill_rating(self, skill_id):
        return self._read(
            "calculate_skill_rating",
            lambda: skill_crud.calculate_skill_rating(self.db, skill_id),
        )

    def update_skill_aggregate(self, skill_id, average_rating, rating_count):
        return self._write(
            "update_skill_aggregate",
            lambda: skill_crud.update_skill_aggregate(self.db, skill_id, average_rating, rating_count),
        )

    def find_evaluated_skill_ids(self):
        return self._read("find_evaluated_skill_ids", lambda: skill_crud.get_evaluated_skill_ids(self.db))

    # ---- events ----

    def find_event_by_id(self, event_id):
        return self._read("find_event_by_id", lambda: event_crud.get_event(self.db, event_id))

    def create_event(self, user_id, skill_id, event_type, level, description):
        return self._write(
            "create_event",
            lambda: event_crud.create_event(self.db, user_id, skill_id, event_type, level, description),
        )

    def list_events(self, event_type, level, search, limit=50):
        return self._read(
            "list_events",
            lambda: event_crud.list_events(self.db, event_type, level, search, limit),
        )

    # ---- connections & chat ----

    def find_connection_by_id(self, connection_id):
        return self._read(
            "find_connection_by_id",
            lambda: connection_crud.get_connection(self.db, connection_id),
        )

    def find_connection_by_user_pair(self, user_a, user_b):
        return self._read(
            "find_connection_by_user_pair",
            lambda: connection_crud.get_connection_by_user_pair(self.db, user_a, user_b),
        )

    def find_connections_for_user(self, user_id, status=None):
        return self._read(
            "find_connections_for_user",
            lambda: connection_crud.get_connections_for_user(self.db, user_id, status),
        )

    def create_connection(self, from_user_id, to_user_id, message, event_id=None):
        return self._create_unique(
            "create_connection",
            lambda: connection_crud.create_connection(
                self.db, from_user_id, to_user_id, message, event_id
            ),
        )

    def update_connection_status(self, connection_id, expected, new_status):
        return self._write(
            "update_connection_status",
            lambda: connection_crud.update_connection_status(
                self.db, connection_id, expected, new_status
            ),
        )

    def find_chat_room_by_id(self, chat_room_id):
        return self._read(
            "find_chat_room_by_id",
            lambda: connection_crud.get_chat_room(self.db, chat_room_id),
        )

    def find_chat_room_by_connection(self, connection_id):
        return self._read(
            "find_chat_room_by_connection",
            lambda: connection_crud.get_chat_room_by_connection(self.db, connection_id),
        )

    def create_chat_room(self, connection_id, last_message_at):
        return self._create_unique(
            "create_chat_room",
            lambda: connection_crud.create_chat_room(self.db, connection_id, last_message_at),
        )

    def create_message(self, chat_room, sender_id, content, sent_at):
        return self._write(
            "create_message",
            lambda: connection_crud.create_message(self.db, chat_room, sender_id, content, sent_at),
        )

    def find_messages(self, chat_room_id, limit=200):
        return self._read(
            "find_messages",
            lambda: connection_crud.get_messages(self.db, chat_room_id, limit),
        )

    # ---- reviews & resolutions ----

    def find_session_record(self, session_id):
        return self._read(
            "find_session_record",
            lambda: review_crud.get_session_record(self.db, session_id),
        )

    def create_session_record(self, session_id, teacher_id, learner_id, duration_minutes, skill_ids):
        return self._create_unique(
            "create_session_record",
            lambda: review_crud.create_session_record(
                self.db, session_id, teacher_id, learner_id, duration_minutes, skill_ids
            ),
        )

    def find_reviews_by_session(self, session_id):
        return self._read(
            "find_reviews_by_session",
            lambda: review_crud.get_reviews_by_session(self.db, session_id),
        )

    def find_review(self, session_id, reviewer_id):
        return self._read(
            "find_review",
            lambda: review_crud.get_review_by_session_and_reviewer(self.db, session_id, reviewer_id),
        )

    def find_reviews_by_reviewer(self, reviewer_id, limit=50):
        return self._read(
            "find_reviews_by_reviewer",
            lambda: review_crud.get_reviews_by_reviewer(self.db, reviewer_id, limit),
        )

    def create_review(self, session_id, reviewer_id, rating, feedback, evaluations):
        return self._create_unique(
            "create_review",
            lambda: review_crud.create_review(
                self.db, session_id, reviewer_id, rating, feedback, evaluations
            ),
        )

    def replace_review(self, review, rating, feedback, evaluations):
        return self._write(
            "replace_review",
            lambda: review_crud.replace_review(self.db, review, rating, feedback, evaluations),
        )

    def find_resolution(self, session_id):
        return self._read(
            "find_resolution",
            lambda: review_crud.get_resolution(self.db, session_id),
        )

    def create_resolution(self, session_id, teacher_id, learner_id, duration_minutes,
                          average_rating, reward_eligible):
        return self._create_unique(
            "create_resolution",
            lambda: review_crud.create_resolution(
                self.db, session_id, teacher_id, learner_id, duration_minutes,
                average_rating, reward_eligible,
            ),
        )

    # ---- reward ledger ----

    def find_token_reward_by_session(self, session_id):
        return self._read(
            "find_token_reward_by_session",
            lambda: token_crud.get_reward_by_session(self.db, session_id),
        )

    def create_token_reward(self, session_id, teacher_id, amount):
        return self._create_unique(
            "create_token_reward",
            lambda: token_crud.create_reward(self.db, session_id, teacher_id, amount),
        )

    def find_rewards_by_teacher(self, teacher_id, limit=50):
        return self._read(
            "find_rewards_by_teacher",
            lambda: token_crud.get_rewards_by_teacher(self.db, teacher_id, limit),
        )

    def total_rewarded(self, teacher_id):
        return self._read("total_rewarded", lambda: token_crud.get_total_rewarded(self.db, teacher_id))

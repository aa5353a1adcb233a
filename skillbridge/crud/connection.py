# skillbridge/crud/connection.py
"""
Connection & Chat Room CRUD Operations

Database operations for connection requests, their chat rooms and messages.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from skillbridge import models
from skillbridge.models.connection import ConnectionStatus


def pair_key(user_a: int, user_b: int) -> tuple[int, int]:
    """Order-independent key for a pair of users."""
    return (min(user_a, user_b), max(user_a, user_b))


# ======================
# CONNECTION CRUD
# ======================

def get_connection(db: Session, connection_id: int) -> Optional[models.Connection]:
    """
    Get a connection by ID, always re-reading its row.

    Args:
        db: Database session
        connection_id: Connection identifier

    Returns:
        Connection object or None if not found
    """
    return db.get(models.Connection, connection_id, populate_existing=True)


def get_connection_by_user_pair(
    db: Session,
    user_a: int,
    user_b: int,
) -> Optional[models.Connection]:
    """
    Get the connection between two users, in either direction.

    Args:
        db: Database session
        user_a: First user ID
        user_b: Second user ID

    Returns:
        Connection object or None if the pair is unconnected
    """
    low, high = pair_key(user_a, user_b)
    return db.query(models.Connection).filter(
        models.Connection.pair_low == low,
        models.Connection.pair_high == high,
    ).first()


def create_connection(
    db: Session,
    from_user_id: int,
    to_user_id: int,
    message: str,
    event_id: Optional[int] = None,
) -> models.Connection:
    low, high = pair_key(from_user_id, to_user_id)
    connection = models.Connection(
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        pair_low=low,
        pair_high=high,
        event_id=event_id,
        message=message,
        status=ConnectionStatus.PENDING,
    )
    db.add(connection)
    db.flush()
    return connection


def update_connection_status(
    db: Session,
    connection_id: int,
    expected: ConnectionStatus,
    new_status: ConnectionStatus,
) -> bool:
    """
    Conditionally move a connection from `expected` to `new_status`.

    Only one of several racing callers can match the WHERE clause.

    Returns:
        True if this call performed the transition
    """
    result = db.execute(
        update(models.Connection)
        .where(
            models.Connection.id == connection_id,
            models.Connection.status == expected,
        )
        .values(status=new_status, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def get_connections_for_user(
    db: Session,
    user_id: int,
    status: Optional[ConnectionStatus] = None,
) -> List[models.Connection]:
    query = db.query(models.Connection).filter(
        or_(
            models.Connection.from_user_id == user_id,
            models.Connection.to_user_id == user_id,
        )
    )
    if status is not None:
        query = query.filter(models.Connection.status == status)
    return query.order_by(models.Connection.created_at.desc(), models.Connection.id.desc()).all()


# ======================
# CHAT ROOM CRUD
# ======================

def get_chat_room(db: Session, chat_room_id: int) -> Optional[models.ChatRoom]:
    return db.query(models.ChatRoom).filter(models.ChatRoom.id == chat_room_id).first()


def get_chat_room_by_connection(db: Session, connection_id: int) -> Optional[models.ChatRoom]:
    return db.query(models.ChatRoom).filter(
        models.ChatRoom.connection_id == connection_id
    ).first()


def create_chat_room(
    db: Session,
    connection_id: int,
    last_message_at: datetime,
) -> models.ChatRoom:
    chat_room = models.ChatRoom(
        connection_id=connection_id,
        last_message_at=last_message_at,
    )
    db.add(chat_room)
    db.flush()
    return chat_room


def create_message(
    db: Session,
    chat_room: models.ChatRoom,
    sender_id: int,
    content: str,
    sent_at: datetime,
) -> models.Message:
    message = models.Message(
        chat_room_id=chat_room.id,
        sender_id=sender_id,
        content=content,
    )
    db.add(message)
    chat_room.last_message_at = sent_at
    db.flush()
    return message


def get_messages(db: Session, chat_room_id: int, limit: int = 200) -> List[models.Message]:
    return (
        db.query(models.Message)
        .filter(models.Message.chat_room_id == chat_room_id)
        .order_by(models.Message.created_at.asc(), models.Message.id.asc())
        .limit(limit)
        .all()
    )

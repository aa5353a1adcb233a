# skillbridge/services/connection_service.py
"""
Connection Lifecycle Service

State machine for connection requests between two users:

    pending --accept--> accepted   (provisions exactly one chat room)
    pending --reject--> rejected

`accepted` and `rejected` are terminal. At most one connection exists per
unordered pair of users. Only the recipient may respond.
"""

import logging
from typing import Any, Dict, List, Optional

from skillbridge import models
from skillbridge.config import settings
from skillbridge.errors import (
    AlreadyConnected,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    StorageFailure,
)
from skillbridge.models.connection import ConnectionStatus
from skillbridge.repository import Repository
from skillbridge.utils import utcnow

logger = logging.getLogger(__name__)

RESPONSE_DECISIONS = (ConnectionStatus.ACCEPTED, ConnectionStatus.REJECTED)


# ======================
# SERIALIZATION
# ======================

def serialize_chat_room(chat_room: Optional[models.ChatRoom]) -> Optional[Dict[str, Any]]:
    if chat_room is None:
        return None
    return {
        "chat_room_id": chat_room.id,
        "connection_id": chat_room.connection_id,
        "last_message_at": chat_room.last_message_at.isoformat() if chat_room.last_message_at else None,
    }


def serialize_connection(
    connection: models.Connection,
    chat_room: Optional[models.ChatRoom] = None,
) -> Dict[str, Any]:
    return {
        "connection_id": connection.id,
        "from_user_id": connection.from_user_id,
        "to_user_id": connection.to_user_id,
        "event_id": connection.event_id,
        "message": connection.message,
        "status": connection.status.value,
        "created_at": connection.created_at.isoformat() if connection.created_at else None,
        "updated_at": connection.updated_at.isoformat() if connection.updated_at else None,
        "chat_room": serialize_chat_room(chat_room),
    }


def _parse_status(value, connection_id=None) -> ConnectionStatus:
    if isinstance(value, ConnectionStatus):
        return value
    try:
        return ConnectionStatus(str(value).strip().lower())
    except ValueError:
        raise InvalidRequest(
            "Status must be one of: pending, accepted, rejected",
            status=value,
            connection_id=connection_id,
        )


# ======================
# REQUEST
# ======================

def request_connection(
    repo: Repository,
    from_user_id: int,
    to_user_id: int,
    event_id: Optional[int] = None,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Send a connection request.

    Args:
        repo: Repository
        from_user_id: Requesting user
        to_user_id: Recipient
        event_id: Optional originating event
        message: Optional note (defaults to DEFAULT_CONNECTION_MESSAGE)

    Returns:
        The new pending connection

    Raises:
        InvalidRequest: If a user tries to connect with themselves
        NotFound: If either user or the event does not exist
        AlreadyConnected: If the pair already has a connection in any direction or status
    """
    if from_user_id == to_user_id:
        raise InvalidRequest("Cannot connect with yourself", user_id=from_user_id)

    for user_id in (from_user_id, to_user_id):
        if not repo.find_user_by_id(user_id):
            raise NotFound("User", user_id)

    if event_id is not None and not repo.find_event_by_id(event_id):
        raise NotFound("Event", event_id)

    existing = repo.find_connection_by_user_pair(from_user_id, to_user_id)
    if existing:
        raise AlreadyConnected(from_user_id, to_user_id, existing.id)

    text = (message or "").strip() or settings.DEFAULT_CONNECTION_MESSAGE
    connection = repo.create_connection(from_user_id, to_user_id, text, event_id)

    if connection is None:
        # The pair constraint fired: another request for this pair landed first.
        winner = repo.find_connection_by_user_pair(from_user_id, to_user_id)
        raise AlreadyConnected(from_user_id, to_user_id, winner.id if winner else None)

    logger.info("Connection %s requested: %s -> %s", connection.id, from_user_id, to_user_id)
    return serialize_connection(connection)


# ======================
# RESPOND
# ======================

def _ensure_chat_room(repo: Repository, connection_id: int) -> models.ChatRoom:
    """Create-if-absent keyed by connection_id; racing callers share one room."""
    chat_room = repo.find_chat_room_by_connection(connection_id)
    if chat_room:
        return chat_room

    chat_room = repo.create_chat_room(connection_id, last_message_at=utcnow())
    if chat_room is not None:
        logger.info("Chat room %s provisioned for connection %s", chat_room.id, connection_id)
        return chat_room

    chat_room = repo.find_chat_room_by_connection(connection_id)
    if chat_room is None:
        raise StorageFailure("ensure_chat_room")
    return chat_room


def respond_to_connection(
    repo: Repository,
    connection_id: int,
    responding_user_id: int,
    decision,
) -> Dict[str, Any]:
    """
    Accept or reject a pending connection.

    Accepting also provisions the connection's chat room. If two accept
    calls race, both pass the pending check, only one wins the conditional
    status update, and the loser converges on the same chat room.

    Args:
        repo: Repository
        connection_id: Connection identifier
        responding_user_id: Acting user (must be the recipient)
        decision: 'accepted' or 'rejected'

    Returns:
        The updated connection with its chat room (if accepted)

    Raises:
        NotFound: If the connection does not exist
        Forbidden: If the acting user is not the recipient
        InvalidRequest: If the decision is not accepted/rejected
        InvalidTransition: If the connection is no longer pending
    """
    connection = repo.find_connection_by_id(connection_id)
    if not connection:
        raise NotFound("Connection", connection_id)

    if connection.to_user_id != responding_user_id:
        raise Forbidden("respond to this connection", responding_user_id, connection_id=connection_id)

    target = _parse_status(decision, connection_id)
    if target not in RESPONSE_DECISIONS:
        raise InvalidRequest(
            "Decision must be 'accepted' or 'rejected'",
            status=target.value,
            connection_id=connection_id,
        )

    if connection.status != ConnectionStatus.PENDING:
        raise InvalidTransition(connection_id, connection.status.value, target.value)

    won = repo.update_connection_status(connection_id, ConnectionStatus.PENDING, target)
    connection = repo.find_connection_by_id(connection_id)
    if connection is None:
        raise NotFound("Connection", connection_id)

    if not won:
        # Someone else moved it out of pending between our read and our write.
        if connection.status != target:
            raise InvalidTransition(connection_id, connection.status.value, target.value)
        logger.info("Concurrent %s for connection %s; converging on the winner", target.value, connection_id)

    if target == ConnectionStatus.REJECTED:
        if won:
            logger.info("Connection %s rejected by user %s", connection_id, responding_user_id)
        return serialize_connection(connection)

    chat_room = _ensure_chat_room(repo, connection_id)
    if won:
        logger.info("Connection %s accepted by user %s", connection_id, responding_user_id)
    return serialize_connection(connection, chat_room)


# ======================
# RETRIEVAL
# ======================

def get_connection(
    repo: Repository,
    connection_id: int,
    requesting_user_id: int,
) -> Dict[str, Any]:
    connection = repo.find_connection_by_id(connection_id)
    if not connection:
        raise NotFound("Connection", connection_id)

    if not connection.involves(requesting_user_id):
        raise Forbidden("view this connection", requesting_user_id, connection_id=connection_id)

    chat_room = repo.find_chat_room_by_connection(connection_id)
    return serialize_connection(connection, chat_room)


def list_connections(
    repo: Repository,
    user_id: int,
    status=None,
) -> List[Dict[str, Any]]:
    """All connections the user sent or received, newest first; `status='all'` means no filter."""
    wanted = None
    if status is not None and str(getattr(status, "value", status)).lower() != "all":
        wanted = _parse_status(status)

    result = []
    for connection in repo.find_connections_for_user(user_id, wanted):
        item = serialize_connection(connection, connection.chat_room)
        item["direction"] = "sent" if connection.from_user_id == user_id else "received"
        result.append(item)
    return result


# ======================
# CHAT
# ======================

def open_chat_room(repo: Repository, connection_id: int, user_id: int) -> Dict[str, Any]:
    """Return the connection's chat room, creating it if an accepted connection lacks one."""
    connection = repo.find_connection_by_id(connection_id)
    if not connection:
        raise NotFound("Connection", connection_id)
    if not connection.involves(user_id):
        raise Forbidden("open this chat room", user_id, connection_id=connection_id)
    if connection.status != ConnectionStatus.ACCEPTED:
        raise InvalidRequest(
            "Connection must be accepted first",
            connection_id=connection_id,
            status=connection.status.value,
        )

    return serialize_chat_room(_ensure_chat_room(repo, connection_id))


def _load_chat_room_for(repo: Repository, chat_room_id: int, user_id: int) -> models.ChatRoom:
    chat_room = repo.find_chat_room_by_id(chat_room_id)
    if not chat_room:
        raise NotFound("ChatRoom", chat_room_id)
    if not chat_room.connection.involves(user_id):
        raise Forbidden("access this chat room", user_id, chat_room_id=chat_room_id)
    return chat_room


def serialize_message(message: models.Message) -> Dict[str, Any]:
    return {
        "message_id": message.id,
        "chat_room_id": message.chat_room_id,
        "sender_id": message.sender_id,
        "content": message.content,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


def post_message(
    repo: Repository,
    chat_room_id: int,
    sender_id: int,
    content: str,
) -> Dict[str, Any]:
    text = (content or "").strip()
    if not text:
        raise InvalidRequest("Message content is required", chat_room_id=chat_room_id)
    if len(text) > settings.MAX_MESSAGE_LENGTH:
        raise InvalidRequest(
            f"Message must be {settings.MAX_MESSAGE_LENGTH} characters or less",
            chat_room_id=chat_room_id,
        )

    chat_room = _load_chat_room_for(repo, chat_room_id, sender_id)
    message = repo.create_message(chat_room, sender_id, text, sent_at=utcnow())
    return serialize_message(message)


def list_messages(repo: Repository, chat_room_id: int, user_id: int) -> List[Dict[str, Any]]:
    _load_chat_room_for(repo, chat_room_id, user_id)
    return [serialize_message(m) for m in repo.find_messages(chat_room_id)]

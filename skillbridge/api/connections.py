# skillbridge/api/connections.py
"""
Connection & Chat API Router

Endpoints:
- POST /connections/ - Send a connection request
- GET /connections/ - List my connections (optionally by status)
- GET /connections/{connection_id} - Get one connection
- PATCH /connections/{connection_id} - Accept or reject a request
- POST /connections/{connection_id}/chat-room - Open the chat room
- GET /connections/chat-rooms/{chat_room_id}/messages - Read messages
- POST /connections/chat-rooms/{chat_room_id}/messages - Post a message
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from skillbridge.api.deps import get_current_user_id, get_repository
from skillbridge.repository import Repository
from skillbridge.schemas.connection import (
    ChatRoomResponse,
    ConnectionCreate,
    ConnectionResponse,
    ConnectionRespond,
    MessageCreate,
    MessageResponse,
)
from skillbridge.services import connection_service

router = APIRouter(prefix="/connections", tags=["connections"])


# ======================
# REQUESTS
# ======================
@router.post("/", response_model=ConnectionResponse, status_code=status.HTTP_201_CREATED)
def send_connection_request(
    payload: ConnectionCreate,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return connection_service.request_connection(
        repo,
        from_user_id=current_user_id,
        to_user_id=payload.to_user_id,
        event_id=payload.event_id,
        message=payload.message,
    )


@router.get("/", response_model=List[ConnectionResponse])
def list_my_connections(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, accepted, rejected or all"),
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return connection_service.list_connections(repo, current_user_id, status_filter)


@router.get("/{connection_id}", response_model=ConnectionResponse)
def get_connection(
    connection_id: int,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return connection_service.get_connection(repo, connection_id, current_user_id)


@router.patch("/{connection_id}", response_model=ConnectionResponse)
def respond_to_connection(
    connection_id: int,
    payload: ConnectionRespond,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    """
    Accept or reject a pending request. Only the recipient may respond.
    Accepting provisions the chat room.
    """
    return connection_service.respond_to_connection(
        repo, connection_id, current_user_id, payload.status
    )


# ======================
# CHAT
# ======================
@router.post("/{connection_id}/chat-room", response_model=ChatRoomResponse)
def open_chat_room(
    connection_id: int,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return connection_service.open_chat_room(repo, connection_id, current_user_id)


@router.get("/chat-rooms/{chat_room_id}/messages", response_model=List[MessageResponse])
def list_messages(
    chat_room_id: int,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return connection_service.list_messages(repo, chat_room_id, current_user_id)


@router.post(
    "/chat-rooms/{chat_room_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_message(
    chat_room_id: int,
    payload: MessageCreate,
    current_user_id: int = Depends(get_current_user_id),
    repo: Repository = Depends(get_repository),
):
    return connection_service.post_message(repo, chat_room_id, current_user_id, payload.content)

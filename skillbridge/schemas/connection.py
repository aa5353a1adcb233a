# skillbridge/schemas/connection.py
"""
Connection & Chat Pydantic Schemas
Request/response models for the connection lifecycle and chat rooms
"""

from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional


# ======================
# CONNECTION SCHEMAS
# ======================

class ConnectionCreate(BaseModel):
    """Schema for sending a connection request"""
    to_user_id: int = Field(..., description="Recipient user ID")
    event_id: Optional[int] = Field(None, description="Originating event, if any")
    message: Optional[str] = Field(None, max_length=500, description="Note to the recipient")


class ConnectionRespond(BaseModel):
    """Schema for accepting or rejecting a request"""
    status: Literal["accepted", "rejected"] = Field(..., description="Decision")


class ChatRoomResponse(BaseModel):
    chat_room_id: int
    connection_id: int
    last_message_at: Optional[str] = None


class ConnectionResponse(BaseModel):
    """Connection response for API"""
    connection_id: int = Field(..., description="Connection identifier")
    from_user_id: int = Field(..., description="Requesting user ID")
    to_user_id: int = Field(..., description="Recipient user ID")
    event_id: Optional[int] = None
    message: Optional[str] = None
    status: str = Field(..., description="pending, accepted or rejected")
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    chat_room: Optional[ChatRoomResponse] = None
    direction: Optional[str] = Field(None, description="'sent' or 'received' in listings")


# ======================
# MESSAGE SCHEMAS
# ======================

class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        """Reject whitespace-only messages"""
        if v.strip() == "":
            raise ValueError("Message cannot be empty or just whitespace")
        return v.strip()


class MessageResponse(BaseModel):
    message_id: int
    chat_room_id: int
    sender_id: int
    content: str
    created_at: Optional[str] = None

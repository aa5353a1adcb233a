# skillbridge/models/connection.py
import enum

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, TIMESTAMP, Enum, UniqueConstraint,
    CheckConstraint, func,
)
from sqlalchemy.orm import relationship

from skillbridge.database import Base


class ConnectionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Connection(Base):
    __tablename__ = "connections"

    id = Column(Integer, primary_key=True, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Unordered pair key: (min, max) of the two user ids
    pair_low = Column(Integer, nullable=False)
    pair_high = Column(Integer, nullable=False)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text, nullable=False)
    status = Column(
        Enum(ConnectionStatus, values_callable=lambda e: [m.value for m in e]),
        default=ConnectionStatus.PENDING,
        nullable=False,
    )
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("pair_low", "pair_high", name="uq_connection_pair"),
        CheckConstraint("from_user_id <> to_user_id", name="check_connection_not_self"),
    )

    from_user = relationship("User", foreign_keys=[from_user_id], back_populates="sent_connections")
    to_user = relationship("User", foreign_keys=[to_user_id], back_populates="received_connections")
    event = relationship("Event")
    chat_room = relationship(
        "ChatRoom", back_populates="connection", uselist=False, cascade="all, delete-orphan"
    )

    def involves(self, user_id: int) -> bool:
        return user_id in (self.from_user_id, self.to_user_id)

    def other_party(self, user_id: int) -> int:
        return self.to_user_id if self.from_user_id == user_id else self.from_user_id


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id = Column(Integer, primary_key=True, index=True)
    connection_id = Column(
        Integer, ForeignKey("connections.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    last_message_at = Column(TIMESTAMP, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    connection = relationship("Connection", back_populates="chat_room")
    messages = relationship(
        "Message", back_populates="chat_room", cascade="all, delete-orphan",
        order_by="Message.id",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_room_id = Column(Integer, ForeignKey("chat_rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    chat_room = relationship("ChatRoom", back_populates="messages")
    sender = relationship("User")

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from .database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Chat(Base):
    __tablename__ = "chats"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    title = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)

    messages = relationship("Message", back_populates="chat", cascade="all,delete-orphan")


class Message(Base):
    __tablename__ = "messages"

    id = Column(String, primary_key=True, default=_new_id)
    chat_id = Column(String, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    role = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)

    chat = relationship("Chat", back_populates="messages")


Index("idx_messages_chat_id", Message.chat_id, Message.created_at)

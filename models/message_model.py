from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from models.enums import MessageType

class MessageBase(BaseModel):
    """Base message fields shared across different message models"""
    content: str = Field(..., min_length=1)

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message content cannot be empty")
        return v

class MessageCreate(MessageBase):
    """Model for sending a new message"""
    recipient_id: str = Field(..., min_length=1)
    message_type: MessageType = MessageType.TEXT
    file_url: Optional[str] = None
    file_name: Optional[str] = None

    @model_validator(mode='after')
    def file_messages_need_url(self):
        if self.message_type != MessageType.TEXT and not self.file_url:
            raise ValueError(f"file_url is required for {self.message_type.value} messages")
        return self

class MessageUpdate(MessageBase):
    """Model for editing the content of an existing message"""
    pass

class MessageResponse(BaseModel):
    """Model for returning message information to clients"""
    id: str
    conversation_id: str
    sender_id: str
    recipient_id: str
    content: str
    message_type: MessageType
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

class MarkReadResponse(BaseModel):
    conversation_id: str
    marked_count: int
    unread_count: int = 0

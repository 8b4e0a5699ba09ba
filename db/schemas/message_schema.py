from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from bson import ObjectId
from db.mongodb import PyObjectId
from models.enums import MessageType
from utils.time import get_current_utc_time

class MessageInDB(BaseModel):
    """Database representation of a direct message document"""
    id: PyObjectId = Field(default_factory=lambda: str(ObjectId()), alias="_id")
    conversation_id: str
    sender_id: str
    recipient_id: str
    content: str
    message_type: MessageType = MessageType.TEXT
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None

    # Metadata
    created_at: datetime = Field(default_factory=get_current_utc_time)
    updated_at: datetime = Field(default_factory=get_current_utc_time)

    model_config = {
        "arbitrary_types_allowed": True,
        "populate_by_name": True,
        "json_encoders": {
            ObjectId: str
        }
    }

    @field_validator('id', 'conversation_id', mode='before')
    @classmethod
    def convert_object_id(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v

    def is_party(self, user_id: str) -> bool:
        return str(user_id) in (self.sender_id, self.recipient_id)

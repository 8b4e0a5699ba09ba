from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from models.message_model import MessageResponse
from models.users_model import UserPublic

class ConversationSummary(BaseModel):
    """A conversation as seen by one of its participants"""
    id: str
    participants: List[str]
    other_participant: Optional[UserPublic] = None
    last_message: Optional[MessageResponse] = None
    unread_count: int = 0
    updated_at: datetime
    created_at: Optional[datetime] = None

class GetOrCreateConversationResponse(ConversationSummary):
    is_new: bool = False

class ConversationListResponse(BaseModel):
    conversations: List[ConversationSummary]
    skip: int
    limit: int
    search: Optional[str] = None

class UnreadTotalResponse(BaseModel):
    unread_count: int

from typing import Optional

from db.schemas.conversation_schema import ConversationInDB
from models.conversation_model import ConversationSummary
from models.message_model import MessageResponse
from models.users_model import UserPublic

def conversation_db_to_summary(
    conversation_db: ConversationInDB,
    other_participant: Optional[UserPublic] = None,
    last_message: Optional[MessageResponse] = None,
    unread_count: int = 0
) -> ConversationSummary:
    """Build the per-viewer summary of a conversation"""
    return ConversationSummary(
        id=conversation_db.id,
        participants=conversation_db.participants,
        other_participant=other_participant,
        last_message=last_message,
        unread_count=unread_count,
        updated_at=conversation_db.updated_at,
        created_at=conversation_db.created_at
    )

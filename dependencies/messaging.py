from fastapi import Depends
from typing import Annotated

from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from services.conversation_service import ConversationService
from services.message_service import MessageService
from .db import DB
from .realtime import OutboxDep, PresenceDep
from .user import UserRepositoryDep

def get_conversation_repository(db: DB):
    """Create and return a ConversationRepository instance"""
    return ConversationRepository(db)

def get_message_repository(db: DB):
    """Create and return a MessageRepository instance"""
    return MessageRepository(db)

ConversationRepositoryDep = Annotated[ConversationRepository, Depends(get_conversation_repository)]
MessageRepositoryDep = Annotated[MessageRepository, Depends(get_message_repository)]

def get_conversation_service(
    conversation_repo: ConversationRepositoryDep,
    message_repo: MessageRepositoryDep,
    user_repo: UserRepositoryDep,
    presence: PresenceDep,
    outbox: OutboxDep
):
    """Create and return a ConversationService instance with required repositories"""
    return ConversationService(conversation_repo, message_repo, user_repo, presence, outbox)

def get_message_service(
    db: DB,
    message_repo: MessageRepositoryDep,
    conversation_repo: ConversationRepositoryDep,
    user_repo: UserRepositoryDep,
    outbox: OutboxDep
):
    """Create and return a MessageService instance with required repositories"""
    return MessageService(db, message_repo, conversation_repo, user_repo, outbox)

# Create type aliases for dependency injection
ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]
MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]

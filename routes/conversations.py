from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Query, status

from config import CONVERSATIONS_PAGE_SIZE, MESSAGES_PAGE_SIZE
from dependencies.auth import CurrentUser
from dependencies.messaging import ConversationServiceDep, MessageServiceDep
from models.conversation_model import (
    ConversationListResponse,
    ConversationSummary,
    GetOrCreateConversationResponse,
    UnreadTotalResponse,
)
from models.message_model import MarkReadResponse, MessageResponse

router = APIRouter()

@router.get("/", response_model=ConversationListResponse)
async def list_conversations(
    current_user: CurrentUser,
    conversation_service: ConversationServiceDep,
    limit: int = Query(CONVERSATIONS_PAGE_SIZE, ge=1, le=100, description="Maximum number of conversations"),
    offset: int = Query(0, ge=0, description="Number of conversations to skip"),
    search: Optional[str] = Query(None, description="Only conversations whose last message contains this text")
):
    """List the current user's conversations, most recently active first"""
    conversations = await conversation_service.list_for_user(
        current_user.id, limit=limit, offset=offset, search=search
    )
    return ConversationListResponse(conversations=conversations, skip=offset, limit=limit, search=search)

@router.get("/unread-count", response_model=UnreadTotalResponse)
async def get_unread_total(
    current_user: CurrentUser,
    message_service: MessageServiceDep
):
    """Total unread messages across visible conversations"""
    total = await message_service.total_unread(current_user.id)
    return UnreadTotalResponse(unread_count=total)

@router.post("/with/{other_user_id}", response_model=GetOrCreateConversationResponse)
async def get_or_create_conversation(
    other_user_id: str,
    current_user: CurrentUser,
    conversation_service: ConversationServiceDep
):
    """
    Open the conversation with another user, creating it if needed.
    A conversation either side had hidden becomes visible again.
    """
    return await conversation_service.get_or_create_summary(current_user.id, other_user_id)

@router.get("/{conversation_id}", response_model=ConversationSummary)
async def get_conversation(
    conversation_id: str,
    current_user: CurrentUser,
    conversation_service: ConversationServiceDep
):
    return await conversation_service.get_summary(conversation_id, current_user.id)

@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def get_messages(
    conversation_id: str,
    current_user: CurrentUser,
    message_service: MessageServiceDep,
    limit: int = Query(MESSAGES_PAGE_SIZE, ge=1, le=200, description="Maximum number of messages"),
    offset: int = Query(0, ge=0, description="Number of newer messages to skip"),
    before: Optional[datetime] = Query(None, description="Only messages created before this time")
):
    """Message history, oldest first"""
    return await message_service.list(
        conversation_id, current_user.id, limit=limit, offset=offset, before=before
    )

@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_conversation_read(
    conversation_id: str,
    current_user: CurrentUser,
    message_service: MessageServiceDep
):
    """Mark every message addressed to the current user as read"""
    return await message_service.mark_conversation_read(conversation_id, current_user.id)

@router.delete("/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(
    conversation_id: str,
    current_user: CurrentUser,
    conversation_service: ConversationServiceDep
):
    """Hide the conversation for the current user only"""
    await conversation_service.soft_delete(conversation_id, current_user.id)

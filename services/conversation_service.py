from typing import List, Optional, Tuple

from config import CONVERSATIONS_PAGE_SIZE
from db.schemas.conversation_schema import ConversationInDB
from helpers.errors import (
    CONVERSATION_NOT_FOUND,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
)
from logger.logger import logger
from mappers.conversations_mapper import conversation_db_to_summary
from mappers.messages_mapper import message_db_to_response
from mappers.users_mapper import unknown_user, user_db_to_public
from models.conversation_model import ConversationSummary, GetOrCreateConversationResponse
from models.enums import EventType
from models.events_model import DomainEvent
from realtime.outbox import EventOutbox
from realtime.presence import PresenceRegistry
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.user_repo import UserRepository


class ConversationService:
    """
    Service layer for two-party conversations
    Owns the one-conversation-per-pair rule and per-user hiding
    """

    def __init__(
        self,
        conversation_repository: ConversationRepository,
        message_repository: MessageRepository,
        user_repository: UserRepository,
        presence: PresenceRegistry,
        outbox: Optional[EventOutbox] = None
    ):
        self.conversation_repo = conversation_repository
        self.message_repo = message_repository
        self.user_repo = user_repository
        self.presence = presence
        self.outbox = outbox

    async def get_or_create(self, user_id: str, other_user_id: str) -> Tuple[ConversationInDB, bool]:
        """
        Find or start the conversation between two users.

        An explicit lookup is the restore trigger: if either side had hidden
        the conversation it becomes visible to both again.
        Returns (conversation, created)
        """
        if str(user_id) == str(other_user_id):
            raise InvalidRequestError("Cannot create conversation with yourself")

        conversation, created = await self.conversation_repo.find_or_create(user_id, other_user_id)

        if not created and conversation.deleted_by:
            if await self.conversation_repo.restore(conversation.id):
                logger.info(f"Conversation {conversation.id} restored by {user_id}")
            conversation = await self.conversation_repo.get_by_id(conversation.id)

        return conversation, created

    async def get_or_create_summary(self, user_id: str, other_user_id: str) -> GetOrCreateConversationResponse:
        other = await self.user_repo.get_user_by_id(other_user_id)
        if other is None:
            raise NotFoundError("User not found")

        conversation, created = await self.get_or_create(user_id, other_user_id)
        summary = await self._summarize(conversation, user_id)
        return GetOrCreateConversationResponse(**summary.model_dump(), is_new=created)

    async def get_by_id(self, conversation_id: str, requester_id: str) -> Optional[ConversationInDB]:
        """The conversation if the requester takes part in it, otherwise None"""
        conversation = await self.conversation_repo.get_by_id(conversation_id)
        if conversation is None or not conversation.is_participant(requester_id):
            return None
        return conversation

    async def require_participant(self, conversation_id: str, requester_id: str) -> ConversationInDB:
        conversation = await self.get_by_id(conversation_id, requester_id)
        if conversation is None:
            raise NotFoundError(CONVERSATION_NOT_FOUND)
        return conversation

    async def get_summary(self, conversation_id: str, requester_id: str) -> ConversationSummary:
        conversation = await self.require_participant(conversation_id, requester_id)
        return await self._summarize(conversation, requester_id)

    async def soft_delete(self, conversation_id: str, requester_id: str):
        """Hide the conversation from the requester's own lists"""
        conversation = await self.conversation_repo.get_by_id(conversation_id)
        if conversation is None:
            raise NotFoundError(CONVERSATION_NOT_FOUND)
        if not conversation.is_participant(requester_id):
            raise UnauthorizedError(CONVERSATION_NOT_FOUND, hide_existence=True)

        if await self.conversation_repo.hide_for_user(conversation.id, requester_id):
            logger.info(f"Conversation {conversation.id} hidden for {requester_id}")

        self._publish(DomainEvent(
            event_type=EventType.CONVERSATION_DELETED,
            conversation_id=conversation.id,
            actor_id=requester_id,
            participants=conversation.participants
        ))

    async def list_for_user(
        self,
        user_id: str,
        limit: int = CONVERSATIONS_PAGE_SIZE,
        offset: int = 0,
        search: Optional[str] = None
    ) -> List[ConversationSummary]:
        """
        Visible conversations, most recent first.
        search keeps the ones whose last message contains the term.
        """
        search = search.strip() if search else None

        if not search:
            conversations = await self.conversation_repo.list_visible_for_user(user_id, skip=offset, limit=limit)
        else:
            candidates = await self.conversation_repo.list_visible_for_user(user_id)
            matching_ids = await self.message_repo.filter_ids_by_content(
                [c.last_message_id for c in candidates if c.last_message_id],
                search
            )
            matched = [c for c in candidates if c.last_message_id in matching_ids]
            conversations = matched[offset:offset + limit]

        return await self._summarize_many(conversations, user_id)

    async def _summarize(self, conversation: ConversationInDB, viewer_id: str) -> ConversationSummary:
        summaries = await self._summarize_many([conversation], viewer_id)
        return summaries[0]

    async def _summarize_many(self, conversations: List[ConversationInDB], viewer_id: str) -> List[ConversationSummary]:
        """Attach the other participant, live presence, unread count and last message"""
        if not conversations:
            return []

        other_ids = {c.other_participant(viewer_id) for c in conversations}
        users = await self.user_repo.get_users_by_ids(other_ids)
        last_messages = await self.message_repo.get_by_ids(
            c.last_message_id for c in conversations if c.last_message_id
        )

        summaries = []
        for conversation in conversations:
            other_id = conversation.other_participant(viewer_id)
            is_online = await self.presence.is_online(other_id)
            other = users.get(other_id)
            profile = user_db_to_public(other, is_online) if other else unknown_user(other_id, is_online)

            last_message = last_messages.get(conversation.last_message_id)
            unread = await self.message_repo.count_unread(conversation.id, viewer_id)

            summaries.append(conversation_db_to_summary(
                conversation,
                other_participant=profile,
                last_message=message_db_to_response(last_message) if last_message else None,
                unread_count=unread
            ))
        return summaries

    def _publish(self, event: DomainEvent):
        if self.outbox is None:
            return
        try:
            self.outbox.publish(event)
        except Exception as e:
            logger.error(f"Could not queue {event.event_type.value} event: {e}")

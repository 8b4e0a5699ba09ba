from datetime import datetime
from typing import List, Optional

from pymongo.errors import PyMongoError

from config import MESSAGES_PAGE_SIZE
from db.db import run_in_transaction
from db.schemas.conversation_schema import ConversationInDB
from db.schemas.message_schema import MessageInDB
from helpers.errors import (
    CONVERSATION_NOT_FOUND,
    MESSAGE_NOT_FOUND,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    UnauthorizedError,
)
from logger.logger import logger
from mappers.messages_mapper import message_db_to_response
from models.enums import EventType
from models.events_model import DomainEvent
from models.message_model import MarkReadResponse, MessageCreate, MessageResponse
from realtime.outbox import EventOutbox
from repos.conversation_repo import ConversationRepository
from repos.message_repo import MessageRepository
from repos.user_repo import UserRepository
from utils.time import to_naive_utc


class MessageService:
    """
    Durable message storage and read state.
    Every mutation publishes its event only after the write has committed.
    """

    def __init__(
        self,
        db,
        message_repository: MessageRepository,
        conversation_repository: ConversationRepository,
        user_repository: UserRepository,
        outbox: Optional[EventOutbox] = None
    ):
        self.db = db
        self.message_repo = message_repository
        self.conversation_repo = conversation_repository
        self.user_repo = user_repository
        self.outbox = outbox

    async def send(self, sender_id: str, message: MessageCreate) -> MessageResponse:
        """
        Store a message, creating the conversation on first contact.
        A conversation the sender or recipient has hidden stays hidden.
        """
        recipient_id = message.recipient_id
        if str(sender_id) == str(recipient_id):
            raise InvalidRequestError("Cannot send message to yourself")
        if not message.content.strip():
            raise InvalidRequestError("Message content cannot be empty")

        recipient = await self.user_repo.get_user_by_id(recipient_id)
        if recipient is None:
            raise NotFoundError("Recipient not found")

        async def store(session):
            conversation, created = await self.conversation_repo.find_or_create(
                sender_id, recipient_id, session=session
            )
            stored = await self.message_repo.create_message({
                "conversation_id": conversation.id,
                "sender_id": str(sender_id),
                "recipient_id": str(recipient_id),
                "content": message.content,
                "message_type": message.message_type.value,
                "file_url": message.file_url,
                "file_name": message.file_name,
            }, session=session)
            await self.conversation_repo.set_last_message(conversation.id, stored.id, session=session)
            return conversation, created, stored

        try:
            conversation, created, stored = await run_in_transaction(self.db, store)
        except PyMongoError as e:
            logger.error(f"Failed to store message from {sender_id} to {recipient_id}: {e}")
            raise InternalError("Failed to send message")

        if created:
            logger.info(f"Conversation {conversation.id} started by {sender_id}")

        response = message_db_to_response(stored)
        self._publish(EventType.MESSAGE_CREATED, conversation, sender_id, {
            "message": response.model_dump(mode="json")
        })
        return response

    async def list(
        self,
        conversation_id: str,
        requester_id: str,
        limit: int = MESSAGES_PAGE_SIZE,
        offset: int = 0,
        before: Optional[datetime] = None
    ) -> List[MessageResponse]:
        """
        A page of history, oldest first.
        The page is the newest `limit` messages after skipping `offset`,
        counting only messages strictly older than `before` when given.
        """
        conversation = await self._participant_conversation(conversation_id, requester_id)

        messages = await self.message_repo.list_for_conversation(
            conversation.id,
            skip=offset,
            limit=limit,
            before=to_naive_utc(before) if before else None
        )
        messages.reverse()
        return [message_db_to_response(message) for message in messages]

    async def edit(self, message_id: str, requester_id: str, content: str) -> MessageResponse:
        if not content or not content.strip():
            raise InvalidRequestError("Message content cannot be empty")

        message = await self._sender_message(message_id, requester_id)

        updated = await self.message_repo.update_content(message.id, content)
        if updated is None:
            raise NotFoundError(MESSAGE_NOT_FOUND)

        response = message_db_to_response(updated)
        conversation = await self.conversation_repo.get_by_id(message.conversation_id)
        if conversation is not None:
            self._publish(EventType.MESSAGE_EDITED, conversation, requester_id, {
                "message": response.model_dump(mode="json")
            })
        return response

    async def delete(self, message_id: str, requester_id: str):
        """Remove a message and repoint the conversation at its newest survivor"""
        message = await self._sender_message(message_id, requester_id)

        async def remove(session):
            deleted = await self.message_repo.delete_message(message.id, session=session)
            if not deleted:
                raise NotFoundError(MESSAGE_NOT_FOUND)

            conversation = await self.conversation_repo.get_by_id(message.conversation_id, session=session)
            if conversation is not None and conversation.last_message_id == message.id:
                latest = await self.message_repo.find_latest(conversation.id, session=session)
                await self.conversation_repo.set_last_message(
                    conversation.id,
                    latest.id if latest else None,
                    session=session
                )
            return conversation

        try:
            conversation = await run_in_transaction(self.db, remove)
        except PyMongoError as e:
            logger.error(f"Failed to delete message {message_id}: {e}")
            raise InternalError("Failed to delete message")

        logger.info(f"Message {message.id} deleted by {requester_id}")

        if conversation is not None:
            self._publish(EventType.MESSAGE_DELETED, conversation, requester_id, {
                "message_id": message.id
            })

    async def mark_conversation_read(self, conversation_id: str, user_id: str) -> MarkReadResponse:
        conversation = await self._participant_conversation(conversation_id, user_id)

        async def flip(session):
            return await self.message_repo.mark_conversation_read(conversation.id, user_id, session=session)

        try:
            marked = await run_in_transaction(self.db, flip)
        except PyMongoError as e:
            logger.error(f"Failed to mark {conversation.id} read for {user_id}: {e}")
            raise InternalError("Failed to mark conversation as read")

        if marked:
            logger.debug(f"Marked {marked} messages read in {conversation.id} for {user_id}")

        self._publish(EventType.CONVERSATION_READ, conversation, user_id, {"marked_count": marked})

        unread = await self.message_repo.count_unread(conversation.id, user_id)
        return MarkReadResponse(conversation_id=conversation.id, marked_count=marked, unread_count=unread)

    async def unread_count(self, conversation_id: str, user_id: str) -> int:
        conversation = await self._participant_conversation(conversation_id, user_id)
        return await self.message_repo.count_unread(conversation.id, user_id)

    async def total_unread(self, user_id: str) -> int:
        """Unread messages across every conversation the user has not hidden"""
        conversations = await self.conversation_repo.list_visible_for_user(user_id)
        return await self.message_repo.count_unread_in([c.id for c in conversations], user_id)

    async def _participant_conversation(self, conversation_id: str, user_id: str) -> ConversationInDB:
        conversation = await self.conversation_repo.get_by_id(conversation_id)
        if conversation is None or not conversation.is_participant(user_id):
            raise NotFoundError(CONVERSATION_NOT_FOUND)
        return conversation

    async def _sender_message(self, message_id: str, requester_id: str) -> MessageInDB:
        """Strangers to a message see it as absent; the recipient is refused"""
        message = await self.message_repo.get_by_id(message_id)
        if message is None or not message.is_party(requester_id):
            raise NotFoundError(MESSAGE_NOT_FOUND)
        if message.sender_id != str(requester_id):
            raise UnauthorizedError("Only the sender can modify this message")
        return message

    def _publish(self, event_type: EventType, conversation: ConversationInDB, actor_id: str, payload: dict):
        if self.outbox is None:
            return
        try:
            self.outbox.publish(DomainEvent(
                event_type=event_type,
                conversation_id=conversation.id,
                actor_id=str(actor_id),
                participants=conversation.participants,
                payload=payload
            ))
        except Exception as e:
            logger.error(f"Could not queue {event_type.value} event: {e}")

from typing import List, Optional, Tuple
from bson import ObjectId
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from db.mongodb import convert_to_object_id, make_pair_key
from db.schemas.conversation_schema import ConversationInDB, new_conversation_document
from utils.time import get_current_utc_time

class ConversationRepository:
    """
    Repository for conversation documents
    Handles all direct interactions with the conversations collection
    """

    def __init__(self, db):
        self.db = db
        self.conversations = db.conversations

    async def find_or_create(self, user_a: str, user_b: str, session=None) -> Tuple[ConversationInDB, bool]:
        """
        Return the conversation for the pair, inserting it if missing.
        The unique pair_key index makes this safe under concurrent callers:
        a losing insert surfaces as DuplicateKeyError and we read the winner.
        Returns (conversation, created)
        """
        pair_key = make_pair_key(user_a, user_b)

        existing = await self.conversations.find_one({"pair_key": pair_key}, session=session)
        if existing:
            return ConversationInDB(**existing), False

        document = {"_id": ObjectId(), **new_conversation_document(user_a, user_b)}
        try:
            await self.conversations.insert_one(document, session=session)
        except DuplicateKeyError:
            conversation = await self.conversations.find_one({"pair_key": pair_key}, session=session)
            return ConversationInDB(**conversation), False

        return ConversationInDB(**document), True

    async def get_by_id(self, conversation_id: str, session=None) -> Optional[ConversationInDB]:
        """Get a conversation by id, None when absent or the id is malformed"""
        object_id = convert_to_object_id(conversation_id)
        if object_id is None:
            return None

        conversation = await self.conversations.find_one({"_id": object_id}, session=session)
        return ConversationInDB(**conversation) if conversation else None

    async def restore(self, conversation_id: str) -> bool:
        """
        Clear deleted_by for every participant.
        Returns True if the conversation was hidden for anyone.
        """
        result = await self.conversations.update_one(
            {"_id": ObjectId(conversation_id), "deleted_by.0": {"$exists": True}},
            {"$set": {"deleted_by": [], "updated_at": get_current_utc_time()}}
        )
        return result.modified_count > 0

    async def hide_for_user(self, conversation_id: str, user_id: str) -> bool:
        """Add the user to deleted_by. Idempotent; returns True on first hide"""
        result = await self.conversations.update_one(
            {"_id": ObjectId(conversation_id), "participants": user_id},
            {"$addToSet": {"deleted_by": user_id}}
        )
        return result.modified_count > 0

    async def set_last_message(self, conversation_id: str, message_id: Optional[str], session=None):
        """Point the display cache at a message (or clear it) and bump updated_at"""
        await self.conversations.update_one(
            {"_id": ObjectId(conversation_id)},
            {
                "$set": {
                    "last_message_id": ObjectId(message_id) if message_id else None,
                    "updated_at": get_current_utc_time()
                }
            },
            session=session
        )

    async def list_visible_for_user(
        self,
        user_id: str,
        skip: int = 0,
        limit: Optional[int] = None
    ) -> List[ConversationInDB]:
        """
        Conversations the user takes part in and has not hidden,
        most recently updated first
        """
        cursor = self.conversations.find({
            "participants": user_id,
            "deleted_by": {"$ne": user_id}
        }).sort([("updated_at", DESCENDING), ("_id", DESCENDING)])

        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)

        conversations = await cursor.to_list(length=None)
        return [ConversationInDB(**conversation) for conversation in conversations]

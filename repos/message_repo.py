import re
from typing import Dict, Iterable, List, Optional, Set
from datetime import datetime
from bson import ObjectId
from pymongo import ReturnDocument, DESCENDING

from db.mongodb import convert_to_object_id
from db.schemas.message_schema import MessageInDB
from utils.time import get_current_utc_time

# Newest first; _id breaks ties between messages stored in the same millisecond
NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]

class MessageRepository:
    """
    Repository for direct message documents
    Handles all direct interactions with the messages collection
    """

    def __init__(self, db):
        self.db = db
        self.messages = db.messages

    async def create_message(self, message_data: Dict, session=None) -> MessageInDB:
        """Insert a message and return it as stored"""
        now = get_current_utc_time()
        document = {
            **message_data,
            "conversation_id": ObjectId(message_data["conversation_id"]),
            "is_read": False,
            "read_at": None,
            "created_at": now,
            "updated_at": now
        }

        result = await self.messages.insert_one(document, session=session)
        created_message = await self.messages.find_one({"_id": result.inserted_id}, session=session)
        return MessageInDB(**created_message)

    async def get_by_id(self, message_id: str) -> Optional[MessageInDB]:
        object_id = convert_to_object_id(message_id)
        if object_id is None:
            return None

        message = await self.messages.find_one({"_id": object_id})
        return MessageInDB(**message) if message else None

    async def get_by_ids(self, message_ids: Iterable[str]) -> Dict[str, MessageInDB]:
        object_ids = [ObjectId(m_id) for m_id in message_ids if m_id]
        if not object_ids:
            return {}

        messages = await self.messages.find({"_id": {"$in": object_ids}}).to_list(length=None)
        return {str(message["_id"]): MessageInDB(**message) for message in messages}

    async def list_for_conversation(
        self,
        conversation_id: str,
        skip: int = 0,
        limit: int = 50,
        before: Optional[datetime] = None
    ) -> List[MessageInDB]:
        """
        Page through a conversation newest first.
        With before set only messages strictly older than it are returned.
        """
        query = {"conversation_id": ObjectId(conversation_id)}
        if before is not None:
            query["created_at"] = {"$lt": before}

        messages = await self.messages.find(query).sort(NEWEST_FIRST).skip(skip).limit(limit).to_list(length=None)
        return [MessageInDB(**message) for message in messages]

    async def update_content(self, message_id: str, content: str) -> Optional[MessageInDB]:
        updated_message = await self.messages.find_one_and_update(
            {"_id": ObjectId(message_id)},
            {"$set": {"content": content, "updated_at": get_current_utc_time()}},
            return_document=ReturnDocument.AFTER
        )
        return MessageInDB(**updated_message) if updated_message else None

    async def delete_message(self, message_id: str, session=None) -> bool:
        result = await self.messages.delete_one({"_id": ObjectId(message_id)}, session=session)
        return result.deleted_count > 0

    async def find_latest(self, conversation_id: str, session=None) -> Optional[MessageInDB]:
        """Most recent remaining message of a conversation"""
        cursor = self.messages.find(
            {"conversation_id": ObjectId(conversation_id)},
            session=session
        ).sort(NEWEST_FIRST).limit(1)
        messages = await cursor.to_list(length=1)
        return MessageInDB(**messages[0]) if messages else None

    async def mark_conversation_read(self, conversation_id: str, user_id: str, session=None) -> int:
        """
        Flip every unread message addressed to the user.
        Returns the number of messages changed (0 on a repeat call).
        """
        now = get_current_utc_time()
        result = await self.messages.update_many(
            {
                "conversation_id": ObjectId(conversation_id),
                "recipient_id": user_id,
                "is_read": False
            },
            {"$set": {"is_read": True, "read_at": now}},
            session=session
        )
        return result.modified_count

    async def count_unread(self, conversation_id: str, user_id: str) -> int:
        return await self.messages.count_documents({
            "conversation_id": ObjectId(conversation_id),
            "recipient_id": user_id,
            "is_read": False
        })

    async def count_unread_in(self, conversation_ids: Iterable[str], user_id: str) -> int:
        object_ids = [ObjectId(c_id) for c_id in conversation_ids]
        if not object_ids:
            return 0

        return await self.messages.count_documents({
            "conversation_id": {"$in": object_ids},
            "recipient_id": user_id,
            "is_read": False
        })

    async def filter_ids_by_content(self, message_ids: Iterable[str], search: str) -> Set[str]:
        """Subset of the given message ids whose content contains search, case-insensitively"""
        object_ids = [ObjectId(m_id) for m_id in message_ids if m_id]
        if not object_ids:
            return set()

        messages = await self.messages.find(
            {
                "_id": {"$in": object_ids},
                "content": {"$regex": re.escape(search), "$options": "i"}
            },
            projection={"_id": 1}
        ).to_list(length=None)
        return {str(message["_id"]) for message in messages}

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime
from bson import ObjectId
from db.mongodb import PyObjectId, make_pair_key
from utils.time import get_current_utc_time

class ConversationInDB(BaseModel):
    """Database representation of a two-party conversation document"""
    id: PyObjectId = Field(default_factory=lambda: str(ObjectId()), alias="_id")
    participants: List[str]
    pair_key: str
    deleted_by: List[str] = []
    last_message_id: Optional[str] = None

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

    @field_validator('id', 'last_message_id', mode='before')
    @classmethod
    def convert_object_id(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @field_validator('participants', 'deleted_by', mode='before')
    @classmethod
    def convert_user_ids(cls, v):
        if v is None:
            return []
        return sorted({str(x) for x in v})

    @model_validator(mode='after')
    def check_membership(self):
        if len(self.participants) != 2:
            raise ValueError("A conversation has exactly two distinct participants")
        if self.pair_key != make_pair_key(*self.participants):
            raise ValueError("pair_key does not match participants")
        if not set(self.deleted_by) <= set(self.participants):
            raise ValueError("deleted_by must be a subset of participants")
        return self

    def other_participant(self, user_id: str) -> str:
        return next(p for p in self.participants if p != str(user_id))

    def is_participant(self, user_id: str) -> bool:
        return str(user_id) in self.participants

    def is_hidden_for(self, user_id: str) -> bool:
        return str(user_id) in self.deleted_by


def new_conversation_document(user_a: str, user_b: str) -> dict:
    """Fields written when a conversation is first inserted"""
    now = get_current_utc_time()
    return {
        "participants": sorted([str(user_a), str(user_b)]),
        "pair_key": make_pair_key(user_a, user_b),
        "deleted_by": [],
        "last_message_id": None,
        "created_at": now,
        "updated_at": now,
    }

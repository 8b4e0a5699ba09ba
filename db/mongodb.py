# centralizes MongoDB utilities
from bson import ObjectId
from typing import Annotated
from pydantic import Field
from typing import Optional

PyObjectId = Annotated[str, Field(default_factory=lambda: str(ObjectId()))]

# Helper functions for MongoDB operations
def convert_to_object_id(id_value: str) -> Optional[ObjectId]:
    """
    Convert string ID to ObjectId for MongoDB queries.
    Returns None for malformed ids so callers can treat them as not found.
    """
    if isinstance(id_value, ObjectId):
        return id_value
    if isinstance(id_value, str) and ObjectId.is_valid(id_value):
        return ObjectId(id_value)
    return None

def make_pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of user ids"""
    low, high = sorted([str(user_a), str(user_b)])
    return f"{low}:{high}"

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from bson import ObjectId
from db.mongodb import PyObjectId

class UserInDB(BaseModel):
    """
    Database representation of a user document.

    Users are owned by the account service; this app only reads the fields
    it needs to address and display participants.
    """
    id: PyObjectId = Field(default_factory=lambda: str(ObjectId()), alias="_id")
    username: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    user_type: str = "normal"
    avatar_url: Optional[str] = None

    # Metadata
    last_login: Optional[datetime] = None
    is_active: bool = True

    model_config = {
        "arbitrary_types_allowed": True,
        "populate_by_name": True,
        "extra": "ignore",
        "json_encoders": {
            ObjectId: str
        }
    }

    @field_validator('id', mode='before')
    @classmethod
    def convert_object_id(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v


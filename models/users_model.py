from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class UserPublic(BaseModel):
    """Public profile of a user as shown to other participants"""
    id: str
    username: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    role: str
    avatar: Optional[str] = None
    is_online: bool = False
    last_seen: Optional[datetime] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": "507f1f77bcf86cd799439011",
                    "username": "johndoe",
                    "first_name": "John",
                    "last_name": "Doe",
                    "email": "john@example.com",
                    "role": "normal",
                    "avatar": None,
                    "is_online": True,
                    "last_seen": "2023-01-02T12:30:45"
                }
            ]
        }
    }

class UserSearchResponse(BaseModel):
    users: list[UserPublic]
    total: int

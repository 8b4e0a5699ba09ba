import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from pymongo import ASCENDING

from db.mongodb import convert_to_object_id
from db.schemas.users_schema import UserInDB

# Only the fields needed to address and display a participant
PUBLIC_PROJECTION = {
    "_id": 1,
    "username": 1,
    "email": 1,
    "first_name": 1,
    "last_name": 1,
    "user_type": 1,
    "avatar_url": 1,
    "last_login": 1,
    "is_active": 1,
}

NAME_ORDER = [("first_name", ASCENDING), ("last_name", ASCENDING), ("_id", ASCENDING)]

class UserRepository:
    """
    Read-only access to the users collection
    """

    def __init__(self, db):
        self.db = db

    async def get_user_by_id(self, user_id: str) -> Optional[UserInDB]:
        object_id = convert_to_object_id(user_id)
        if object_id is None:
            return None

        user = await self.db.users.find_one({"_id": object_id}, projection=PUBLIC_PROJECTION)
        return UserInDB(**user) if user else None

    async def get_users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, UserInDB]:
        object_ids = [oid for oid in (convert_to_object_id(u_id) for u_id in user_ids) if oid is not None]
        if not object_ids:
            return {}

        users = await self.db.users.find(
            {"_id": {"$in": object_ids}},
            projection=PUBLIC_PROJECTION
        ).to_list(length=None)
        return {str(user["_id"]): UserInDB(**user) for user in users}

    async def search_users(
        self,
        exclude_user_id: str,
        query: str = "",
        role: Optional[str] = None,
        active_since: Optional[datetime] = None,
        limit: int = 50
    ) -> List[UserInDB]:
        """
        Case-insensitive substring search over names, username and email.
        Users seen since active_since come first, each group ordered by name.
        """
        conditions = [{"is_active": {"$ne": False}}]

        exclude_id = convert_to_object_id(exclude_user_id)
        if exclude_id is not None:
            conditions.append({"_id": {"$ne": exclude_id}})

        if query:
            pattern = {"$regex": re.escape(query), "$options": "i"}
            conditions.append({
                "$or": [
                    {"first_name": pattern},
                    {"last_name": pattern},
                    {"username": pattern},
                    {"email": pattern}
                ]
            })

        if role and role != "all":
            conditions.append({"user_type": role})

        results: List[UserInDB] = []

        if active_since is not None:
            recent = await self.db.users.find(
                {"$and": conditions + [{"last_login": {"$gte": active_since}}]},
                projection=PUBLIC_PROJECTION
            ).sort(NAME_ORDER).limit(limit).to_list(length=None)
            results.extend(UserInDB(**user) for user in recent)

            conditions.append({
                "$or": [
                    {"last_login": {"$lt": active_since}},
                    {"last_login": None}
                ]
            })

        remaining = limit - len(results)
        if remaining > 0:
            rest = await self.db.users.find(
                {"$and": conditions},
                projection=PUBLIC_PROJECTION
            ).sort(NAME_ORDER).limit(remaining).to_list(length=None)
            results.extend(UserInDB(**user) for user in rest)

        return results

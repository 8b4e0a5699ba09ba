from typing import Optional

from config import RECENT_ACTIVITY_MINUTES, USER_SEARCH_LIMIT
from mappers.users_mapper import user_db_to_public
from models.users_model import UserSearchResponse
from realtime.presence import PresenceRegistry
from repos.user_repo import UserRepository
from utils.time import minutes_ago

class UserService:
    """
    Directory lookups used to start new conversations
    """

    def __init__(self, user_repository: UserRepository, presence: PresenceRegistry):
        self.user_repo = user_repository
        self.presence = presence

    async def search_users(
        self,
        requester_id: str,
        query: Optional[str] = None,
        role: Optional[str] = None
    ) -> UserSearchResponse:
        """
        Find people to message, never including the requester.
        Recently active users are listed first, then everyone else by name.
        """
        users = await self.user_repo.search_users(
            exclude_user_id=requester_id,
            query=(query or "").strip(),
            role=role,
            active_since=minutes_ago(RECENT_ACTIVITY_MINUTES),
            limit=USER_SEARCH_LIMIT
        )

        results = []
        for user in users:
            is_online = await self.presence.is_online(user.id)
            results.append(user_db_to_public(user, is_online))

        return UserSearchResponse(users=results, total=len(results))

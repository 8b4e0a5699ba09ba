"""
Live-connection presence.

A user is online while at least one of their sockets is connected. Each
browser tab or device holds its own socket, so the registry tracks a set of
connection ids per user and only reports transitions when the first socket
arrives or the last one leaves.

The registry is process-local. PresenceRegistry is the seam for a shared
implementation (Redis, a message bus) when running more than one process.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Set


class PresenceRegistry(ABC):

    @abstractmethod
    async def register(self, user_id: str, sid: str) -> bool:
        """Track a new connection. Returns True if the user just came online"""

    @abstractmethod
    async def unregister(self, sid: str) -> Optional[str]:
        """Forget a connection. Returns the user id if they just went offline"""

    @abstractmethod
    async def is_online(self, user_id: str) -> bool:
        ...

    @abstractmethod
    async def online_users(self) -> List[str]:
        ...

    @abstractmethod
    async def connection_count(self, user_id: str) -> int:
        ...

    @abstractmethod
    async def connections_for(self, user_id: str) -> List[str]:
        ...

    @abstractmethod
    async def user_for(self, sid: str) -> Optional[str]:
        ...

    async def filter_online(self, user_ids) -> List[str]:
        return [user_id for user_id in user_ids if await self.is_online(user_id)]


class InMemoryPresenceRegistry(PresenceRegistry):
    """Presence kept in two dicts owned by the event loop thread"""

    def __init__(self):
        self._connections: Dict[str, Set[str]] = {}  # user_id -> socket ids
        self._owners: Dict[str, str] = {}  # socket id -> user_id

    async def register(self, user_id: str, sid: str) -> bool:
        previous_owner = self._owners.get(sid)
        if previous_owner is not None and previous_owner != user_id:
            await self.unregister(sid)

        sockets = self._connections.setdefault(user_id, set())
        became_online = not sockets
        sockets.add(sid)
        self._owners[sid] = user_id
        return became_online

    async def unregister(self, sid: str) -> Optional[str]:
        user_id = self._owners.pop(sid, None)
        if user_id is None:
            return None

        sockets = self._connections.get(user_id)
        if sockets is None:
            return None

        sockets.discard(sid)
        if sockets:
            return None

        del self._connections[user_id]
        return user_id

    async def is_online(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))

    async def online_users(self) -> List[str]:
        return list(self._connections.keys())

    async def connection_count(self, user_id: str) -> int:
        return len(self._connections.get(user_id, ()))

    async def connections_for(self, user_id: str) -> List[str]:
        return list(self._connections.get(user_id, ()))

    async def user_for(self, sid: str) -> Optional[str]:
        return self._owners.get(sid)

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

import socketio
from socketio.exceptions import ConnectionRefusedError

from config import TYPING_TIMEOUT_SECONDS
from db.schemas.conversation_schema import ConversationInDB
from db.schemas.users_schema import UserInDB
from helpers.auth import decode_access_token, extract_bearer_token
from helpers.errors import UnauthenticatedError
from logger.logger import logger
from models.enums import EventType, PresenceStatus
from models.events_model import DomainEvent
from realtime.presence import PresenceRegistry
from utils.time import get_current_utc_time

UserLoader = Callable[[str], Awaitable[Optional[UserInDB]]]
ConversationLoader = Callable[[str, str], Awaitable[Optional[ConversationInDB]]]

# Server -> client event names
CLIENT_EVENTS = {
    EventType.MESSAGE_CREATED: "newMessage",
    EventType.MESSAGE_EDITED: "messageEdited",
    EventType.MESSAGE_DELETED: "messageDeleted",
    EventType.CONVERSATION_DELETED: "conversationDeleted",
    EventType.CONVERSATION_READ: "conversationRead",
}

MESSAGE_EVENTS = {EventType.MESSAGE_CREATED, EventType.MESSAGE_EDITED, EventType.MESSAGE_DELETED}


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def conversation_room(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def create_socket_server(cors_origins: List[str]) -> socketio.AsyncServer:
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_origins,
        logger=False,
        engineio_logger=False
    )


class RealtimeDispatcher:
    """
    Socket.IO side of messaging.

    Authenticates sockets at connect time, keeps presence and room
    membership, relays typing signals, and fans committed domain events out
    to the rooms that care about them. Every emit is best-effort.
    """

    def __init__(
        self,
        sio: socketio.AsyncServer,
        presence: PresenceRegistry,
        user_loader: UserLoader,
        conversation_loader: ConversationLoader,
        typing_timeout: float = TYPING_TIMEOUT_SECONDS
    ):
        self.sio = sio
        self.presence = presence
        self.user_loader = user_loader
        self.conversation_loader = conversation_loader
        self.typing_timeout = typing_timeout

        self._joined: Dict[str, Set[str]] = {}  # socket id -> conversation ids
        self._typing: Dict[Tuple[str, str], asyncio.Task] = {}  # (conversation, user) -> auto-stop task

    def register_handlers(self):
        self.sio.on("connect", self.on_connect)
        self.sio.on("disconnect", self.on_disconnect)
        self.sio.on("joinConversation", self.on_join_conversation)
        self.sio.on("leaveConversation", self.on_leave_conversation)
        self.sio.on("typing", self.on_typing)
        self.sio.on("stopTyping", self.on_stop_typing)

    # Connection lifecycle

    async def on_connect(self, sid: str, environ: Dict[str, Any], auth: Optional[Dict[str, Any]] = None):
        token = auth.get("token") if isinstance(auth, dict) else None
        if not token:
            token = extract_bearer_token(environ.get("HTTP_AUTHORIZATION"))

        try:
            token_data = decode_access_token(token)
            user = await self.user_loader(token_data.user_id)
        except UnauthenticatedError as e:
            logger.info(f"Socket {sid} rejected: {e.message}")
            raise ConnectionRefusedError("Authentication error")
        except Exception as e:
            logger.exception(f"Socket {sid} rejected, user lookup failed: {e}")
            raise ConnectionRefusedError("Internal error")

        if user is None or not user.is_active:
            logger.info(f"Socket {sid} rejected: user {token_data.user_id} not found or inactive")
            raise ConnectionRefusedError("Authentication error")

        await self.sio.save_session(sid, {"user_id": user.id})
        await self.sio.enter_room(sid, user_room(user.id))
        self._joined[sid] = set()
        became_online = await self.presence.register(user.id, sid)

        logger.info(f"User {user.id} connected with socket {sid}")

        await self.sio.emit("connected", {
            "user_id": user.id,
            "socket_id": sid,
            "timestamp": get_current_utc_time().isoformat()
        }, to=sid)

        if became_online:
            await self._broadcast_presence(user.id, PresenceStatus.ONLINE)

    async def on_disconnect(self, sid: str, reason: Any = None):
        user_id = await self.presence.user_for(sid)
        joined = self._joined.pop(sid, set())
        went_offline = await self.presence.unregister(sid)

        if user_id is None:
            return

        logger.info(f"User {user_id} disconnected (socket {sid})")

        for conversation_id in joined:
            if not await self._joined_elsewhere(user_id, conversation_id, sid):
                await self._stop_typing(conversation_id, user_id)

        if went_offline:
            await self._broadcast_presence(user_id, PresenceStatus.OFFLINE)

    # Client events

    async def on_join_conversation(self, sid: str, data: Any):
        user_id = await self.presence.user_for(sid)
        conversation_id = self._conversation_id_from(data)
        if user_id is None or not conversation_id:
            await self._emit_error(sid, "Conversation ID is required")
            return

        try:
            conversation = await self.conversation_loader(conversation_id, user_id)
        except Exception as e:
            logger.exception(f"Failed to load conversation {conversation_id} for socket {sid}: {e}")
            await self._emit_error(sid, "Failed to join conversation")
            return

        if conversation is None:
            await self._emit_error(sid, "Conversation not found or access denied")
            return

        await self.sio.enter_room(sid, conversation_room(conversation_id))
        self._joined.setdefault(sid, set()).add(conversation_id)

        online = await self.presence.filter_online(conversation.participants)
        await self.sio.emit("joinedConversation", {
            "conversation_id": conversation_id,
            "online_user_ids": online
        }, to=sid)

    async def on_leave_conversation(self, sid: str, data: Any):
        conversation_id = self._conversation_id_from(data)
        if not conversation_id:
            await self._emit_error(sid, "Conversation ID is required")
            return

        await self.sio.leave_room(sid, conversation_room(conversation_id))
        joined = self._joined.get(sid)
        if joined is not None:
            joined.discard(conversation_id)

        user_id = await self.presence.user_for(sid)
        if user_id is not None and not await self._joined_elsewhere(user_id, conversation_id, sid):
            await self._stop_typing(conversation_id, user_id)

        await self.sio.emit("leftConversation", {"conversation_id": conversation_id}, to=sid)

    async def on_typing(self, sid: str, data: Any):
        user_id, conversation_id = await self._typing_target(sid, data)
        if user_id is None:
            return

        key = (conversation_id, user_id)
        previous = self._typing.get(key)
        if previous is not None:
            previous.cancel()
        self._typing[key] = asyncio.create_task(self._expire_typing(conversation_id, user_id))

        if previous is None:
            await self._emit_typing(conversation_id, user_id, True)

    async def on_stop_typing(self, sid: str, data: Any):
        user_id, conversation_id = await self._typing_target(sid, data)
        if user_id is None:
            return
        await self._stop_typing(conversation_id, user_id)

    # Fan-out

    async def dispatch(self, event: DomainEvent):
        """Emit a committed domain event to every interested room"""
        event_name = CLIENT_EVENTS[event.event_type]

        if event.event_type in MESSAGE_EVENTS:
            rooms = [conversation_room(event.conversation_id)]
            rooms.extend(user_room(user_id) for user_id in event.participants)
        else:
            # Hiding and reading are private to the acting user's devices
            rooms = [user_room(event.actor_id)]

        await self.sio.emit(event_name, event.to_client_payload(), to=rooms)

    async def emit_to_user(self, user_id: str, event: str, data: Dict[str, Any]):
        await self.sio.emit(event, data, to=user_room(user_id))

    async def disconnect_user(self, user_id: str):
        """Force-close every socket a user has open"""
        for sid in await self.presence.connections_for(user_id):
            await self.sio.disconnect(sid)

    def typing_users(self, conversation_id: str) -> List[str]:
        return [user_id for (c_id, user_id) in self._typing if c_id == conversation_id]

    async def close(self):
        """Cancel pending typing auto-stops"""
        tasks = list(self._typing.values())
        self._typing.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # Helpers

    async def _typing_target(self, sid: str, data: Any) -> Tuple[Optional[str], Optional[str]]:
        """Typing is only relayed for conversations this socket has joined"""
        user_id = await self.presence.user_for(sid)
        conversation_id = self._conversation_id_from(data)
        if user_id is None or not conversation_id:
            return None, None
        if conversation_id not in self._joined.get(sid, ()):
            return None, None
        return user_id, conversation_id

    async def _joined_elsewhere(self, user_id: str, conversation_id: str, sid: str) -> bool:
        """True if another socket of the user is still in the conversation room"""
        for other_sid in await self.presence.connections_for(user_id):
            if other_sid != sid and conversation_id in self._joined.get(other_sid, ()):
                return True
        return False

    async def _expire_typing(self, conversation_id: str, user_id: str):
        await asyncio.sleep(self.typing_timeout)
        try:
            await self._stop_typing(conversation_id, user_id)
        except Exception as e:
            logger.exception(f"Typing auto-stop failed for {user_id} in {conversation_id}: {e}")

    async def _stop_typing(self, conversation_id: str, user_id: str):
        task = self._typing.pop((conversation_id, user_id), None)
        if task is None:
            return
        if task is not asyncio.current_task():
            task.cancel()
        await self._emit_typing(conversation_id, user_id, False)

    async def _emit_typing(self, conversation_id: str, user_id: str, is_typing: bool):
        await self.sio.emit("userTyping", {
            "conversation_id": conversation_id,
            "user_id": user_id,
            "is_typing": is_typing
        }, to=conversation_room(conversation_id), skip_sid=await self.presence.connections_for(user_id))

    async def _broadcast_presence(self, user_id: str, status: PresenceStatus):
        payload = {"user_id": user_id, "status": status.value}
        if status == PresenceStatus.OFFLINE:
            payload["last_seen"] = get_current_utc_time().isoformat()
        await self.sio.emit("presenceUpdate", payload)

    async def _emit_error(self, sid: str, message: str):
        await self.sio.emit("error", {"message": message}, to=sid)

    @staticmethod
    def _conversation_id_from(data: Any) -> Optional[str]:
        if isinstance(data, dict):
            data = data.get("conversation_id") or data.get("conversationId")
        return str(data) if data else None

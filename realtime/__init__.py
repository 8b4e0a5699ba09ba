"""
Live delivery: presence tracking, Socket.IO room management and the outbox
that carries committed events to connected clients.
"""
from .presence import PresenceRegistry, InMemoryPresenceRegistry
from .outbox import EventOutbox
from .dispatcher import RealtimeDispatcher, create_socket_server, user_room, conversation_room

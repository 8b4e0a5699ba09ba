from enum import Enum

class MessageType(str, Enum):
    """Kinds of direct message content"""
    TEXT = "text"
    FILE = "file"
    IMAGE = "image"

class PresenceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"

class EventType(str, Enum):
    """State changes fanned out to live connections after a durable write"""
    MESSAGE_CREATED = "message_created"
    MESSAGE_EDITED = "message_edited"
    MESSAGE_DELETED = "message_deleted"
    CONVERSATION_DELETED = "conversation_deleted"
    CONVERSATION_READ = "conversation_read"

from pydantic import BaseModel, Field
from typing import Any, Dict, List
from datetime import datetime
from models.enums import EventType
from utils.time import get_current_utc_time

class DomainEvent(BaseModel):
    """
    A committed state change waiting to be fanned out to live connections.

    Services build one of these after the durable write succeeds and hand it
    to the outbox; the dispatcher decides which rooms receive it.
    """
    event_type: EventType
    conversation_id: str
    actor_id: str
    participants: List[str] = []
    payload: Dict[str, Any] = {}
    occurred_at: datetime = Field(default_factory=get_current_utc_time)

    def to_client_payload(self) -> Dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "user_id": self.actor_id,
            "timestamp": self.occurred_at.isoformat(),
            **self.payload,
        }

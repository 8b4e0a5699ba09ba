from fastapi import Depends, Request
from typing import Annotated

from realtime.outbox import EventOutbox
from realtime.presence import PresenceRegistry

def get_presence(request: Request) -> PresenceRegistry:
    """Presence registry shared with the socket server (set up in main.py)"""
    return request.app.state.presence

def get_outbox(request: Request) -> EventOutbox:
    return request.app.state.outbox

PresenceDep = Annotated[PresenceRegistry, Depends(get_presence)]
OutboxDep = Annotated[EventOutbox, Depends(get_outbox)]

"""
Import common dependencies to make them available from the package level.
This allows imports like: from dependencies import get_current_user
"""
from .auth import get_current_user, CurrentUser
from .db import get_db, DB
from .user import get_user_repository, get_user_service
from .messaging import get_conversation_service, get_message_service
from .realtime import get_presence, get_outbox

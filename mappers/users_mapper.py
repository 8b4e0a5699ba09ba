from db.schemas.users_schema import UserInDB
from models.users_model import UserPublic

def user_db_to_public(user_db: UserInDB, is_online: bool = False) -> UserPublic:
    """Convert database user schema to the public profile shown to other users"""
    return UserPublic(
        id=user_db.id,
        username=user_db.username,
        first_name=user_db.first_name or "",
        last_name=user_db.last_name or "",
        email=user_db.email,
        role=user_db.user_type,
        avatar=user_db.avatar_url,
        is_online=is_online,
        last_seen=user_db.last_login
    )

def unknown_user(user_id: str, is_online: bool = False) -> UserPublic:
    """Placeholder for a participant whose account record is gone"""
    return UserPublic(id=user_id, role="unknown", is_online=is_online)

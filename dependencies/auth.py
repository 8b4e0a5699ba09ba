# dependencies/auth.py
from fastapi import Depends
from typing import Optional, Annotated

from config import oauth2_scheme
from db.schemas.users_schema import UserInDB
from helpers.auth import decode_access_token
from helpers.errors import UnauthenticatedError
from logger.logger import logger
from .user import get_user_repository

async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    user_repo = Depends(get_user_repository)
) -> UserInDB:
    """Get the current authenticated user from the JWT token."""
    token_data = decode_access_token(token)

    user = await user_repo.get_user_by_id(token_data.user_id)
    if user is None:
        logger.info(f"Token for unknown user {token_data.user_id}")
        raise UnauthenticatedError()

    if not user.is_active:
        raise UnauthenticatedError("Inactive user")

    return user

# Create annotated types for cleaner dependency injection
CurrentUser = Annotated[UserInDB, Depends(get_current_user)]

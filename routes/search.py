from fastapi import APIRouter, Query
from typing import Optional

from dependencies.auth import CurrentUser
from dependencies.user import UserServiceDep
from models.users_model import UserSearchResponse

router = APIRouter()

@router.get("/users", response_model=UserSearchResponse)
async def search_users(
    current_user: CurrentUser,
    user_service: UserServiceDep,
    q: Optional[str] = Query(None, description="Matches first name, last name, username or email"),
    role: Optional[str] = Query(None, description="Only users with this role; 'all' disables the filter")
):
    """
    Directory search for starting a new conversation.
    Recently active users come first.
    """
    return await user_service.search_users(current_user.id, q, role)

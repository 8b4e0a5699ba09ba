from fastapi import Depends
from typing import Annotated

from repos.user_repo import UserRepository
from services.user_service import UserService
from .db import DB
from .realtime import PresenceDep

def get_user_repository(db: DB):
    """
    Dependency to get a user repository instance.
    """
    return UserRepository(db)

# Create annotated types for cleaner dependency injection
UserRepositoryDep = Annotated[UserRepository, Depends(get_user_repository)]

def get_user_service(repo: UserRepositoryDep, presence: PresenceDep):
    """
    Dependency to get a user service instance.
    """
    return UserService(repo, presence)

UserServiceDep = Annotated[UserService, Depends(get_user_service)]

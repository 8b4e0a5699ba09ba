# dependencies/db.py
from fastapi import Depends
from typing import Annotated

async def get_db():
    """
    Dependency for database access.
    Returns MongoDB database connection from the connection pool.
    """
    from db.db import get_db as db_connection
    db = await db_connection()
    return db

# MongoDB database dependency for use with FastAPI Depends
DB = Annotated[object, Depends(get_db)]

from pymongo import ASCENDING, DESCENDING

async def init_db_indexes(db):
    """
    Initialize database with required indexes and configurations
    """
    # One conversation per unordered pair of users
    await db.conversations.create_index([("pair_key", ASCENDING)], unique=True)

    # Conversation list for a user, newest first
    await db.conversations.create_index([("participants", ASCENDING), ("updated_at", DESCENDING)])

    # Message history pagination
    await db.messages.create_index([("conversation_id", ASCENDING), ("created_at", DESCENDING)])

    # Unread counts
    await db.messages.create_index([("recipient_id", ASCENDING), ("is_read", ASCENDING)])

    # Directory search ranks recently active users first
    await db.users.create_index([("last_login", DESCENDING)])

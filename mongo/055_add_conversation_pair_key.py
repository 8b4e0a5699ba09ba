#!/usr/bin/env python3
"""
Migration script for two-party conversations:
- participants stored as a sorted list of user id strings
- pair_key ("<low>:<high>") backing the unique one-conversation-per-pair index
- deleted_by defaulting to an empty list

Duplicate conversations for the same pair are reported, not merged, and the
migration fails until they are resolved.
"""

import asyncio
import motor.motor_asyncio
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError
import sys
import os

# Add the parent directory to the path so we can import our modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import settings

class MigrationError(Exception):
    pass

async def backfill_pair_keys(db):
    """Backfill pair_key and deleted_by, then create the unique pair_key index"""
    print("Starting migration: Adding conversation pair keys...")

    conversations_collection = db.conversations
    conversations = await conversations_collection.find({}).to_list(length=None)

    print(f"Found {len(conversations)} conversations to check")

    seen_keys = {}
    updated_count = 0
    duplicates = []

    for conversation in conversations:
        conversation_id = conversation["_id"]
        participants = sorted({str(p) for p in conversation.get("participants", [])})

        if len(participants) != 2:
            print(f"Skipping conversation {conversation_id}: expected 2 participants, found {len(participants)}")
            continue

        pair_key = f"{participants[0]}:{participants[1]}"
        if pair_key in seen_keys:
            duplicates.append((seen_keys[pair_key], conversation_id))
            continue
        seen_keys[pair_key] = conversation_id

        deleted_by = sorted({str(u) for u in conversation.get("deleted_by") or []} & set(participants))

        update_data = {}
        if conversation.get("participants") != participants:
            update_data["participants"] = participants
        if conversation.get("pair_key") != pair_key:
            update_data["pair_key"] = pair_key
        if conversation.get("deleted_by") != deleted_by:
            update_data["deleted_by"] = deleted_by
        if "last_message_id" not in conversation:
            update_data["last_message_id"] = None

        if update_data:
            result = await conversations_collection.update_one(
                {"_id": conversation_id},
                {"$set": update_data}
            )
            if result.modified_count > 0:
                updated_count += 1
                print(f"Updated conversation {conversation_id}")

    print(f"\nUpdated {updated_count} conversations")

    if duplicates:
        print(f"⚠️  {len(duplicates)} duplicate conversations share a pair with an earlier one:")
        for kept, duplicate in duplicates:
            print(f"    {duplicate} duplicates {kept}")
        raise MigrationError("Resolve duplicate conversations before the unique index can be created")

    print("\nCreating unique pair_key index...")
    try:
        await conversations_collection.create_index([("pair_key", ASCENDING)], unique=True)
    except DuplicateKeyError as e:
        raise MigrationError(f"Could not create unique index: {e}")
    print("✅ Unique pair_key index in place")

async def migrate_conversation_pair_keys():
    # Connect to MongoDB
    client = motor.motor_asyncio.AsyncIOMotorClient(settings.DATABASE_URL)
    db = client[settings.DATABASE_NAME]

    try:
        await backfill_pair_keys(db)
    except Exception as e:
        print(f"Error during migration: {e}")
        raise
    finally:
        client.close()

async def main():
    """Main function to run the migration"""
    print("Conversation Pair Key Migration Script")
    print("=" * 40)

    try:
        await migrate_conversation_pair_keys()
        print("\n🎉 Migration completed successfully!")
    except Exception as e:
        print(f"\n❌ Migration failed: {e}")
        sys.exit(1)

if __name__ == "__main__":
    asyncio.run(main())

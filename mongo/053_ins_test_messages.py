from pymongo import MongoClient
from bson import ObjectId
from datetime import datetime, timezone, timedelta
import random
import argparse
import os
from dotenv import load_dotenv

# Build the path to the .env file located in the project root folder
env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env')
load_dotenv(dotenv_path=env_path)

# Retrieve the environment variables with fallback default values if not defined in .env
MONGODB_URI = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("DATABASE_NAME", "messaging")

# Connect to MongoDB
client = MongoClient(MONGODB_URI)
db = client[MONGODB_DB]

# Collections
messages_collection = db['messages']
conversations_collection = db['conversations']
users_collection = db['users']

SAMPLE_LINES = [
    "Hi, are you available this week?",
    "Thanks for getting back to me.",
    "I've uploaded the documents you asked for.",
    "Can we move the call to Thursday?",
    "Sounds good, see you then.",
    "Did you get a chance to look at my request?",
    "Yes, everything looks fine on my side.",
    "Let me know if you need anything else.",
]

def clean_existing_messages():
    """Remove all existing messages and conversations"""
    messages_result = messages_collection.delete_many({})
    conversations_result = conversations_collection.delete_many({})

    print(f"Deleted {messages_result.deleted_count} messages")
    print(f"Deleted {conversations_result.deleted_count} conversations")

def generate_test_messages(clean_first=False, max_conversations=10):
    if clean_first:
        clean_existing_messages()

    users = list(users_collection.find({"is_active": {"$ne": False}}, {"_id": 1}))

    if len(users) < 2:
        print("Need at least two active users in the database.")
        return

    print(f"Found {len(users)} users")

    num_conversations = min(max_conversations, len(users) * (len(users) - 1) // 2)
    user_pairs = []

    # Generate unique user pairs
    while len(user_pairs) < num_conversations:
        user1, user2 = random.sample(users, 2)
        pair = sorted([str(user1['_id']), str(user2['_id'])])
        if pair not in user_pairs:
            user_pairs.append(pair)

    for participants in user_pairs:
        pair_key = f"{participants[0]}:{participants[1]}"
        if conversations_collection.find_one({"pair_key": pair_key}):
            print(f"Conversation {pair_key} already exists, skipping")
            continue

        conversation_id = ObjectId()
        started_at = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=random.randint(2, 48))

        num_messages = random.randint(3, 8)
        last_message = None

        for i in range(num_messages):
            # Alternate between users
            sender_idx = i % 2
            created_at = started_at + timedelta(minutes=5 * i)
            is_read = i < num_messages - 2 or random.choice([True, False])

            message = {
                "_id": ObjectId(),
                "conversation_id": conversation_id,
                "sender_id": participants[sender_idx],
                "recipient_id": participants[1 - sender_idx],
                "content": random.choice(SAMPLE_LINES),
                "message_type": "text",
                "file_url": None,
                "file_name": None,
                "is_read": is_read,
                "read_at": created_at + timedelta(minutes=1) if is_read else None,
                "created_at": created_at,
                "updated_at": created_at,
            }
            messages_collection.insert_one(message)
            last_message = message

        conversations_collection.insert_one({
            "_id": conversation_id,
            "participants": participants,
            "pair_key": pair_key,
            "deleted_by": [],
            "last_message_id": last_message["_id"],
            "created_at": started_at,
            "updated_at": last_message["created_at"],
        })
        print(f"Created conversation between {participants[0]} and {participants[1]} with {num_messages} messages")

def verify_message_links():
    """Verify that every message points at an existing conversation it belongs to"""
    invalid_messages = 0
    for message in messages_collection.find():
        conversation = conversations_collection.find_one({"_id": message["conversation_id"]})
        if not conversation or sorted([message["sender_id"], message["recipient_id"]]) != conversation["participants"]:
            invalid_messages += 1
            print(f"Invalid conversation reference in message {message['_id']}")

    if invalid_messages == 0:
        print("All message conversation references are valid")
    else:
        print(f"WARNING: {invalid_messages} messages have invalid conversation references")

    invalid_conversations = 0
    for conversation in conversations_collection.find():
        for participant_id in conversation["participants"]:
            user = users_collection.find_one({"_id": ObjectId(participant_id)})
            if not user:
                invalid_conversations += 1
                print(f"Invalid participant in conversation {conversation['_id']}")
                break

    if invalid_conversations == 0:
        print("All conversation participants are valid")
    else:
        print(f"WARNING: {invalid_conversations} conversations have invalid participants")

if __name__ == "__main__":
    # Set up command line arguments
    parser = argparse.ArgumentParser(description='Generate test conversations for MongoDB')
    parser.add_argument('--clean', action='store_true',
                        help='Remove all existing messages before generating new ones')
    parser.add_argument('--conversations', type=int, default=10,
                        help='Maximum number of conversations to create')
    args = parser.parse_args()

    print(f"Connected to MongoDB at {MONGODB_URI}, using database {MONGODB_DB}")
    print("Starting message generation process...")
    if args.clean:
        print("Clean mode activated - removing existing messages before generation")

    generate_test_messages(clean_first=args.clean, max_conversations=args.conversations)
    print("Verifying message links...")
    verify_message_links()
    print("Message generation complete!")

#!/usr/bin/env python3
"""
Development Token Script

This script signs an access token for an existing user so the messaging API
and socket server can be exercised without the account service.

Usage:
    python issue_token.py <user_id> [expire_minutes]
    ./issue_token.py <user_id> [expire_minutes]

Example:
    python issue_token.py 507f1f77bcf86cd799439011
    ./issue_token.py 507f1f77bcf86cd799439011 120

Note: Make sure to run this script from the project root directory.
"""

import sys
import os
from datetime import timedelta

from bson import ObjectId
from pymongo import MongoClient

# Add the project root directory to the Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

# Import after setting up path
from config import DATABASE_URL, DATABASE_NAME
from helpers.auth import create_access_token

def main():
    if len(sys.argv) not in (2, 3):
        print(__doc__)
        sys.exit(1)

    user_id = sys.argv[1]
    if not ObjectId.is_valid(user_id):
        print(f"Error: {user_id} is not a valid user id")
        sys.exit(1)

    try:
        expires = timedelta(minutes=int(sys.argv[2])) if len(sys.argv) == 3 else None

        client = MongoClient(DATABASE_URL)
        user = client[DATABASE_NAME].users.find_one({"_id": ObjectId(user_id)})
        client.close()

        if not user:
            print(f"Error: no user with id {user_id}")
            sys.exit(1)

        token = create_access_token(
            {"sub": user.get("username"), "id": user_id, "type": user.get("user_type", "normal")},
            expires_delta=expires
        )
        print(f"Access token: {token}")
    except Exception as e:
        print(f"Error: {str(e)}")
        sys.exit(1)

if __name__ == "__main__":
    main()

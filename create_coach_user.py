#!/usr/bin/env python3
"""
Script to create a coach account or reset its password

Usage:
    python create_coach_user.py <username> [--email EMAIL]

The password is read from COACH_PASSWORD or prompted for.
"""
import argparse
import getpass
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from diamond_dash.config import DATA_DIR
from diamond_dash.storage import StorageManager


def create_coach_user(username: str, password: str, email: str = None, data_dir: str = DATA_DIR) -> bool:
    """Create the coach account, or update its password if it already exists"""
    storage = StorageManager(data_dir)

    existing_user = storage.get_user_by_username(username)
    if existing_user:
        print(f"Coach '{username}' already exists. Updating password...")
        if storage.update_user_password(existing_user.id, password):
            print(f"Password updated for '{username}'")
            return True
        print("Failed to update password")
        return False

    print(f"Creating coach '{username}'...")
    user = storage.create_user(username, password, email=email)
    if not user:
        print("Failed to create coach account")
        return False
    print(f"Coach '{username}' created (user ID: {user.id})")
    print("You can now log in at /login")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or update a Diamond Dash coach account")
    parser.add_argument("username")
    parser.add_argument("--email", default=None)
    parser.add_argument("--data-dir", default=DATA_DIR)
    args = parser.parse_args()

    password = os.environ.get('COACH_PASSWORD') or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Error: password must be at least 8 characters")
        sys.exit(1)

    try:
        ok = create_coach_user(args.username, password, args.email, args.data_dir)
    except Exception as e:
        print(f"Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    sys.exit(0 if ok else 1)

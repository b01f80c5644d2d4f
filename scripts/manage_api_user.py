#!/usr/bin/env python3
"""
Vacancy API - API User CLI

Create API users and rotate or revoke their access tokens. Tokens are only
checked when VACANCY_AUTH_REQUIRE_TOKEN_FOR_WRITES=true.

Usage:
    python scripts/manage_api_user.py create <username> <email>
    python scripts/manage_api_user.py rotate <username>
    python scripts/manage_api_user.py revoke <username>
"""
import sys
import os

# Add project root to path so we can import vacancy_api modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vacancy_api.database import get_resilient_session, run_migrations
from vacancy_api.auth.models import User, generate_access_token


def create_user(username: str, email: str):
    with get_resilient_session() as db:
        existing = db.query(User).filter(
            (User.username == username) | (User.email == email)
        ).first()
        if existing:
            print(f"Error: a user named '{existing.username}' with email '{existing.email}' already exists")
            sys.exit(1)

        user = User(username=username, email=email, access_token=generate_access_token())
        db.add(user)
        db.flush()
        print(f"Created {username} (id={user.id}).")
        print(f"Access token: {user.access_token}")


def rotate_token(username: str, revoke: bool = False):
    with get_resilient_session() as db:
        user = db.query(User).filter(User.username == username).first()
        if not user:
            print(f"Error: No user found with username '{username}'")
            sys.exit(1)

        if revoke:
            user.access_token = None
            print(f"Revoked access token of {username}.")
        else:
            user.access_token = generate_access_token()
            print(f"New access token for {username}: {user.access_token}")


if __name__ == "__main__":
    commands = {"create": 4, "rotate": 3, "revoke": 3}
    if len(sys.argv) < 2 or commands.get(sys.argv[1]) != len(sys.argv):
        print("Usage: python scripts/manage_api_user.py create <username> <email>")
        print("       python scripts/manage_api_user.py rotate <username>")
        print("       python scripts/manage_api_user.py revoke <username>")
        sys.exit(1)

    os.makedirs("data", exist_ok=True)
    run_migrations()
    command = sys.argv[1]
    if command == "create":
        create_user(sys.argv[2], sys.argv[3])
    else:
        rotate_token(sys.argv[2], revoke=(command == "revoke"))

#!/usr/bin/env python3
"""Mint a bearer token for a user, creating their profile if needed.

For local testing of the chat API:

    uv run python scripts/create_session.py <user_id> <email> [--name NAME] [--contact EMAIL]

Then:

    curl -H "Authorization: Bearer <token>" -d '{"message": "hi"}' localhost:8080/chat
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.auth.sessions import SessionStore
from src.config import settings
from src.profiles.store import ProfileStore


async def main(args: argparse.Namespace) -> None:
    profiles = ProfileStore()
    profile = await profiles.get_profile(args.user_id)
    if profile is None or args.name or args.contact:
        await profiles.upsert(
            args.user_id,
            args.name or (profile.username if profile else args.email.split("@")[0]),
            args.email,
            args.contact or (profile.emergency_contact_email if profile else None),
        )
        print(f"Profile saved for {args.user_id}")

    token = await SessionStore(ttl_hours=settings.session_ttl_hours).create_session(
        args.user_id, args.email
    )
    print(f"Token (valid {settings.session_ttl_hours}h):\n{token}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("user_id")
    parser.add_argument("email")
    parser.add_argument("--name", default="", help="display name used in replies")
    parser.add_argument("--contact", default="", help="emergency contact email")
    asyncio.run(main(parser.parse_args()))

#!/usr/bin/env python3
"""
Issue a bearer token for an existing user (local development and ops).
Usage: python scripts/issue_token.py --email admin@example.com
"""

import asyncio
import argparse
import sys
import os
from datetime import timedelta

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storemap.core.database import Database
from storemap.core.security import create_access_token


async def issue_token(email: str, hours: int) -> bool:
    async with Database(min_size=1, max_size=1) as db:
        async with db.acquire() as conn:
            user = await conn.fetchrow("SELECT id, role FROM users WHERE email = $1", email)

    if not user:
        print(f"❌ User {email} not found")
        return False

    token = create_access_token(user["id"], user["role"], expires_delta=timedelta(hours=hours))
    print(token)
    return True


def main():
    parser = argparse.ArgumentParser(description="Issue a bearer token for a user")
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--hours", type=int, default=24, help="Token lifetime in hours")
    args = parser.parse_args()

    success = asyncio.run(issue_token(args.email, args.hours))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()

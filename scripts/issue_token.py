#!/usr/bin/env python3
"""
Print a signed identity token for local testing.

    python scripts/issue_token.py <identity-id> [employee|manager] [--minutes N]
"""

import argparse
import os
import sys

# Add the project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.security import Identity, Role, create_identity_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a development identity token")
    parser.add_argument("identity_id")
    parser.add_argument("role", nargs="?", default=Role.EMPLOYEE.value, choices=[r.value for r in Role])
    parser.add_argument("--name", default=None)
    parser.add_argument("--minutes", type=int, default=None)
    args = parser.parse_args()

    identity = Identity(id=args.identity_id, role=Role(args.role), name=args.name)
    print(create_identity_token(identity, expires_minutes=args.minutes))


if __name__ == "__main__":
    main()

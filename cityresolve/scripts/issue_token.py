#!/usr/bin/env python3
"""
Script to mint a development access token for an email.

Uses JWT_PRIVATE_KEY/JWT_PUBLIC_KEY from the environment; the API must run
with the same keys to accept the token.
"""

import argparse
import os
import sys

from ..models.entities import Identity
from ..services.auth import AuthService


def main(argv=None):
    parser = argparse.ArgumentParser(description="Mint a development access token")
    parser.add_argument("email", help="Token subject (identity email)")
    parser.add_argument("--name", default="Developer", help="Display name claim")
    parser.add_argument("--minutes", type=int, default=60, help="Token lifetime")
    args = parser.parse_args(argv)

    if not os.getenv("JWT_PRIVATE_KEY") or not os.getenv("JWT_PUBLIC_KEY"):
        print("JWT_PRIVATE_KEY and JWT_PUBLIC_KEY must be set", file=sys.stderr)
        return 1

    auth_service = AuthService(access_token_expire_minutes=args.minutes)
    tokens = auth_service.generate_tokens(Identity(email=args.email, name=args.name))
    print(tokens["access_token"])
    return 0


if __name__ == "__main__":
    sys.exit(main())

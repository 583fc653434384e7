#!/usr/bin/env python3
"""
Script to generate RSA key pair for JWT signing.
This ensures consistent keys across container restarts.
"""

from ..services.auth import generate_key_pair


def main():
    private_key, public_key = generate_key_pair()

    print("=== JWT PRIVATE KEY ===")
    print(private_key)
    print("\n=== JWT PUBLIC KEY ===")
    print(public_key)

    print("\n=== Environment Variables ===")
    newline = "\\n"
    print(f'JWT_PRIVATE_KEY="{private_key.replace(chr(10), newline)}"')
    print(f'JWT_PUBLIC_KEY="{public_key.replace(chr(10), newline)}"')


if __name__ == "__main__":
    main()

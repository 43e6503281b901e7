#!/usr/bin/env python3
"""
Script to create a new account interactively.

Usage:
    python scripts/create_user.py admin@travelexplore.com --admin
    python scripts/create_user.py a@x.com --name "Demo User"
    python scripts/create_user.py traveler@gmail.com --set-password
"""

import argparse
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from identity_core.auth import AccountStore, PasswordHandler, Role, normalize_email
from identity_core.config import load_config
from identity_core.errors import IdentityError


def main():
    parser = argparse.ArgumentParser(description="Create a new account")
    parser.add_argument("email", nargs="?", help="Email address")
    parser.add_argument("--name", "-n", help="Display name")
    parser.add_argument("--admin", action="store_true", help="Grant the administrative role")
    parser.add_argument(
        "--set-password",
        action="store_true",
        help="Set the password of an existing account (e.g. one created by Google login)"
    )
    args = parser.parse_args()

    config = load_config()
    store = AccountStore(
        config.accounts_file,
        password_handler=PasswordHandler(rounds=config.password.bcrypt_rounds)
    )

    email = args.email
    if not email:
        email = input("Email: ").strip()

    normalized = normalize_email(email)
    if not normalized:
        print(f"❌ Invalid email address: {email}")
        sys.exit(1)

    existing = store.get_by_email(normalized)
    if existing and not args.set_password:
        print(f"❌ Account {normalized} already exists!")
        print(f"   Account ID: {existing.account_id}")
        sys.exit(1)
    if args.set_password and not existing:
        print(f"❌ Account {normalized} not found!")
        sys.exit(1)

    password = getpass.getpass("Enter password: ")
    confirm = getpass.getpass("Confirm password: ")

    if password != confirm:
        print("❌ Passwords do not match!")
        sys.exit(1)

    if len(password) < config.password.min_length:
        print(f"❌ Password must be at least {config.password.min_length} characters!")
        sys.exit(1)

    if args.set_password:
        account = store.set_password(normalized, password)
        print(f"✅ Password set for {account.email}")
        return

    name = args.name
    if not name:
        name = input("Name (optional, press Enter to skip): ").strip() or None

    try:
        account = store.create_account(
            email=normalized,
            password=password,
            name=name,
            role=Role.ADMINISTRATIVE if args.admin else Role.ORDINARY
        )
    except IdentityError as e:
        print(f"❌ Failed to create account: {e}")
        sys.exit(1)

    print()
    print("✅ Account created successfully!")
    print(f"   Email: {account.email}")
    print(f"   Account ID: {account.account_id}")
    print(f"   Role: {account.role.value}")
    if account.name:
        print(f"   Name: {account.name}")


if __name__ == "__main__":
    main()

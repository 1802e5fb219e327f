#!/usr/bin/env python3
"""CLI management tool for StackIt accounts.

Provides commands to:
- Add users through the same register path the API uses
- List all registered identities
"""

import argparse
import asyncio
import getpass
import sys

from stackit.auth.passwords import DEFAULT_ROUNDS, PasswordHasher
from stackit.auth.service import AuthService
from stackit.auth.store import DEFAULT_DB_PATH, CredentialStore, StorageError


def add_user(args, store: CredentialStore) -> int:
    """Register a new identity, prompting for the password if omitted."""
    if args.password:
        password = args.password
    else:
        password = getpass.getpass(f"Password for {args.email}: ")
        if not password:
            print("Error: Password cannot be empty", file=sys.stderr)
            return 1

    service = AuthService(store, hasher=PasswordHasher(rounds=args.rounds))
    result = asyncio.run(service.register(args.username, args.email, password))
    if not result.ok:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    identity = result.identity
    print(f"✓ User created: {identity.id} ({identity.username} <{identity.email}>)")
    return 0


def list_users(args, store: CredentialStore) -> int:
    """List all identities in creation order."""
    identities = store.list_identities()

    if not identities:
        print("No users found")
        return 0

    print(f"{'ID':<18} {'Username':<20} {'Email':<32} {'Created':<20}")
    print("-" * 92)

    for identity in identities:
        created = identity.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(
            f"{identity.id:<18} {identity.username:<20} {identity.email:<32} {created:<20}"
        )

    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Manage StackIt user accounts")
    parser.add_argument(
        "--db-path",
        default=DEFAULT_DB_PATH,
        help=f"Path to SQLite database (default: {DEFAULT_DB_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    add_parser = subparsers.add_parser("add-user", help="Add a new user")
    add_parser.add_argument("--username", required=True, help="Display name")
    add_parser.add_argument("--email", required=True, help="Login email")
    add_parser.add_argument("--password", help="Password (prompted if omitted)")
    add_parser.add_argument(
        "--rounds",
        type=int,
        choices=range(4, 32),
        metavar="{4..31}",
        default=DEFAULT_ROUNDS,
        help=f"bcrypt cost factor (default: {DEFAULT_ROUNDS})",
    )

    subparsers.add_parser("list-users", help="List all users")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        store = CredentialStore(db_path=args.db_path)
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        if args.command == "add-user":
            return add_user(args, store)
        elif args.command == "list-users":
            return list_users(args, store)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""Print a PBKDF2 digest to use as ADMIN_PASSWORD."""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ovballot.web.admin_auth import hash_password


def main() -> int:
    parser = argparse.ArgumentParser(description="Hash the shared admin password")
    parser.add_argument(
        "--password",
        default=None,
        help="Admin password (omit to be prompted securely)",
    )
    args = parser.parse_args()

    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match.", file=sys.stderr)
            return 1

    try:
        digest = hash_password(password)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(f"ADMIN_PASSWORD={digest}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

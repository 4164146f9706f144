#!/usr/bin/env python3
"""Seed and verify the system roles (Owner, Admin, Member).

Safe to run repeatedly: missing roles are inserted, existing ones are
checked against their fixed identifiers and names.

Usage:
    python scripts/seed_system_roles.py
    python scripts/seed_system_roles.py --verify-only
"""

import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tenancy.db.engine import get_session
from tenancy.db.seed import SeedError, seed_system_roles, verify_system_roles


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--verify-only",
        action="store_true",
        help="Check the stored system roles without inserting anything",
    )
    args = parser.parse_args()

    with get_session() as session:
        try:
            if not args.verify_only:
                seed_system_roles(session)
                session.commit()
            verify_system_roles(session)
        except SeedError as e:
            print(f"System roles are inconsistent: {e}", file=sys.stderr)
            return 1

    print("System roles OK")
    return 0


if __name__ == "__main__":
    sys.exit(main())
